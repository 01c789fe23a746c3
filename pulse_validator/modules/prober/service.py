import asyncio
import logging
from dataclasses import dataclass
from time import perf_counter

import httpx

from pulse_validator.modules.prober.schemas import ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; RadioStreamValidator/1.0)"


@dataclass
class _Attempt:
    """Mutable state of one in-flight probe."""

    headers_received: bool = False
    status_code: int | None = None


class ProberService:
    """Checks that an endpoint answers with success headers in bounded time.

    The response is opened in streaming mode and closed as soon as the
    headers are in, so audio bodies are never downloaded. ``_Attempt``
    records that headers arrived before the voluntary close starts, which
    keeps a timeout during the close from being mistaken for a dead
    endpoint, and a timeout before the headers from being mistaken for a
    live one.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent}

    async def probe(self, uri: str, timeout: float | None = None) -> bool:
        result = await self.check(uri, timeout)
        return result.reachable

    async def check(self, uri: str, timeout: float | None = None) -> ProbeResult:
        timeout = self._timeout if timeout is None else timeout
        attempt = _Attempt()
        start = perf_counter()

        try:
            await asyncio.wait_for(self._open_and_close(uri, attempt), timeout)
        except asyncio.TimeoutError:
            if not attempt.headers_received:
                return self._failed(uri, start, f"timed out after {timeout:g}s")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            if not attempt.headers_received:
                return self._failed(uri, start, f"{exc.__class__.__name__}: {exc}")
            # Errors raised while discarding the connection do not change
            # what the headers already told us.
            logger.debug("Ignoring error on close for %s: %s", uri, exc)

        elapsed_ms = int((perf_counter() - start) * 1000)
        status_code = attempt.status_code
        reachable = status_code is not None and 200 <= status_code < 300
        detail = f"HTTP {status_code}"
        logger.debug(
            "Probe %s -> %s in %dms (%s)",
            uri, "reachable" if reachable else "unreachable", elapsed_ms, detail,
        )
        return ProbeResult(
            uri=uri,
            reachable=reachable,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
            detail=detail,
        )

    async def _open_and_close(self, uri: str, attempt: _Attempt) -> None:
        async with self._client.stream(
            "GET", uri, headers=self._headers, follow_redirects=True
        ) as response:
            attempt.status_code = response.status_code
            attempt.headers_received = True
        # Leaving the block closes the response without reading the body

    @staticmethod
    def _failed(uri: str, start: float, detail: str) -> ProbeResult:
        elapsed_ms = int((perf_counter() - start) * 1000)
        logger.debug("Probe %s failed in %dms: %s", uri, elapsed_ms, detail)
        return ProbeResult(
            uri=uri, reachable=False, elapsed_ms=elapsed_ms, detail=detail
        )
