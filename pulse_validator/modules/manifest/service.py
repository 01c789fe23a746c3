import asyncio
import logging
from urllib.parse import urljoin, urlsplit

import httpx

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".m3u8"
DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_BYTES = 1024 * 1024

_ABSOLUTE_PREFIXES = ("http://", "https://")


def is_manifest_uri(uri: str) -> bool:
    try:
        path = urlsplit(uri).path
    except ValueError:
        return False
    return path.lower().endswith(MANIFEST_SUFFIX)


class ManifestService:
    """Resolves an HLS playlist to the ordered list of URIs it references."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT,
        max_bytes: int = DEFAULT_MAX_BYTES,
        user_agent: str | None = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._headers = {"User-Agent": user_agent} if user_agent else {}

    # ── HTTP layer ──────────────────────────────────────────────

    async def _fetch(self, url: str) -> str | None:
        async with self._client.stream(
            "GET", url, headers=self._headers, follow_redirects=True
        ) as response:
            if not response.is_success:
                logger.debug("Manifest %s returned HTTP %d", url, response.status_code)
                return None

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) >= self._max_bytes:
                    logger.warning(
                        "Manifest %s exceeds %d bytes, truncating", url, self._max_bytes
                    )
                    del body[self._max_bytes :]
                    break

        try:
            text = body.decode(response.charset_encoding or "utf-8", errors="replace")
        except LookupError:
            text = body.decode("utf-8", errors="replace")
        return text.lstrip("\ufeff")

    # ── Parsing layer ───────────────────────────────────────────

    @staticmethod
    def parse(text: str, base_uri: str) -> list[str]:
        entries: list[str] = []
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith(_ABSOLUTE_PREFIXES):
                entries.append(line)
                continue

            try:
                resolved = urljoin(base_uri, line)
                parts = urlsplit(resolved)
            except ValueError:
                logger.debug("Dropping unresolvable manifest line %r", line)
                continue
            if parts.scheme not in ("http", "https") or not parts.netloc:
                logger.debug("Dropping non-HTTP manifest line %r", line)
                continue
            entries.append(resolved)
        return entries

    # ── Orchestration ───────────────────────────────────────────

    async def resolve(self, manifest_uri: str) -> list[str]:
        try:
            text = await asyncio.wait_for(self._fetch(manifest_uri), self._timeout)
        except asyncio.TimeoutError:
            logger.debug("Manifest %s timed out after %gs", manifest_uri, self._timeout)
            return []
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Manifest %s unreachable: %s", manifest_uri, exc)
            return []

        if text is None:
            return []
        return self.parse(text, manifest_uri)
