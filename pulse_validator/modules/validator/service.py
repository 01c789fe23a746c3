import logging
from collections.abc import Callable

from pulse_validator.modules.manifest.service import ManifestService, is_manifest_uri
from pulse_validator.modules.prober.service import ProberService

logger = logging.getLogger(__name__)

Trace = Callable[[str], None]


class StreamValidatorService:
    """Turns a stream URL into a single reachable / unreachable verdict.

    Direct streams are judged by the initial probe alone. HLS manifests must
    also list at least one entry, and the first entry (conventionally the
    lowest bitrate) must be reachable; the remaining variants are never
    probed.
    """

    def __init__(self, prober: ProberService, manifests: ManifestService) -> None:
        self._prober = prober
        self._manifests = manifests

    async def validate(self, stream_uri: str, trace: Trace | None = None) -> bool:
        def emit(message: str) -> None:
            logger.debug("[%s] %s", stream_uri, message)
            if trace is not None:
                trace(message)

        is_reachable = await self._prober.probe(stream_uri)
        emit(f"Initial URL check: {'OK' if is_reachable else 'Failed'}")
        if not is_reachable:
            return False

        if not is_manifest_uri(stream_uri):
            emit("Non-HLS stream, using initial check result")
            return True

        emit("Detected HLS stream, parsing manifest...")
        entries = await self._manifests.resolve(stream_uri)
        emit(f"Found {len(entries)} stream URLs in manifest:")
        for i, entry in enumerate(entries, start=1):
            emit(f"{i}. {entry}")

        if not entries:
            emit("No valid stream URLs found in manifest")
            return False

        is_entry_reachable = await self._prober.probe(entries[0])
        emit(f"Stream URL check: {'OK' if is_entry_reachable else 'Failed'}")
        return is_entry_reachable
