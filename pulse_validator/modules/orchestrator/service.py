import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from pulse_validator.modules.orchestrator.errors import StationFetchError
from pulse_validator.modules.orchestrator.schemas import (
    BatchSummary,
    RunSummary,
    ValidationOutcome,
)
from pulse_validator.modules.stations.contracts import StationRepositoryContract
from pulse_validator.modules.stations.errors import RepositoryConfigurationError
from pulse_validator.modules.stations.schemas import Station
from pulse_validator.modules.validator.service import StreamValidatorService

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 1.0


class ValidationOrchestratorService:
    """Validates the whole fleet in sequential, fixed-size concurrent batches.

    Concurrency is bounded by the batch size: a batch is fanned out with
    ``asyncio.gather`` and fully joined before its results are persisted and
    counted, and before the next batch starts.
    """

    def __init__(
        self,
        validator: StreamValidatorService,
        repository: StationRepositoryContract | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._repository = repository
        self._validator = validator
        self._batch_size = batch_size
        self._batch_delay = batch_delay

    # ── Per-station work ────────────────────────────────────────

    async def _validate_station(self, station: Station) -> ValidationOutcome:
        try:
            is_valid = await self._validator.validate(station.stream_url)
        except Exception:
            logger.exception("Validation crashed for station %s", station.id)
            is_valid = False
        return ValidationOutcome(
            station_id=station.id,
            is_valid=is_valid,
            checked_at=datetime.now(timezone.utc),
        )

    async def _persist(self, outcome: ValidationOutcome) -> bool:
        try:
            await self._repository.update_station_status(
                outcome.station_id, outcome.is_valid
            )
        except Exception:
            logger.exception("Failed to update status for station %s", outcome.station_id)
            return False
        return True

    # ── Batching ────────────────────────────────────────────────

    def _partition(self, stations: list[Station]) -> list[list[Station]]:
        return [
            stations[i : i + self._batch_size]
            for i in range(0, len(stations), self._batch_size)
        ]

    async def _run_batch(self, index: int, batch: list[Station]) -> BatchSummary:
        outcomes = await asyncio.gather(
            *(self._validate_station(station) for station in batch)
        )
        persisted = await asyncio.gather(*(self._persist(o) for o in outcomes))
        persist_failures = persisted.count(False)
        try:
            await self._repository.flush()
        except Exception:
            logger.exception("Failed to save status updates for batch %d", index + 1)
            persist_failures = len(outcomes)

        valid = sum(1 for o in outcomes if o.is_valid)
        return BatchSummary(
            index=index,
            size=len(batch),
            valid=valid,
            invalid=len(outcomes) - valid,
            persist_failures=persist_failures,
        )

    async def _settle(self, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await asyncio.sleep(self._batch_delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), self._batch_delay)
        except asyncio.TimeoutError:
            pass

    # ── Orchestration ───────────────────────────────────────────

    async def run_validation(
        self, cancel_event: asyncio.Event | None = None
    ) -> RunSummary:
        if self._repository is None:
            raise RepositoryConfigurationError("No station repository configured")

        summary = RunSummary(started_at=datetime.now(timezone.utc))
        logger.info("Starting stream validation...")

        try:
            stations = await self._repository.list_stations()
        except Exception as exc:
            logger.error("Fatal error during validation: could not load stations")
            raise StationFetchError("Could not load the station list") from exc

        batches = self._partition(stations)
        total = len(batches)
        logger.info(
            "Validating %d stations in %d batches of up to %d",
            len(stations), total, self._batch_size,
        )

        for i, batch in enumerate(batches):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Validation cancelled before batch %d/%d", i + 1, total)
                summary.cancelled = True
                break

            logger.info(
                "Processing batch %d/%d (%d stations)...", i + 1, total, len(batch)
            )
            result = await self._run_batch(i, batch)
            summary.valid += result.valid
            summary.invalid += result.invalid
            summary.processed += result.size
            summary.persist_failures += result.persist_failures
            summary.batches += 1
            logger.info(
                "Processed batch %d/%d: %d valid, %d invalid",
                i + 1, total, result.valid, result.invalid,
            )

            if i < total - 1:
                await self._settle(cancel_event)

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Stream validation %s: %d valid, %d invalid, %d processed "
            "(%d status updates failed)",
            "cancelled" if summary.cancelled else "completed",
            summary.valid, summary.invalid, summary.processed,
            summary.persist_failures,
        )
        return summary

    async def run_single(
        self, uri: str, trace: Callable[[str], None] = print
    ) -> bool:
        trace(f"Validating stream URL: {uri}")
        try:
            is_valid = await self._validator.validate(uri, trace=trace)
        except Exception:
            logger.exception("Error validating stream %s", uri)
            trace("Error validating stream")
            return False
        if is_valid:
            trace("Stream is valid and accessible")
        else:
            trace("Stream is not accessible or invalid")
        return is_valid
