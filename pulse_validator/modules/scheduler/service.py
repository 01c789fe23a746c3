import asyncio
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pulse_validator.modules.orchestrator.errors import StationFetchError
from pulse_validator.modules.orchestrator.schemas import RunSummary
from pulse_validator.modules.orchestrator.service import ValidationOrchestratorService

logger = logging.getLogger(__name__)

JOB_ID = "validate_streams"


class ValidationSchedulerService:
    def __init__(
        self,
        orchestrator: ValidationOrchestratorService,
        interval_minutes: int,
    ) -> None:
        self._orchestrator = orchestrator
        self._interval_minutes = interval_minutes
        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._cancel_event = asyncio.Event()
        # Cleared while a cycle is running
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel_event

    @property
    def running(self) -> bool:
        return self._scheduler.running or not self._idle.is_set()

    async def run_cycle(self) -> RunSummary | None:
        if self._cancel_event.is_set():
            logger.info("Skipping validation cycle, scheduler is stopping")
            return None

        self._idle.clear()
        logger.info("Starting scheduled validation cycle")
        try:
            summary = await self._orchestrator.run_validation(self._cancel_event)
        except StationFetchError:
            logger.exception("Error in validation cycle")
            return None
        finally:
            self._idle.set()
        logger.info("Scheduled validation cycle completed")
        return summary

    async def start(self) -> None:
        self._scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(minutes=self._interval_minutes),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info(
            "Scheduler started, validation runs every %d minutes",
            self._interval_minutes,
        )

    async def stop(self) -> None:
        """Stop triggering new cycles and wait for the running one to finish.

        The running cycle sees the cancel event and returns after its
        current batch has been validated and persisted.
        """
        self._cancel_event.set()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        if not self._idle.is_set():
            logger.info("Waiting for the running validation batch to finish")
        await self._idle.wait()
        # AsyncIOScheduler applies shutdown on the next loop iteration
        await asyncio.sleep(0)
        logger.info("Scheduler stopped")
