import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import httpx

from pulse_validator.config.database import create_engine, create_session_factory
from pulse_validator.config.settings import Settings, settings
from pulse_validator.modules.manifest.service import ManifestService
from pulse_validator.modules.orchestrator.errors import StationFetchError
from pulse_validator.modules.orchestrator.service import ValidationOrchestratorService
from pulse_validator.modules.prober.service import ProberService
from pulse_validator.modules.scheduler.service import ValidationSchedulerService
from pulse_validator.modules.stations.contracts import StationRepositoryContract
from pulse_validator.modules.stations.errors import RepositoryConfigurationError
from pulse_validator.modules.stations.json_service import JsonStationRepository
from pulse_validator.modules.stations.service import SqlStationRepository
from pulse_validator.modules.validator.service import StreamValidatorService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # Per-request lines from httpx drown out batch progress
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--batch-size", type=int, help="Stations validated concurrently")
    parser.add_argument("--batch-delay", type=float, help="Seconds to wait between batches")
    parser.add_argument("--timeout", type=float, dest="probe_timeout", help="Per-request timeout in seconds")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")


def _resolve_config(args: argparse.Namespace) -> Settings:
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key in Settings.model_fields and value is not None
    }
    return Settings.model_validate({**settings.model_dump(), **overrides})


@asynccontextmanager
async def _runtime(
    config: Settings, with_repository: bool
) -> AsyncIterator[ValidationOrchestratorService]:
    """Build the service graph for one process and tear it down afterwards."""
    engine = None
    repository: StationRepositoryContract | None = None
    if with_repository:
        if config.database_url:
            engine = create_engine(config.database_url)
            repository = SqlStationRepository(create_session_factory(engine))
        elif config.stations_file:
            repository = JsonStationRepository(config.stations_file)
        else:
            raise RepositoryConfigurationError(
                "Set DATABASE_URL or STATIONS_FILE to validate the fleet"
            )

    limits = httpx.Limits(max_connections=max(config.batch_size * 2, 10))
    async with httpx.AsyncClient(limits=limits, timeout=config.probe_timeout) as client:
        prober = ProberService(client, config.probe_timeout, config.user_agent)
        manifests = ManifestService(
            client,
            timeout=config.probe_timeout,
            max_bytes=config.max_manifest_bytes,
            user_agent=config.user_agent,
        )
        validator = StreamValidatorService(prober, manifests)
        try:
            yield ValidationOrchestratorService(
                validator,
                repository,
                batch_size=config.batch_size,
                batch_delay=config.batch_delay,
            )
        finally:
            if engine is not None:
                await engine.dispose()


# ── pulse-validate ──────────────────────────────────────────────


async def _validate(args: argparse.Namespace, config: Settings) -> int:
    if args.uri:
        async with _runtime(config, with_repository=False) as orchestrator:
            is_valid = await orchestrator.run_single(args.uri)
        return 0 if is_valid else 1

    try:
        async with _runtime(config, with_repository=True) as orchestrator:
            summary = await orchestrator.run_validation()
    except (StationFetchError, RepositoryConfigurationError):
        logger.exception("Fatal error during validation")
        return 1

    print(
        "Stream validation completed:\n"
        f"- Valid streams: {summary.valid}\n"
        f"- Invalid streams: {summary.invalid}\n"
        f"- Total processed: {summary.processed}"
    )
    return 0


def validate_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Check whether registered radio streams are reachable."
    )
    parser.add_argument(
        "uri", nargs="?", help="Validate this single stream URL verbosely instead of the fleet"
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    config = _resolve_config(args)
    _configure_logging(config.log_level)
    return asyncio.run(_validate(args, config))


# ── pulse-validate-scheduled ────────────────────────────────────


async def _schedule(args: argparse.Namespace, config: Settings) -> int:
    try:
        async with _runtime(config, with_repository=True) as orchestrator:
            scheduler = ValidationSchedulerService(
                orchestrator, config.validate_interval_minutes
            )
            if args.once:
                logger.info("Running single validation cycle (--once flag detected)")
                summary = await scheduler.run_cycle()
                return 0 if summary is not None else 1

            stopping = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, _request_stop, sig, stopping)

            await scheduler.start()
            logger.info("Press Ctrl+C to stop")
            await stopping.wait()
            await scheduler.stop()
            return 0
    except RepositoryConfigurationError:
        logger.exception("Cannot start scheduled validation")
        return 1


def _request_stop(sig: signal.Signals, stopping: asyncio.Event) -> None:
    logger.info("Received %s, shutting down...", sig.name)
    stopping.set()


def schedule_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate radio streams on a recurring schedule."
    )
    parser.add_argument(
        "--once", action="store_true", help="Run a single validation cycle and exit"
    )
    parser.add_argument(
        "--interval", type=int, dest="validate_interval_minutes", help="Minutes between runs"
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    config = _resolve_config(args)
    _configure_logging(config.log_level)
    return asyncio.run(_schedule(args, config))


if __name__ == "__main__":
    sys.exit(validate_main())
