import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from pulse_validator.modules.manifest.service import ManifestService
from pulse_validator.modules.prober.service import ProberService
from pulse_validator.modules.stations.contracts import StationRepositoryContract
from pulse_validator.modules.stations.schemas import Station
from pulse_validator.modules.validator.service import StreamValidatorService


class FakeStationRepository(StationRepositoryContract):
    """In-memory station store that records every status update."""

    def __init__(
        self,
        stations: list[Station],
        failing_ids: set[str] | None = None,
        list_error: Exception | None = None,
    ) -> None:
        self.stations = stations
        self.failing_ids = failing_ids or set()
        self.list_error = list_error
        self.updates: dict[str, bool] = {}
        self.flushes = 0

    async def list_stations(self) -> list[Station]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.stations)

    async def update_station_status(self, station_id: str, is_online: bool) -> None:
        await asyncio.sleep(0)
        if station_id in self.failing_ids:
            raise RuntimeError(f"write rejected for {station_id}")
        self.updates[station_id] = is_online

    async def flush(self) -> None:
        self.flushes += 1


class FakeValidator:
    """Validator double that tracks how many validations run at once."""

    def __init__(
        self,
        invalid_urls: set[str] | None = None,
        crash_urls: set[str] | None = None,
        delay: float = 0.001,
    ) -> None:
        self.invalid_urls = invalid_urls or set()
        self.crash_urls = crash_urls or set()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[str] = []

    async def validate(self, stream_uri: str, trace=None) -> bool:
        self.calls.append(stream_uri)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if stream_uri in self.crash_urls:
                raise RuntimeError("boom")
            return stream_uri not in self.invalid_urls
        finally:
            self.in_flight -= 1


def make_stations(count: int, url_template: str = "https://radio.test/{i}.mp3") -> list[Station]:
    return [
        Station(id=f"s{i}", name=f"Station {i}", stream_url=url_template.format(i=i))
        for i in range(count)
    ]


@pytest_asyncio.fixture
async def client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def prober(client: httpx.AsyncClient) -> ProberService:
    return ProberService(client, timeout=2.0)


@pytest.fixture
def manifests(client: httpx.AsyncClient) -> ManifestService:
    return ManifestService(client, timeout=2.0)


@pytest.fixture
def validator(prober: ProberService, manifests: ManifestService) -> StreamValidatorService:
    return StreamValidatorService(prober, manifests)
