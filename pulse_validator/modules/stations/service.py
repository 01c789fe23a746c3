import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pulse_validator.modules.stations.contracts import StationRepositoryContract
from pulse_validator.modules.stations.errors import StationNotFoundError
from pulse_validator.modules.stations.models import StationRecord
from pulse_validator.modules.stations.schemas import Station

logger = logging.getLogger(__name__)


class SqlStationRepository(StationRepositoryContract):
    """Station store backed by the ``stations`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_stations(self) -> list[Station]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StationRecord).order_by(StationRecord.station_id)
            )
            records = list(result.scalars().all())

        stations: list[Station] = []
        for record in records:
            try:
                stations.append(
                    Station(
                        id=record.station_id,
                        name=record.station_name,
                        stream_url=record.stream_url,
                        is_online=record.is_online,
                        updated_at=record.updated_at,
                    )
                )
            except ValidationError as exc:
                logger.warning("Skipping invalid station row %s: %s", record.id, exc)
        return stations

    async def update_station_status(self, station_id: str, is_online: bool) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                update(StationRecord)
                .where(StationRecord.station_id == station_id)
                .values(is_online=is_online, updated_at=datetime.now(timezone.utc))
            )
            await session.commit()
        if result.rowcount == 0:
            raise StationNotFoundError(station_id)
