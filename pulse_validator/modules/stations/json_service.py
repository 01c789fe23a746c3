import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from pulse_validator.modules.stations.contracts import StationRepositoryContract
from pulse_validator.modules.stations.errors import StationNotFoundError
from pulse_validator.modules.stations.schemas import Station

logger = logging.getLogger(__name__)


class JsonStationRepository(StationRepositoryContract):
    """Station store backed by a ``stations.json`` array.

    Rows keep every key they were loaded with; only ``isOnline`` and
    ``updatedAt`` are rewritten. Updates are applied in memory and written
    out by ``flush``, which replaces the file atomically.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._rows: list[dict] = []
        self._dirty = False
        self._lock = asyncio.Lock()

    async def list_stations(self) -> list[Station]:
        raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        rows = json.loads(raw)
        if not isinstance(rows, list):
            raise ValueError(f"{self._path} does not contain a JSON array")

        self._rows = rows
        stations: list[Station] = []
        for index, row in enumerate(rows):
            try:
                stations.append(Station.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping invalid station at index %d: %s", index, exc)
        logger.info("Loaded %d stations from %s", len(stations), self._path)
        return stations

    async def update_station_status(self, station_id: str, is_online: bool) -> None:
        async with self._lock:
            row = next(
                (
                    r for r in self._rows
                    if isinstance(r, dict) and r.get("stationId") == station_id
                ),
                None,
            )
            if row is None:
                raise StationNotFoundError(station_id)
            row["isOnline"] = is_online
            row["updatedAt"] = datetime.now(timezone.utc).isoformat()
            self._dirty = True

    async def flush(self) -> None:
        async with self._lock:
            if not self._dirty:
                return
            payload = json.dumps(self._rows, indent=4, ensure_ascii=False)
            await asyncio.to_thread(self._write, payload)
            self._dirty = False
        logger.debug("Saved stations to %s", self._path)

    def _write(self, payload: str) -> None:
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(self._path)
