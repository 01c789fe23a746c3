from abc import ABC, abstractmethod

from pulse_validator.modules.stations.schemas import Station


class StationRepositoryContract(ABC):
    @abstractmethod
    async def list_stations(self) -> list[Station]: ...

    @abstractmethod
    async def update_station_status(self, station_id: str, is_online: bool) -> None: ...

    async def flush(self) -> None:
        """Make the updates issued so far durable; a no-op for stores that write through."""
