class StationRepositoryError(Exception):
    """Base class for station store failures."""


class StationNotFoundError(StationRepositoryError):
    def __init__(self, station_id: str) -> None:
        super().__init__(f"Station {station_id!r} not found")
        self.station_id = station_id


class RepositoryConfigurationError(StationRepositoryError):
    """Raised when no station store is configured."""
