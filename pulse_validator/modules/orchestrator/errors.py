class StationFetchError(Exception):
    """The station list could not be loaded, so there is nothing to validate."""
