"""Domain exceptions shared across Kinodeck services."""


class KinodeckError(Exception):
    """Base class for Kinodeck failures."""


class SchemaError(KinodeckError):
    """A provider payload is missing the fields needed to identify a title."""


class FetchError(KinodeckError):
    """The metadata source failed to deliver a payload."""

    def __init__(self, message: str, original_exception: Exception | None = None):
        super().__init__(message)
        self.original_exception = original_exception


class MediaNotFoundError(FetchError):
    """The requested title does not exist upstream."""


class FetchNetworkError(FetchError):
    """Transport-level failure (connection refused, timeout, ...)."""


class WatchlistPersistenceError(KinodeckError):
    """The watchlist could not be written to durable storage."""

    def __init__(self, message: str, original_exception: Exception | None = None):
        super().__init__(message)
        self.original_exception = original_exception
