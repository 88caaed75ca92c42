"""Exception hierarchy for the session watcher service."""


class SessionWatcherError(Exception):
    """Base class for all session watcher errors."""


class ConfigError(SessionWatcherError, ValueError):
    """Configuration values are missing or invalid."""


class ProbeUnavailableError(SessionWatcherError):
    """The OS media session provider cannot be reached."""


class ArtworkError(SessionWatcherError):
    """Artwork could not be turned into a data URI."""


class ArtworkTooLargeError(ArtworkError):
    """Artwork payload exceeds the size ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Artwork is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class ArtworkUnreadableError(ArtworkError):
    """Artwork stream could not be read."""


class AssetNotFoundError(SessionWatcherError):
    """No static asset exists for the requested path."""

    def __init__(self, path: str):
        super().__init__(f"Asset not found: {path}")
        self.path = path
