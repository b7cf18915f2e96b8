# hdfs_watcher/core/exceptions.py


class WatcherError(Exception):
    """Base class for errors raised by the watcher."""


class ConfigurationError(WatcherError):
    """Raised at startup when a required setting is missing or inconsistent."""


class ListingError(WatcherError):
    """Raised by a DirectoryLister when the backing store cannot be listed."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Failed to list {location}: {reason}")


class StorageError(WatcherError):
    """Raised when a file cannot be stored in or loaded from local storage."""


class UploadError(WatcherError):
    """Raised when a file cannot be written to WebHDFS."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to upload '{filename}': {reason}")
