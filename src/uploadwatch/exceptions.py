"""Custom exceptions for the upload watcher package."""


class WatcherError(Exception):
    """Base exception for all upload watcher errors."""
    pass


class WatchStartError(WatcherError):
    """The native watch for a root folder could not be created."""
    pass


class SessionAlreadyActiveError(WatcherError):
    """A watch session is already running."""
    pass


class SessionNotActiveError(WatcherError):
    """An operation needs a running watch session and none is active."""
    pass


class SettingsError(WatcherError):
    """Error reading or writing persisted settings."""
    pass


class HistoryError(WatcherError):
    """Error reading or writing the batch history."""
    pass
