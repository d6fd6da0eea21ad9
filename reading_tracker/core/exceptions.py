"""Custom exceptions for reading tracker storage errors."""


class TrackerError(Exception):
    """Base exception for reading tracker errors."""
    pass


class NotReadyError(TrackerError):
    """Database is not opened yet or failed to open."""
    pass


class NotFoundError(TrackerError):
    """Requested account does not exist."""
    pass


class ConflictError(TrackerError):
    """Username is already taken."""
    pass


class UnauthorizedError(TrackerError):
    """Wrong password or account not approved yet."""
    pass


class NoSessionError(TrackerError):
    """Operation needs a logged-in user."""
    pass


class StorageError(TrackerError):
    """Underlying SQLite read/write failed."""
    pass
