"""Custom exceptions for the screener core."""


class ScreenerError(Exception):
    """Base exception for screener errors."""


class InvalidQueryError(ScreenerError):
    """Raised when a query or persisted filter payload is malformed."""


class NetworkFailureError(ScreenerError):
    """Raised when a round-trip to a remote service fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ScreenerPersistenceError(ScreenerError):
    """Base exception for saved screener operations."""


class DuplicateScreenerError(ScreenerPersistenceError):
    """Raised when a screener name collides and overwrite was not confirmed."""

    def __init__(self, existing: object) -> None:
        name = getattr(existing, "name", "")
        super().__init__(f"A screener named '{name}' already exists")
        self.existing = existing


class ReadOnlyScreenerError(ScreenerPersistenceError):
    """Raised when a default screener would be deleted or edited."""


class ScreenerNotFoundError(ScreenerPersistenceError):
    """Raised when a screener id is unknown."""
