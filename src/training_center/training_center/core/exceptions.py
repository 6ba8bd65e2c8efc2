class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class StaleVersionError(DomainError):
    """Raised when a submission was prepared against an outdated attendance record."""

    def __init__(self, message: str, *, expected: int | None = None, actual: int | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class StoreError(DomainError):
    """Base class for persistence failures."""


class StoreReadError(StoreError):
    """Raised when a lookup against the store failed. No state was changed."""


class StoreWriteError(StoreError):
    """Raised when an atomic write failed and was rolled back."""


class StoreConflictError(StoreWriteError):
    """Raised when the transaction lost a deadlock and was rolled back in full; safe to replay."""
