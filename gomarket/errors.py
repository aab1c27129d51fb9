"""
Cart errors.

Message strings are kept as constants so routers and tests share them.
"""

ERROR_NO_PROVIDER = "useCart must be used within a CartProvider"
ERROR_CORRUPT_RECORD = "Stored cart record is corrupted"
ERROR_WRITE_FAILED = "Failed to write cart to storage"
ERROR_UNKNOWN_BACKEND = "Unknown cart storage backend"


class CartError(Exception):
    """Base class for cart errors."""


class HydrationDecodeError(CartError):
    """A stored cart record exists but cannot be decoded."""

    def __init__(self, reason: str):
        super().__init__(f"{ERROR_CORRUPT_RECORD}: {reason}")
        self.reason = reason


class PersistenceWriteError(CartError):
    """A write to durable storage failed. Contained by the write lane."""

    def __init__(self, key: str, cause: BaseException):
        super().__init__(f"{ERROR_WRITE_FAILED} ({key}): {cause}")
        self.key = key
        self.cause = cause


class CartContextError(CartError, RuntimeError):
    """The cart was used without a started provider. Always a wiring bug."""

    def __init__(self, message: str = ERROR_NO_PROVIDER):
        super().__init__(message)
