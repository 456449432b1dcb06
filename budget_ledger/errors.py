"""
Error Taxonomy

Every failure that crosses a store boundary is one of these types.
Callers can branch on the class (or on ``code``) to show a precise
message:

1. ValidationError  - caller-correctable input problems
2. CapacityError    - a structural limit was reached
3. NotFoundError    - a mutation targeted an id that does not exist
4. PersistenceError - the backing storage refused the write
5. CryptoError      - key derivation or authenticated decryption failed

Read paths never raise these for malformed persisted data; they
normalize and fall back to defaults instead.
"""

from typing import Optional


class BudgetError(Exception):
    """Base exception for all budget ledger errors."""

    code = "error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.field = field

    def to_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "field": self.field,
        }


class ValidationError(BudgetError):
    """Input was rejected (invalid amount, invalid date, unknown field...)."""

    code = "invalid_input"


class CapacityError(BudgetError):
    """A structural limit was reached (e.g. categories per period)."""

    code = "capacity_exceeded"


class NotFoundError(BudgetError):
    """The targeted record does not exist; nothing was changed."""

    code = "not_found"


class PersistenceError(BudgetError):
    """The underlying storage write failed (quota, disabled storage, I/O)."""

    code = "storage_error"


class CryptoError(BudgetError):
    """Key derivation, encryption or authenticated decryption failed."""

    code = "crypto_error"
