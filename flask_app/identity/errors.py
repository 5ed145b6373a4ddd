"""
Failure taxonomy for identity resolution.
"""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError

# SQLSTATE codes for serialization failure and deadlock
_TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})
_TRANSIENT_MESSAGES = ("database is locked", "could not serialize access", "deadlock detected")


class IdentityError(Exception):
    """Base class for identity resolution failures."""


class InvalidRequest(IdentityError, ValueError):
    """Raised when neither an email nor a phone number is usable."""

    def __init__(self, message: str = "At least one of email or phoneNumber must be provided") -> None:
        super().__init__(message)
        self.message = message


class TransientStoreConflict(IdentityError):
    """
    Concurrent-modification failure reported by the store.

    Never surfaced to callers; the resolution is retried from scratch.
    """

    def __init__(self, original: BaseException | None = None) -> None:
        super().__init__(f"Concurrent update conflict: {original}" if original else "Concurrent update conflict")
        self.original = original


class StoreUnavailable(IdentityError):
    """The contact store failed in a way retrying will not fix."""

    def __init__(self, message: str, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original = original


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    # psycopg 3 exposes ``sqlstate``; psycopg2 exposes ``pgcode``
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_transient_store_error(exc: BaseException) -> bool:
    """Return True when ``exc`` signals a serialization failure or lock conflict."""

    if isinstance(exc, TransientStoreConflict):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) in _TRANSIENT_SQLSTATES:
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)


def classify_store_error(exc: DBAPIError) -> IdentityError:
    """Map a driver-level error onto the identity failure taxonomy."""

    if is_transient_store_error(exc):
        return TransientStoreConflict(exc)
    return StoreUnavailable(f"Contact store error: {getattr(exc, 'orig', exc)}", original=exc)
