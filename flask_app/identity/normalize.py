"""
Request normalization for the identify operation.

Turns a raw request body into an ``IdentifyRequest`` whose fields are either
a non-empty string or ``None``, so the resolver never deals with blank
strings or non-string payload values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Number

from .errors import InvalidRequest

EMAIL_FIELD = "email"
PHONE_FIELD = "phoneNumber"


@dataclass(frozen=True)
class IdentifyRequest:
    """Normalized identify input: lower-cased email and trimmed phone."""

    email: str | None
    phone_number: str | None

    @property
    def is_empty(self) -> bool:
        return self.email is None and self.phone_number is None


def _coerce_token(value: object | None, field_name: str) -> str | None:
    if value is None:
        return None
    # bool is a Number subclass but never a meaningful identifier
    if isinstance(value, bool) or not isinstance(value, (str, Number)):
        raise InvalidRequest(f"{field_name} must be a string")
    token = str(value).strip()
    return token or None


def normalize_email(value: object | None) -> str | None:
    """Trim and lower-case an email; blank input becomes ``None``."""

    token = _coerce_token(value, EMAIL_FIELD)
    return token.lower() if token else None


def normalize_phone(value: object | None) -> str | None:
    """Trim a phone number; it is otherwise compared verbatim."""

    return _coerce_token(value, PHONE_FIELD)


def normalize_identify_payload(payload: object) -> IdentifyRequest:
    """
    Validate and normalize an identify request body.

    Raises:
        InvalidRequest: If the body is not an object, a field has an
            unusable type, or both fields are missing/blank.
    """

    if not isinstance(payload, Mapping):
        raise InvalidRequest("Request body must be a JSON object")

    request = IdentifyRequest(
        email=normalize_email(payload.get(EMAIL_FIELD)),
        phone_number=normalize_phone(payload.get(PHONE_FIELD)),
    )
    if request.is_empty:
        raise InvalidRequest()
    return request
