"""
Projection of a resolved cluster into the externally visible identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .store import ContactRecord


@dataclass(frozen=True)
class IdentityView:
    """Consolidated identity for one cluster."""

    primary_id: int
    emails: list[str] = field(default_factory=list)
    phone_numbers: list[str] = field(default_factory=list)
    secondary_ids: list[int] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        # "primaryContatctId" is misspelled on purpose; clients depend on it
        return {
            "contact": {
                "primaryContatctId": self.primary_id,
                "emails": list(self.emails),
                "phoneNumbers": list(self.phone_numbers),
                "secondaryContactIds": list(self.secondary_ids),
            }
        }


def _ordered_unique(first: str | None, rest: Iterable[str | None]) -> list[str]:
    values: list[str] = []
    for value in (first, *rest):
        if value and value not in values:
            values.append(value)
    return values


def project(canonical: ContactRecord, members: list[ContactRecord]) -> IdentityView:
    """
    Build the identity view: canonical values first, then each distinct
    value in the order members list them.
    """

    others = [record for record in members if record.id != canonical.id]
    return IdentityView(
        primary_id=canonical.id,
        emails=_ordered_unique(canonical.email, (record.email for record in others)),
        phone_numbers=_ordered_unique(canonical.phone_number, (record.phone_number for record in others)),
        secondary_ids=[record.id for record in others],
    )
