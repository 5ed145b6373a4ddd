"""
Contact store adapters used by the identity resolver.

The resolver only needs four capabilities from storage: find rows matching
an email/phone, find full cluster membership for a set of canonical ids,
create a row, and bulk-update linkage for a set of ids. ``ContactStore``
names that surface; ``SqlAlchemyContactStore`` implements it on the
request-scoped session and ``InMemoryContactStore`` backs unit tests.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from flask_app.models import Contact, LinkPrecedence, utcnow

from .errors import InvalidRequest


@dataclass(frozen=True)
class ContactRecord:
    """Immutable snapshot of a contact row as seen inside one resolution."""

    id: int
    email: str | None
    phone_number: str | None
    link_precedence: LinkPrecedence
    linked_id: int | None
    created_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == LinkPrecedence.PRIMARY

    @property
    def canonical_id(self) -> int:
        """Id of the cluster primary this record belongs to."""
        if self.is_primary or self.linked_id is None:
            return self.id
        return self.linked_id


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on round-trip; stored values are always UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _record_from_contact(contact: Contact) -> ContactRecord:
    return ContactRecord(
        id=contact.id,
        email=contact.email,
        phone_number=contact.phone_number,
        link_precedence=contact.link_precedence,
        linked_id=contact.linked_id,
        created_at=_aware(contact.created_at),
        deleted_at=_aware(contact.deleted_at),
    )


def creation_order(record: ContactRecord) -> tuple[datetime, int]:
    """Sort key ordering records by creation time, ties broken by id."""
    return record.created_at, record.id


class ContactStore(Protocol):
    """Storage operations the resolver relies on, all within one transaction."""

    def find_matching(self, email: str | None, phone_number: str | None) -> list[ContactRecord]:
        """Live rows whose email or phone equals the given value."""
        ...

    def find_clusters(self, canonical_ids: Iterable[int]) -> list[ContactRecord]:
        """Live rows whose id or linked_id is one of ``canonical_ids``."""
        ...

    def get(self, contact_id: int) -> ContactRecord | None:
        ...

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> ContactRecord:
        ...

    def relink(self, from_ids: Sequence[int], to_id: int) -> int:
        """Point every row linked to one of ``from_ids`` at ``to_id``."""
        ...

    def demote(self, contact_ids: Sequence[int], canonical_id: int) -> int:
        """Turn ``contact_ids`` into secondaries of ``canonical_id``."""
        ...


class SqlAlchemyContactStore:
    """
    ContactStore backed by a SQLAlchemy session.

    Reads that feed a decision take row locks (``SELECT ... FOR UPDATE``) so
    concurrent resolutions touching the same cluster serialize. SQLite
    compiles the lock away; there every transaction opens with
    ``BEGIN IMMEDIATE`` (see ``configure_sqlite_engine``), so a second
    writer fails with "database is locked" and is retried.
    """

    def __init__(self, session: Session, *, lock_rows: bool = True) -> None:
        self.session = session
        self.lock_rows = lock_rows

    def _select(self, *criteria):
        stmt = (
            select(Contact)
            .where(*criteria, Contact.deleted_at.is_(None))
            .order_by(Contact.created_at.asc(), Contact.id.asc())
            .execution_options(populate_existing=True)
        )
        if self.lock_rows:
            stmt = stmt.with_for_update()
        return stmt

    def find_matching(self, email: str | None, phone_number: str | None) -> list[ContactRecord]:
        conditions = []
        if email:
            conditions.append(Contact.email == email)
        if phone_number:
            conditions.append(Contact.phone_number == phone_number)
        if not conditions:
            raise InvalidRequest()

        contacts = self.session.scalars(self._select(or_(*conditions))).all()
        return [_record_from_contact(contact) for contact in contacts]

    def find_clusters(self, canonical_ids: Iterable[int]) -> list[ContactRecord]:
        ids = sorted(set(canonical_ids))
        if not ids:
            return []
        contacts = self.session.scalars(
            self._select(or_(Contact.id.in_(ids), Contact.linked_id.in_(ids)))
        ).all()
        return [_record_from_contact(contact) for contact in contacts]

    def get(self, contact_id: int) -> ContactRecord | None:
        contact = self.session.get(Contact, contact_id, populate_existing=True)
        return _record_from_contact(contact) if contact else None

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> ContactRecord:
        contact = Contact(
            email=email,
            phone_number=phone_number,
            link_precedence=link_precedence,
            linked_id=linked_id,
        )
        self.session.add(contact)
        self.session.flush()
        return _record_from_contact(contact)

    def relink(self, from_ids: Sequence[int], to_id: int) -> int:
        if not from_ids:
            return 0
        # Soft-deleted rows are repointed too so no row ever references a secondary
        result = self.session.execute(
            update(Contact)
            .where(Contact.linked_id.in_(list(from_ids)))
            .values(linked_id=to_id, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def demote(self, contact_ids: Sequence[int], canonical_id: int) -> int:
        if not contact_ids:
            return 0
        result = self.session.execute(
            update(Contact)
            .where(Contact.id.in_(list(contact_ids)))
            .values(
                link_precedence=LinkPrecedence.SECONDARY,
                linked_id=canonical_id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


class InMemoryContactStore:
    """
    Dictionary-backed ContactStore for unit tests and dry runs.

    Ids are assigned sequentially; ``clock`` supplies ``created_at`` so tests
    can control creation order.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._rows: dict[int, ContactRecord] = {}
        self._next_id = 1
        self._clock = clock

    def __len__(self) -> int:
        return len(self._rows)

    def all(self) -> list[ContactRecord]:
        return sorted(self._rows.values(), key=creation_order)

    def add(
        self,
        *,
        email: str | None = None,
        phone_number: str | None = None,
        link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY,
        linked_id: int | None = None,
        created_at: datetime | None = None,
        deleted_at: datetime | None = None,
    ) -> ContactRecord:
        """Insert a row with full control over timestamps (test seeding)."""
        record = ContactRecord(
            id=self._next_id,
            email=email,
            phone_number=phone_number,
            link_precedence=link_precedence,
            linked_id=linked_id,
            created_at=created_at or self._clock(),
            deleted_at=deleted_at,
        )
        self._rows[record.id] = record
        self._next_id += 1
        return record

    def _live(self) -> list[ContactRecord]:
        return [row for row in self.all() if row.deleted_at is None]

    def find_matching(self, email: str | None, phone_number: str | None) -> list[ContactRecord]:
        if not email and not phone_number:
            raise InvalidRequest()
        return [
            row
            for row in self._live()
            if (email and row.email == email) or (phone_number and row.phone_number == phone_number)
        ]

    def find_clusters(self, canonical_ids: Iterable[int]) -> list[ContactRecord]:
        ids = set(canonical_ids)
        return [row for row in self._live() if row.id in ids or row.linked_id in ids]

    def get(self, contact_id: int) -> ContactRecord | None:
        return self._rows.get(contact_id)

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None,
    ) -> ContactRecord:
        return self.add(
            email=email,
            phone_number=phone_number,
            link_precedence=link_precedence,
            linked_id=linked_id,
        )

    def relink(self, from_ids: Sequence[int], to_id: int) -> int:
        targets = set(from_ids)
        changed = 0
        for row_id, row in list(self._rows.items()):
            if row.linked_id in targets:
                self._rows[row_id] = replace(row, linked_id=to_id)
                changed += 1
        return changed

    def demote(self, contact_ids: Sequence[int], canonical_id: int) -> int:
        changed = 0
        for row_id in contact_ids:
            row = self._rows.get(row_id)
            if row is None:
                continue
            self._rows[row_id] = replace(
                row,
                link_precedence=LinkPrecedence.SECONDARY,
                linked_id=canonical_id,
            )
            changed += 1
        return changed
