# flask_app/models/contact/base.py
"""
Contact model backing identity reconciliation.

Every row belongs to exactly one identity cluster: either it is the
cluster's primary (``linked_id`` is NULL) or it is a secondary pointing
directly at that primary. Rows are never physically removed by the
resolver; ``deleted_at`` hides them from matching.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..base import BaseModel, db, utcnow
from .enums import LinkPrecedence


class Contact(BaseModel):
    """A single submitted (email, phone) fragment and its cluster linkage."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True, index=True)
    phone_number: Mapped[str | None] = mapped_column(db.String(50), nullable=True, index=True)
    linked_id: Mapped[int | None] = mapped_column(
        ForeignKey("contacts.id"),
        nullable=True,
        index=True,
    )
    link_precedence: Mapped[LinkPrecedence] = mapped_column(
        Enum(
            LinkPrecedence,
            name="link_precedence_enum",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=LinkPrecedence.PRIMARY,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)

    linked_contact = db.relationship("Contact", remote_side=[id], foreign_keys=[linked_id])

    __table_args__ = (
        CheckConstraint(
            "(link_precedence = 'primary' AND linked_id IS NULL) OR "
            "(link_precedence = 'secondary' AND linked_id IS NOT NULL)",
            name="ck_contacts_linkage",
        ),
        CheckConstraint(
            "email IS NOT NULL OR phone_number IS NOT NULL",
            name="ck_contacts_identifier_required",
        ),
        Index("idx_contacts_email_active", "email", "deleted_at"),
        Index("idx_contacts_phone_active", "phone_number", "deleted_at"),
    )

    def __repr__(self):
        return f"<Contact {self.id} {self.link_precedence.value if self.link_precedence else '?'}>"

    @validates("email", "phone_number")
    def validate_identifier(self, key, value):
        """Store blank identifiers as NULL so they never match anything"""
        if value is not None and not str(value).strip():
            return None
        return value

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == LinkPrecedence.PRIMARY

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, *, deleted_at: datetime | None = None) -> None:
        """
        Hide the contact from matching without removing history.

        Deleting a primary does not promote anyone; its secondaries simply
        stop being reachable through it.
        """

        if self.deleted_at is None:
            self.deleted_at = deleted_at or utcnow()
