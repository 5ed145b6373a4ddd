"""
Cluster merging and absorption of new contact information.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask_app.models import LinkPrecedence

from .store import ContactRecord, ContactStore, creation_order


@dataclass(frozen=True)
class ReconcileOutcome:
    """
    Result of reconciling one request against the touched clusters.

    Attributes:
        canonical: The cluster primary, re-read after all writes.
        members: Final live membership, canonical included.
        created_id: Id of the row inserted by this call, if any.
        demoted_ids: Former primaries demoted under ``canonical``.
    """

    canonical: ContactRecord
    members: list[ContactRecord]
    created_id: int | None = None
    demoted_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def created_primary(self) -> bool:
        return self.created_id is not None and self.created_id == self.canonical.id

    @property
    def merged(self) -> bool:
        return bool(self.demoted_ids)


def select_canonical(cluster: list[ContactRecord]) -> tuple[ContactRecord, list[ContactRecord]]:
    """
    Split the cluster's primaries into the true canonical and the losers.

    The earliest-created primary wins; ids break exact timestamp ties.

    Raises:
        ValueError: If the cluster has no primary.
    """

    primaries = sorted((record for record in cluster if record.is_primary), key=creation_order)
    if not primaries:
        raise ValueError("Cannot select a canonical contact from a cluster without primaries")
    return primaries[0], primaries[1:]


def create_primary(store: ContactStore, email: str | None, phone_number: str | None) -> ReconcileOutcome:
    """Start a brand-new cluster for a pair that matched nothing."""

    record = store.create(
        email=email,
        phone_number=phone_number,
        link_precedence=LinkPrecedence.PRIMARY,
        linked_id=None,
    )
    return ReconcileOutcome(canonical=record, members=[record], created_id=record.id)


def _has_new_information(
    members: list[ContactRecord],
    email: str | None,
    phone_number: str | None,
) -> bool:
    known_emails = {record.email for record in members if record.email}
    known_phones = {record.phone_number for record in members if record.phone_number}
    new_email = email is not None and email not in known_emails
    new_phone = phone_number is not None and phone_number not in known_phones
    return new_email or new_phone


def reconcile(
    store: ContactStore,
    cluster: list[ContactRecord],
    email: str | None,
    phone_number: str | None,
) -> ReconcileOutcome:
    """
    Merge the touched clusters under one canonical and absorb new facts.

    Losing primaries have their dependents repointed before they are
    demoted themselves, so no row is ever left linked to a secondary. A new
    secondary carrying both submitted values is created only when the email
    or the phone is not yet known anywhere in the merged cluster; repeating
    a request is therefore a no-op.
    """

    if not cluster:
        return create_primary(store, email, phone_number)

    canonical, losers = select_canonical(cluster)
    loser_ids = [record.id for record in losers]
    if loser_ids:
        store.relink(loser_ids, canonical.id)
        store.demote(loser_ids, canonical.id)

    members = store.find_clusters([canonical.id])

    created_id = None
    if _has_new_information(members, email, phone_number):
        created = store.create(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.SECONDARY,
            linked_id=canonical.id,
        )
        created_id = created.id
        members = [*members, created]

    refreshed = store.get(canonical.id) or canonical
    return ReconcileOutcome(
        canonical=refreshed,
        members=members,
        created_id=created_id,
        demoted_ids=tuple(loser_ids),
    )
