"""
Cluster matching: find every live contact reachable from an email/phone pair.
"""

from __future__ import annotations

from .errors import InvalidRequest
from .store import ContactRecord, ContactStore


def canonical_ids_for(matches: list[ContactRecord]) -> set[int]:
    """
    Collect the cluster primaries implied by directly matched rows.

    Primary rows contribute their own id, secondaries their ``linked_id``.
    More than one id means the submitted pair bridges separate clusters.
    """

    return {record.canonical_id for record in matches}


def find_cluster(
    store: ContactStore,
    email: str | None,
    phone_number: str | None,
) -> list[ContactRecord]:
    """
    Return the full live membership of every cluster the pair touches.

    An empty list means no existing cluster matched. Members whose primary
    is no longer live are dropped, since a cluster without a primary cannot
    take part in canonical selection.

    Raises:
        InvalidRequest: If both email and phone_number are missing.
    """

    if not email and not phone_number:
        raise InvalidRequest()

    matches = store.find_matching(email, phone_number)
    if not matches:
        return []

    members = store.find_clusters(canonical_ids_for(matches))
    live_primaries = {record.id for record in members if record.is_primary}

    cluster: list[ContactRecord] = []
    seen: set[int] = set()
    for record in members:
        if record.id in seen or record.canonical_id not in live_primaries:
            continue
        seen.add(record.id)
        cluster.append(record)
    return cluster
