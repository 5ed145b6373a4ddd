"""
Reconciliation behaviour against the in-memory store.

Covers the cluster invariants: one primary per cluster, earliest primary
wins, linkage flattened to depth one and idempotent absorption.
"""

import pytest

from flask_app.identity.matcher import find_cluster
from flask_app.identity.merger import reconcile, select_canonical
from flask_app.identity.view import project
from flask_app.models import LinkPrecedence

PRIMARY = LinkPrecedence.PRIMARY
SECONDARY = LinkPrecedence.SECONDARY


def resolve(store, email=None, phone_number=None):
    cluster = find_cluster(store, email, phone_number)
    return reconcile(store, cluster, email, phone_number)


def assert_flattened(store):
    """Every live secondary points straight at a primary."""
    rows = {record.id: record for record in store.all()}
    for record in rows.values():
        if record.link_precedence == SECONDARY:
            assert record.linked_id in rows
            assert rows[record.linked_id].link_precedence == PRIMARY
        else:
            assert record.linked_id is None


def test_new_identity_creates_single_primary(memory_store):
    outcome = resolve(memory_store, "a@x.com", None)

    assert len(memory_store) == 1
    assert outcome.created_primary
    assert outcome.canonical.email == "a@x.com"
    assert outcome.canonical.link_precedence == PRIMARY
    assert outcome.canonical.linked_id is None
    assert outcome.members == [outcome.canonical]
    assert not outcome.merged


def test_repeating_request_does_not_grow_cluster(memory_store):
    resolve(memory_store, "a@x.com", "111")
    resolve(memory_store, "a@x.com", "222")
    count = len(memory_store)

    outcome = resolve(memory_store, "a@x.com", "222")

    assert len(memory_store) == count
    assert outcome.created_id is None


def test_known_pair_creates_no_records(memory_store, at):
    canonical = memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))

    outcome = resolve(memory_store, "a@x.com", "111")

    assert len(memory_store) == 1
    assert outcome.canonical.id == canonical.id
    assert outcome.created_id is None


@pytest.mark.parametrize("email, phone_number", [("a@x.com", None), (None, "111")])
def test_single_known_value_creates_no_records(memory_store, at, email, phone_number):
    memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))

    resolve(memory_store, email, phone_number)

    assert len(memory_store) == 1


def test_new_phone_is_absorbed_as_secondary(memory_store, at):
    canonical = memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))

    outcome = resolve(memory_store, "a@x.com", "222")

    assert len(memory_store) == 2
    created = memory_store.get(outcome.created_id)
    assert created.link_precedence == SECONDARY
    assert created.linked_id == canonical.id
    assert created.email == "a@x.com"
    assert created.phone_number == "222"
    view = project(outcome.canonical, outcome.members)
    assert view.phone_numbers == ["111", "222"]
    assert view.emails == ["a@x.com"]


def test_merge_demotes_later_primary(memory_store, at):
    first = memory_store.add(email="a@x.com", created_at=at(0))
    second = memory_store.add(phone_number="222", created_at=at(10))

    outcome = resolve(memory_store, "a@x.com", "222")

    assert outcome.canonical.id == first.id
    assert outcome.demoted_ids == (second.id,)
    demoted = memory_store.get(second.id)
    assert demoted.link_precedence == SECONDARY
    assert demoted.linked_id == first.id
    view = project(outcome.canonical, outcome.members)
    assert view.primary_id == first.id
    assert second.id in view.secondary_ids
    assert view.emails == ["a@x.com"]
    assert view.phone_numbers == ["222"]
    # both values were already known after the merge
    assert outcome.created_id is None
    assert len(memory_store) == 2


def test_merge_winner_is_earliest_created_not_lowest_id(memory_store, at):
    later = memory_store.add(email="a@x.com", created_at=at(30))
    earlier = memory_store.add(phone_number="222", created_at=at(5))

    outcome = resolve(memory_store, "a@x.com", "222")

    assert outcome.canonical.id == earlier.id
    assert memory_store.get(later.id).linked_id == earlier.id


def test_merge_flattens_dependents_of_loser(memory_store, at):
    first = memory_store.add(email="a@x.com", created_at=at(0))
    second = memory_store.add(phone_number="222", created_at=at(10))
    child = memory_store.add(
        email="b@x.com",
        phone_number="222",
        link_precedence=SECONDARY,
        linked_id=second.id,
        created_at=at(11),
    )

    outcome = resolve(memory_store, "a@x.com", "222")

    assert memory_store.get(child.id).linked_id == first.id
    assert_flattened(memory_store)
    view = project(outcome.canonical, outcome.members)
    assert set(view.secondary_ids) == {second.id, child.id}
    assert view.emails == ["a@x.com", "b@x.com"]


def test_three_way_merge_keeps_one_primary(memory_store, at):
    oldest = memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))
    middle = memory_store.add(email="b@x.com", phone_number="222", created_at=at(5))
    newest = memory_store.add(email="c@x.com", phone_number="333", created_at=at(9))
    memory_store.add(email="b@x.com", phone_number="444", link_precedence=SECONDARY, linked_id=middle.id)

    resolve(memory_store, "b@x.com", "333")
    outcome = resolve(memory_store, "a@x.com", "444")

    primaries = [record for record in memory_store.all() if record.link_precedence == PRIMARY]
    assert [record.id for record in primaries] == [oldest.id]
    assert outcome.canonical.id == oldest.id
    assert memory_store.get(newest.id).linked_id == oldest.id
    assert_flattened(memory_store)


def test_demoted_primary_is_never_canonical_again(memory_store, at):
    first = memory_store.add(email="a@x.com", created_at=at(0))
    second = memory_store.add(phone_number="222", created_at=at(10))
    resolve(memory_store, "a@x.com", "222")

    outcome = resolve(memory_store, None, "222")

    assert outcome.canonical.id == first.id
    assert memory_store.get(second.id).link_precedence == SECONDARY


def test_merge_with_new_information_adds_one_secondary(memory_store, at):
    first = memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))
    memory_store.add(email="b@x.com", phone_number="222", created_at=at(10))
    before = len(memory_store)

    outcome = resolve(memory_store, "a@x.com", "222")
    assert outcome.created_id is None

    outcome = resolve(memory_store, "c@x.com", "111")

    assert len(memory_store) == before + 1
    assert memory_store.get(outcome.created_id).linked_id == first.id


def test_deleted_rows_do_not_join_cluster(memory_store, at):
    canonical = memory_store.add(email="a@x.com", phone_number="111", created_at=at(0))
    memory_store.add(
        email="a@x.com",
        phone_number="999",
        link_precedence=SECONDARY,
        linked_id=canonical.id,
        created_at=at(1),
        deleted_at=at(2),
    )

    outcome = resolve(memory_store, "a@x.com", "999")

    # the deleted row's phone is unknown to the live cluster
    assert outcome.created_id is not None
    assert [record.id for record in outcome.members] == [canonical.id, outcome.created_id]


def test_reconcile_refreshes_canonical_from_store(memory_store, at):
    canonical = memory_store.add(email="a@x.com", created_at=at(0))

    outcome = resolve(memory_store, "a@x.com", "111")

    assert outcome.canonical == memory_store.get(canonical.id)


def test_select_canonical_breaks_timestamp_ties_by_id(memory_store, at):
    left = memory_store.add(email="a@x.com", created_at=at(0))
    right = memory_store.add(email="b@x.com", created_at=at(0))

    canonical, losers = select_canonical([right, left])

    assert canonical.id == left.id
    assert [record.id for record in losers] == [right.id]


def test_select_canonical_requires_a_primary(memory_store, at):
    orphan = memory_store.add(email="a@x.com", link_precedence=SECONDARY, linked_id=99, created_at=at(0))
    with pytest.raises(ValueError):
        select_canonical([orphan])
