import pytest

from flask_app.identity.errors import InvalidRequest
from flask_app.identity.matcher import canonical_ids_for, find_cluster
from flask_app.models import LinkPrecedence

SECONDARY = LinkPrecedence.SECONDARY


def test_find_cluster_rejects_empty_pair(memory_store):
    with pytest.raises(InvalidRequest):
        find_cluster(memory_store, None, None)


def test_find_cluster_returns_empty_when_nothing_matches(memory_store):
    memory_store.add(email="marty@hillvalley.edu", phone_number="111")
    assert find_cluster(memory_store, "doc@hillvalley.edu", "999") == []


def test_find_cluster_matches_on_email_or_phone(memory_store, at):
    by_email = memory_store.add(email="marty@hillvalley.edu", phone_number="111", created_at=at(0))
    by_phone = memory_store.add(email="doc@hillvalley.edu", phone_number="222", created_at=at(1))
    memory_store.add(email="biff@hillvalley.edu", phone_number="333", created_at=at(2))

    cluster = find_cluster(memory_store, "marty@hillvalley.edu", "222")

    assert [record.id for record in cluster] == [by_email.id, by_phone.id]


def test_find_cluster_pulls_whole_membership_from_secondary_match(memory_store, at):
    primary = memory_store.add(email="lorraine@hillvalley.edu", phone_number="123456", created_at=at(0))
    sibling = memory_store.add(
        email="lorraine@hillvalley.edu",
        phone_number="777",
        link_precedence=SECONDARY,
        linked_id=primary.id,
        created_at=at(1),
    )
    matched = memory_store.add(
        email="mcfly@hillvalley.edu",
        phone_number="123456",
        link_precedence=SECONDARY,
        linked_id=primary.id,
        created_at=at(2),
    )

    cluster = find_cluster(memory_store, "mcfly@hillvalley.edu", None)

    assert [record.id for record in cluster] == [primary.id, sibling.id, matched.id]


def test_find_cluster_spans_two_clusters(memory_store, at):
    first = memory_store.add(email="george@hillvalley.edu", phone_number="919191", created_at=at(0))
    second = memory_store.add(email="biffsucks@hillvalley.edu", phone_number="717171", created_at=at(5))
    second_child = memory_store.add(
        email="biff@hillvalley.edu",
        phone_number="717171",
        link_precedence=SECONDARY,
        linked_id=second.id,
        created_at=at(6),
    )

    cluster = find_cluster(memory_store, "george@hillvalley.edu", "717171")

    assert {record.id for record in cluster} == {first.id, second.id, second_child.id}
    assert canonical_ids_for(cluster) == {first.id, second.id}


def test_find_cluster_ignores_deleted_rows(memory_store, at):
    memory_store.add(email="marty@hillvalley.edu", phone_number="111", created_at=at(0), deleted_at=at(1))
    assert find_cluster(memory_store, "marty@hillvalley.edu", None) == []


def test_find_cluster_drops_members_of_deleted_primary(memory_store, at):
    primary = memory_store.add(email="marty@hillvalley.edu", phone_number="111", created_at=at(0), deleted_at=at(3))
    memory_store.add(
        email="marty@hillvalley.edu",
        phone_number="222",
        link_precedence=SECONDARY,
        linked_id=primary.id,
        created_at=at(1),
    )

    assert find_cluster(memory_store, "marty@hillvalley.edu", None) == []


def test_canonical_ids_for_maps_secondaries_to_their_primary(memory_store, at):
    primary = memory_store.add(email="a@x.com", created_at=at(0))
    secondary = memory_store.add(
        email="a@x.com", phone_number="111", link_precedence=SECONDARY, linked_id=primary.id, created_at=at(1)
    )
    assert canonical_ids_for([primary, secondary]) == {primary.id}
