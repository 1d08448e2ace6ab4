"""
Tests for the message store and history replay.
"""
import pytest
from django.db import DatabaseError

from messaging.exceptions import StorageError
from messaging.models import PrivateMessage
from messaging.replay import HistoryReplay
from messaging.store import MessageStore


@pytest.fixture
def store():
    return MessageStore()


@pytest.mark.django_db
def test_insert_assigns_id_and_timestamp(store, alice, bob):
    msg = store.insert_message(alice.pk, bob.pk, "hi")
    assert msg.id is not None
    assert msg.created_at is not None
    assert (msg.sender_id, msg.receiver_id, msg.content) == (alice.pk, bob.pk, "hi")


@pytest.mark.django_db
def test_ids_strictly_increase(store, alice, bob):
    ids = [store.insert_message(alice.pk, bob.pk, f"m{i}").id for i in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


@pytest.mark.django_db
def test_conversation_is_pair_scoped_and_ordered(store, alice, bob, carol):
    m1 = store.insert_message(alice.pk, bob.pk, "one")
    store.insert_message(alice.pk, carol.pk, "not for bob")
    m2 = store.insert_message(bob.pk, alice.pk, "two")
    m3 = store.insert_message(alice.pk, bob.pk, "three")

    forward = store.query_conversation(alice.pk, bob.pk)
    backward = store.query_conversation(bob.pk, alice.pk)
    assert [m.id for m in forward] == [m1.id, m2.id, m3.id]
    assert [m.id for m in backward] == [m1.id, m2.id, m3.id]
    assert [m.id for m in store.query_conversation(alice.pk, bob.pk, since=m1.id)] == [m2.id, m3.id]


@pytest.mark.django_db
def test_latest_id(store, alice, bob):
    assert store.latest_id() is None
    msg = store.insert_message(alice.pk, bob.pk, "x")
    assert store.latest_id() == msg.id


@pytest.mark.django_db
def test_latest_per_peer(store, alice, bob, carol):
    store.insert_message(alice.pk, bob.pk, "old bob")
    to_carol = store.insert_message(alice.pk, carol.pk, "carol")
    from_bob = store.insert_message(bob.pk, alice.pk, "new bob")

    latest = store.latest_per_peer(alice.pk)
    assert [m.id for m in latest] == [from_bob.id, to_carol.id]


@pytest.mark.django_db
def test_database_failure_becomes_storage_error(store, alice, bob, monkeypatch):
    def boom(*args, **kwargs):
        raise DatabaseError("disk on fire")

    monkeypatch.setattr(PrivateMessage.objects, "create", boom)
    with pytest.raises(StorageError) as exc:
        store.insert_message(alice.pk, bob.pk, "lost")
    assert "disk" not in exc.value.detail


@pytest.mark.django_db
def test_replay_is_bounded_and_oldest_first(store, alice, bob, carol):
    sent = [store.insert_message(alice.pk, bob.pk, f"m{i}").id for i in range(6)]
    sent.append(store.insert_message(carol.pk, alice.pk, "from carol").id)

    batch = HistoryReplay(store, limit=4).replay(alice.pk)
    assert [m.id for m in batch.messages] == sent[-4:]
    assert batch.boundary == sent[-1]
    assert batch.message_ids == frozenset(sent[-4:])


@pytest.mark.django_db
def test_replay_only_covers_the_users_conversations(store, alice, bob, carol):
    store.insert_message(bob.pk, carol.pk, "private to them")
    mine = store.insert_message(bob.pk, alice.pk, "for alice")

    batch = HistoryReplay(store, limit=10).replay(alice.pk)
    assert [m.id for m in batch.messages] == [mine.id]


@pytest.mark.django_db
def test_replay_stops_at_boundary(store, alice, bob):
    first = store.insert_message(bob.pk, alice.pk, "before")
    store.insert_message(bob.pk, alice.pk, "after")
    assert [m.id for m in store.recent_for_user(alice.pk, 10, up_to_id=first.id)] == [first.id]


@pytest.mark.django_db
def test_replay_of_empty_store(store, alice):
    batch = HistoryReplay(store, limit=10).replay(alice.pk)
    assert batch.boundary is None
    assert batch.messages == []


def test_replay_limit_must_be_positive(store):
    with pytest.raises(ValueError):
        HistoryReplay(store, limit=0)
