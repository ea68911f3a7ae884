"""
Unit tests for the SQLite state store.

Uses a temporary database per test; no shared state.
"""

import sqlite3
from dataclasses import replace
from datetime import timedelta

import pytest

from quizit.core.errors import StorageError
from quizit.core.models import AttemptRecord, StudyMode
from quizit.core.scheduler import compute_next_schedule
from quizit.study.composer import AdaptiveSession


@pytest.fixture
def collection_id(store):
    return store.create_collection("Capitals", "European capitals")


class TestCollections:
    def test_create_and_get(self, store, collection_id):
        collection = store.get_collection(collection_id)

        assert collection.name == "Capitals"
        assert collection.description == "European capitals"

    def test_list(self, store, collection_id):
        store.create_collection("Rivers")

        assert [c.name for c in store.list_collections()] == ["Capitals", "Rivers"]

    def test_missing_collection(self, store):
        with pytest.raises(StorageError):
            store.get_collection(999)


class TestItems:
    def test_new_item_defaults(self, store, collection_id, now):
        item = store.add_item(collection_id, "France?", "Paris", front_image="fr.png", now=now)

        assert item.ease_factor == 2.5
        assert item.interval_days == 0
        assert item.repetitions == 0
        assert item.next_review_at == now
        assert item.created_at == now
        assert item.front_image == "fr.png"
        assert item.collection_id == collection_id

    def test_add_to_missing_collection(self, store):
        with pytest.raises(StorageError):
            store.add_item(404, "Q", "A")

    def test_save_item_replaces_schedule_only(self, store, collection_id, now):
        item = store.add_item(collection_id, "Spain?", "Madrid", now=now)
        updated = compute_next_schedule(item, 5, now)

        store.save_item(updated)
        reloaded = store.get_item(item.id)

        assert reloaded == updated
        assert reloaded.front == "Spain?"
        assert reloaded.next_review_at == now + timedelta(days=1)

    def test_save_unknown_item(self, store, collection_id, now):
        item = store.add_item(collection_id, "Q", "A", now=now)
        ghost = replace(item, id=12345)

        with pytest.raises(StorageError):
            store.save_item(ghost)

    def test_due_items(self, store, collection_id, now):
        due = store.add_item(collection_id, "Italy?", "Rome", now=now)
        later = store.add_item(collection_id, "Greece?", "Athens", now=now)
        store.save_item(compute_next_schedule(later, 5, now))

        assert [i.id for i in store.get_due_items(collection_id, now)] == [due.id]

    def test_row_missing_required_field_is_rejected(self, store, collection_id, now):
        item = store.add_item(collection_id, "Q", "A", now=now)
        # ease_factor has a default but no NOT NULL constraint
        store.conn.execute("UPDATE items SET ease_factor = NULL WHERE id = ?", (item.id,))
        store.conn.commit()

        with pytest.raises(StorageError, match="ease_factor"):
            store.get_item(item.id)


class TestAttemptsAndSessions:
    def test_attempts_in_append_order(self, store, collection_id, now):
        item = store.add_item(collection_id, "Q", "A", now=now)
        for minutes, correct in [(5, True), (1, False)]:
            store.log_attempt(AttemptRecord(
                item_id=item.id,
                correct=correct,
                time_spent_ms=800,
                timestamp=now + timedelta(minutes=minutes),
            ))

        attempts = store.get_attempts(item.id)

        assert [a.correct for a in attempts] == [True, False]
        assert attempts[-1].timestamp == now + timedelta(minutes=1)

    def test_attempts_grouped_by_item(self, store, collection_id, now):
        first = store.add_item(collection_id, "Q1", "A1", now=now)
        second = store.add_item(collection_id, "Q2", "A2", now=now)
        other = store.add_item(store.create_collection("Other"), "Q3", "A3", now=now)
        for item_id in (first.id, second.id, first.id, other.id):
            store.log_attempt(AttemptRecord(item_id=item_id, correct=True, time_spent_ms=0, timestamp=now))

        grouped = store.get_attempts_by_item(collection_id)

        assert set(grouped) == {first.id, second.id}
        assert len(grouped[first.id]) == 2

    def test_session_lifecycle(self, store, collection_id, now):
        session_id = store.start_session(collection_id, StudyMode.TEST, now=now)
        store.end_session(session_id, 5, 4, 1, now=now + timedelta(minutes=3))

        [session] = store.get_sessions(collection_id)

        assert session.mode == StudyMode.TEST
        assert session.is_finished
        assert session.duration == timedelta(minutes=3)
        assert (session.items_studied, session.correct_count, session.incorrect_count) == (5, 4, 1)

    def test_store_as_session_recorder(self, store, collection_id, now):
        for n in range(3):
            store.add_item(collection_id, f"Q{n}", f"A{n}", now=now)
        session_id = store.start_session(collection_id, StudyMode.TEST, now=now)
        session = AdaptiveSession(recorder=store, session_id=session_id, clock=lambda: now)
        session.start(store.get_items(collection_id), target_count=5)

        while not session.is_complete():
            session.submit_answer(True)

        grouped = store.get_attempts_by_item(collection_id)
        assert sum(len(a) for a in grouped.values()) == 5
        assert all(a.session_id == session_id for attempts in grouped.values() for a in attempts)
        assert all(item.repetitions >= 1 for item in store.get_items(collection_id))


def test_close_is_idempotent(store):
    store.close()
    store.close()
    assert isinstance(store.conn, sqlite3.Connection)


class TestEditing:
    def test_update_collection_partial(self, store, collection_id):
        updated = store.update_collection(collection_id, name="World capitals")

        assert updated.name == "World capitals"
        assert updated.description == "European capitals"

    def test_update_missing_collection(self, store):
        with pytest.raises(StorageError):
            store.update_collection(999, name="x")

    def test_update_item_content_keeps_schedule(self, store, collection_id, now):
        item = store.add_item(collection_id, "France?", "paris", front_image="fr.png", now=now)
        store.save_item(compute_next_schedule(item, 5, now))

        updated = store.update_item_content(item.id, back="Paris", front_image="")

        assert updated.front == "France?"
        assert updated.back == "Paris"
        assert updated.front_image is None
        assert updated.repetitions == 1
        assert updated.next_review_at == now + timedelta(days=1)

    def test_update_missing_item(self, store):
        with pytest.raises(StorageError):
            store.update_item_content(404, front="Q")


class TestDeleting:
    def test_delete_item_removes_history(self, store, collection_id, now):
        item = store.add_item(collection_id, "Q", "A", now=now)
        keep = store.add_item(collection_id, "Q2", "A2", now=now)
        for item_id in (item.id, keep.id):
            store.log_attempt(AttemptRecord(item_id=item_id, correct=True, time_spent_ms=0, timestamp=now))

        store.delete_item(item.id)

        assert [i.id for i in store.get_items(collection_id)] == [keep.id]
        assert store.get_attempts(item.id) == []
        assert len(store.get_attempts(keep.id)) == 1

    def test_delete_missing_item(self, store):
        with pytest.raises(StorageError):
            store.delete_item(404)

    def test_delete_collection_cascades(self, store, collection_id, now):
        item = store.add_item(collection_id, "Q", "A", now=now)
        store.log_attempt(AttemptRecord(item_id=item.id, correct=False, time_spent_ms=0, timestamp=now))
        store.start_session(collection_id, StudyMode.LEARN, now=now)
        other_id = store.create_collection("Rivers")
        other_item = store.add_item(other_id, "Nile?", "Africa", now=now)

        store.delete_collection(collection_id)

        with pytest.raises(StorageError):
            store.get_collection(collection_id)
        assert store.get_items(collection_id) == []
        assert store.get_attempts(item.id) == []
        assert store.get_sessions(collection_id) == []
        assert store.get_item(other_item.id).front == "Nile?"

    def test_delete_missing_collection(self, store):
        with pytest.raises(StorageError):
            store.delete_collection(999)


def test_sessions_since(store, collection_id, now):
    for days_ago in (10, 3, 0):
        store.start_session(collection_id, StudyMode.TEST, now=now - timedelta(days=days_ago))

    recent = store.get_sessions(collection_id, since=now - timedelta(days=7))

    assert [s.started_at for s in recent] == [now - timedelta(days=3), now]
    assert len(store.get_sessions(collection_id)) == 3
