import json

from verbavox.dashboard import compute_stats
from verbavox.events import EXERCISE_COMPLETED, EventBus
from verbavox.models import AttemptResult, SaveOutcome
from verbavox.primary import PrimaryStoreError
from verbavox.results import RESULTS_TABLE, ResultStore
from verbavox.storage import FallbackStore, MemoryKeyValueStore


class FakePrimary:
    def __init__(self, insert_error=None, select_error=None, rows=None):
        self.insert_error = insert_error
        self.select_error = select_error
        self.rows = rows or []
        self.inserted = []

    def insert(self, table, record):
        if self.insert_error is not None:
            raise self.insert_error
        self.inserted.append((table, record))

    def select(self, table, filters=None, order=None, limit=None):
        if self.select_error is not None:
            raise self.select_error
        return list(self.rows)


class BrokenKeyValueStore(MemoryKeyValueStore):
    def set(self, key, value):
        raise OSError("quota exceeded")


def _result(user="alice", exercise_id=1, completed_at="2025-03-20T10:00:00"):
    return AttemptResult(
        user_id=user,
        exercise_id=exercise_id,
        user_text="hello there",
        accuracy=75,
        mistakes=1,
        total_words=4,
        completed_at=completed_at,
        exercise_title="Greetings",
    )


def _fallback(kv=None):
    return FallbackStore(kv or MemoryKeyValueStore())


def test_primary_success_also_writes_fallback():
    primary = FakePrimary()
    store = ResultStore(_fallback(), primary=primary)

    report = store.save(_result())
    assert report.outcome is SaveOutcome.PRIMARY
    assert report.saved_to_primary and report.saved_to_fallback
    table, record = primary.inserted[0]
    assert table == RESULTS_TABLE
    assert record["user_id"] == "alice"
    assert "exercise_title" not in record
    assert len(store.fallback.list_results("alice")) == 1


def test_missing_table_falls_back():
    primary = FakePrimary(insert_error=PrimaryStoreError("42P01", 'relation "exercise_results" does not exist'))
    store = ResultStore(_fallback(), primary=primary)

    report = store.save(_result())
    assert report.outcome is SaveOutcome.FALLBACK
    assert not report.saved_to_primary
    assert report.saved_to_fallback


def test_unexpected_errors_are_absorbed():
    store = ResultStore(_fallback(), primary=FakePrimary(insert_error=PrimaryStoreError("500", "boom")))
    assert store.save(_result()).outcome is SaveOutcome.FALLBACK

    store = ResultStore(_fallback(), primary=FakePrimary(insert_error=KeyError("weird")))
    assert store.save(_result()).outcome is SaveOutcome.FALLBACK


def test_both_stores_failing_reports_failure():
    primary = FakePrimary(insert_error=PrimaryStoreError("42501", "permission denied"))
    store = ResultStore(_fallback(BrokenKeyValueStore()), primary=primary)

    report = store.save(_result())
    assert report.outcome is SaveOutcome.FAILED
    assert not report.saved_to_primary
    assert not report.saved_to_fallback
    assert "quota exceeded" in report.error


def test_primary_skipped_without_identity():
    primary = FakePrimary()
    store = ResultStore(_fallback(), primary=primary)

    report = store.save(_result(user="anonymous"))
    assert report.outcome is SaveOutcome.FALLBACK
    assert primary.inserted == []


def test_primary_success_with_fallback_failure_is_still_primary():
    store = ResultStore(_fallback(BrokenKeyValueStore()), primary=FakePrimary())
    report = store.save(_result())
    assert report.outcome is SaveOutcome.PRIMARY
    assert report.saved_to_primary
    assert not report.saved_to_fallback


def test_completion_event_is_emitted():
    bus = EventBus()
    received = []
    bus.subscribe(EXERCISE_COMPLETED, received.append)
    store = ResultStore(_fallback(), events=bus)

    store.save(_result(user="bob", exercise_id=5))
    assert received == [
        {
            "exercise_id": 5,
            "accuracy": 75,
            "saved_to_database": False,
            "saved_to_fallback": True,
            "user_id": "bob",
        }
    ]


def test_no_event_when_save_fails():
    bus = EventBus()
    received = []
    bus.subscribe(EXERCISE_COMPLETED, received.append)
    store = ResultStore(_fallback(BrokenKeyValueStore()), events=bus)

    assert store.save(_result()).outcome is SaveOutcome.FAILED
    assert received == []


def test_history_prefers_primary_rows():
    rows = [_result(exercise_id=9).to_mapping(), {"exercise_id": 1}]
    store = ResultStore(_fallback(), primary=FakePrimary(rows=rows))
    store.fallback.append(_result(exercise_id=3))

    history = store.history("alice")
    assert [r.exercise_id for r in history] == [9]


def test_history_falls_back_to_local_results_including_anonymous():
    primary = FakePrimary(select_error=PrimaryStoreError("42P01", "does not exist"))
    store = ResultStore(_fallback(), primary=primary)
    store.fallback.append(_result(exercise_id=1, completed_at="2025-03-18T10:00:00"))
    store.fallback.append(_result(user="anonymous", exercise_id=2, completed_at="2025-03-19T10:00:00"))
    store.fallback.append(_result(user="carol", exercise_id=3, completed_at="2025-03-20T10:00:00"))

    history = store.history("alice")
    assert [r.exercise_id for r in history] == [2, 1]
    assert [r.exercise_id for r in store.history(None)] == [2]
    assert len(store.all_results()) == 3


def test_partial_fallback_failure_reports_failed_without_storing():
    class GlobalKeyFails(MemoryKeyValueStore):
        def set(self, key, value):
            if key == "englishbyear_results":
                raise OSError("quota exceeded")
            super().set(key, value)

    store = ResultStore(_fallback(GlobalKeyFails()))
    report = store.save(_result())
    assert report.outcome is SaveOutcome.FAILED
    assert not report.saved_to_fallback
    assert store.fallback.list_results("alice") == []


def test_rows_with_bad_timestamps_are_skipped():
    kv = MemoryKeyValueStore()
    store = ResultStore(_fallback(kv))
    bad = dict(_result(exercise_id=1).to_mapping(), completed_at="yesterday")
    good = _result(exercise_id=2).to_mapping()
    kv.set("englishbyear_results_alice", json.dumps([bad, good]))

    history = store.history("alice")
    assert [r.exercise_id for r in history] == [2]
    assert compute_stats(history).exercises_completed == 1


def test_fractional_seconds_of_any_length_are_normalised():
    row = dict(_result().to_mapping(), completed_at="2025-03-20T10:00:00.12345+00:00")
    result = AttemptResult.from_mapping(row)
    assert result.completed_at == "2025-03-20T10:00:00.123450+00:00"
