import json

from verbavox.models import AttemptResult
from verbavox.storage import FallbackStore, MemoryKeyValueStore, SQLiteKeyValueStore, StorageError


def _result(user="alice", exercise_id=1, accuracy=80, completed_at="2025-03-20T10:00:00"):
    return AttemptResult(
        user_id=user,
        exercise_id=exercise_id,
        user_text="some words",
        accuracy=accuracy,
        mistakes=2,
        total_words=10,
        completed_at=completed_at,
    )


def test_sqlite_store_round_trip(tmp_path):
    kv = SQLiteKeyValueStore(tmp_path / "fallback.db")
    assert kv.get("missing") is None

    kv.set("key", "one")
    kv.set("key", "two")
    assert kv.get("key") == "two"
    assert SQLiteKeyValueStore(tmp_path / "fallback.db").get("key") == "two"


def test_append_writes_user_and_global_lists_newest_first():
    kv = MemoryKeyValueStore()
    store = FallbackStore(kv, namespace="englishbyear")

    store.append(_result(exercise_id=1))
    store.append(_result(exercise_id=2))
    store.append(_result(user="anonymous", exercise_id=3))

    assert [r.exercise_id for r in store.list_results("alice")] == [2, 1]
    assert [r.exercise_id for r in store.list_results("anonymous")] == [3]
    assert [r.exercise_id for r in store.list_results()] == [3, 2, 1]
    assert json.loads(kv.get("englishbyear_results_alice"))[0]["exercise_id"] == 2
    assert kv.get("englishbyear_results") is not None


def test_repeat_attempts_are_all_kept():
    store = FallbackStore(MemoryKeyValueStore())
    for _ in range(3):
        store.append(_result(exercise_id=7))
    assert len(store.list_results("alice")) == 3


def test_lists_never_exceed_their_caps():
    store = FallbackStore(MemoryKeyValueStore(), user_cap=5, global_cap=8)
    for index in range(20):
        store.append(_result(user="alice" if index % 2 else "bob", exercise_id=index))
        assert len(store.list_results("alice")) <= 5
        assert len(store.list_results("bob")) <= 5
        assert len(store.list_results()) <= 8

    # Oldest entries are the ones dropped.
    assert [r.exercise_id for r in store.list_results()] == list(range(19, 11, -1))
    assert [r.exercise_id for r in store.list_results("alice")] == [19, 17, 15, 13, 11]


def test_default_caps():
    store = FallbackStore(MemoryKeyValueStore())
    for index in range(60):
        store.append(_result(exercise_id=index))
    assert len(store.list_results("alice")) == 50
    assert len(store.list_results()) == 60


def test_corrupt_and_malformed_entries_are_skipped():
    kv = MemoryKeyValueStore()
    store = FallbackStore(kv)
    kv.set("englishbyear_results_alice", "{broken")
    assert store.list_results("alice") == []

    kv.set("englishbyear_results_alice", json.dumps([{"exercise_id": 1}, _result().to_mapping()]))
    assert len(store.list_results("alice")) == 1


def test_write_failures_become_storage_errors():
    class BrokenStore(MemoryKeyValueStore):
        def set(self, key, value):
            raise OSError("disk full")

    store = FallbackStore(BrokenStore())
    try:
        store.append(_result())
    except StorageError:
        pass
    else:
        raise AssertionError("Expected StorageError when the store cannot be written")


class FailingKeyStore(MemoryKeyValueStore):
    def __init__(self, failing_key):
        super().__init__()
        self.failing_key = failing_key

    def set(self, key, value):
        if key == self.failing_key:
            raise OSError(f"cannot write {key}")
        super().set(key, value)


def test_failed_global_write_leaves_user_list_untouched():
    store = FallbackStore(FailingKeyStore("englishbyear_results"))
    try:
        store.append(_result())
    except StorageError:
        pass
    else:
        raise AssertionError("Expected StorageError when the shared list cannot be written")
    assert store.list_results("alice") == []


def test_failed_user_write_restores_global_list():
    kv = FailingKeyStore("unused")
    store = FallbackStore(kv)
    store.append(_result(exercise_id=1))

    kv.failing_key = "englishbyear_results_alice"
    try:
        store.append(_result(exercise_id=2))
    except StorageError:
        pass
    else:
        raise AssertionError("Expected StorageError when the user list cannot be written")
    assert [r.exercise_id for r in store.list_results()] == [1]
    assert [r.exercise_id for r in store.list_results("alice")] == [1]
