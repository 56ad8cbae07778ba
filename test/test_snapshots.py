import pydantic_core
import pytest

from reversible_engine.snapshots import SnapshotStore


def test_checkpoint_appends_in_order():
    store = SnapshotStore()
    first = store.checkpoint({"lines": [[20, 20]]})
    second = store.checkpoint({"lines": [[20, 20], [30, 30]]})
    assert len(store) == 2
    assert [s.sequence for s in store] == [first.sequence, second.sequence]
    assert first.sequence < second.sequence
    assert first.timestamp <= second.timestamp
    assert store.latest == second


def test_checkpoint_is_a_deep_copy():
    data = {"lines": [[20, 20]]}
    snapshot = SnapshotStore().checkpoint(data)
    data["lines"].append([30, 30])
    assert snapshot.data == {"lines": [[20, 20]]}


def test_snapshots_are_frozen():
    snapshot = SnapshotStore().checkpoint({})
    with pytest.raises(pydantic_core.ValidationError):
        snapshot.sequence = 99


def test_rollback_walks_back_through_snapshots():
    store = SnapshotStore()
    store.checkpoint({"lines": [1]})
    store.checkpoint({"lines": [1, 2]})
    store.checkpoint({"lines": [1, 2, 3]})

    outcome = store.rollback_one()
    assert outcome.removed.data == {"lines": [1, 2, 3]}
    assert outcome.restored.data == {"lines": [1, 2]}

    outcome = store.rollback_one()
    assert outcome.restored.data == {"lines": [1]}

    outcome = store.rollback_one()
    assert outcome.removed is not None
    assert outcome.restored is None
    assert not outcome.is_empty


def test_rollback_on_empty_store():
    outcome = SnapshotStore().rollback_one()
    assert outcome.is_empty


def test_rollback_with_diverged_data_keeps_newest_snapshot():
    store = SnapshotStore()
    store.checkpoint({"lines": []})
    newest = store.checkpoint({"lines": [1]})

    outcome = store.rollback_one({"lines": [1, 2]})
    assert outcome.removed is None
    assert outcome.restored == newest
    assert len(store) == 2

    outcome = store.rollback_one({"lines": [1]})
    assert outcome.removed == newest
    assert outcome.restored.data == {"lines": []}


def test_rollback_with_diverged_state():
    store = SnapshotStore()
    snapshot = store.checkpoint({}, state="drawing")
    outcome = store.rollback_one({}, state="closed")
    assert outcome.restored == snapshot
    assert outcome.removed is None


def test_bounded_store_evicts_oldest():
    store = SnapshotStore(capacity=2)
    for i in range(3):
        store.checkpoint({"i": i})
    assert [s.data["i"] for s in store] == [1, 2]


def test_discard_after_drops_only_newer_snapshots():
    store = SnapshotStore()
    first = store.checkpoint({"i": 1})
    store.checkpoint({"i": 2})
    store.checkpoint({"i": 3})

    assert store.discard_after(first.sequence) == 2
    assert list(store) == [first]
    assert store.discard_after(first.sequence) == 0
    assert store.last_sequence == 3

    # Sequences keep counting after a discard.
    assert store.checkpoint({"i": 4}).sequence == 4


def test_invalid_capacity():
    with pytest.raises(ValueError):
        SnapshotStore(capacity=0)
