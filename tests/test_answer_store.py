from learnhub.session.answer_store import AnswerStore


def test_last_write_wins() -> None:
    store = AnswerStore()
    store.set_answer("q1", 0)
    store.set_answer("q1", 2)
    assert store.get("q1") == 2
    assert store.get_all() == {"q1": 2}
    assert len(store) == 1


def test_initial_answers_are_not_pending() -> None:
    store = AnswerStore({"q1": 1})
    assert "q1" in store
    assert store.has_pending is False


def test_snapshot_and_drain_clears_pending() -> None:
    store = AnswerStore()
    store.set_answer("q1", 1)
    store.set_answer("q2", [0, 2])
    assert store.snapshot_and_drain() == {"q1": 1, "q2": [0, 2]}
    assert store.has_pending is False
    assert store.snapshot_and_drain() == {}


def test_restore_pending_after_failed_flush() -> None:
    store = AnswerStore()
    store.set_answer("q1", 1)
    drained = store.snapshot_and_drain()
    store.set_answer("q2", 3)
    store.restore_pending(drained)
    assert store.drain_pending() == {"q1", "q2"}


def test_get_all_returns_a_copy() -> None:
    store = AnswerStore({"q1": 1})
    snapshot = store.get_all()
    snapshot["q1"] = 99
    assert store.get("q1") == 1


def test_drain_twice_without_writes() -> None:
    store = AnswerStore()
    store.set_answer("q1", "x")
    store.set_answer("q1", "y")
    assert store.drain_pending() == {"q1"}
    assert store.drain_pending() == set()
    assert store.get_all() == {"q1": "y"}
