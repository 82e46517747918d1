import pytest

from store import (
    AppState,
    BudgetAdded,
    BudgetsLoaded,
    BudgetUpdated,
    ErrorCleared,
    RequestFailed,
    SessionEnded,
    SessionStarted,
    Store,
    TransactionAdded,
    TransactionRemoved,
    TransactionsLoaded,
    TransactionUpdated,
    reduce,
)


def test_reduce_returns_new_snapshot_and_leaves_old_untouched():
    before = AppState()
    after = reduce(before, TransactionAdded({"id": 1, "amount": 10}))

    assert before.transactions == ()
    assert [t["id"] for t in after.transactions] == [1]
    assert after is not before


def test_records_are_read_only():
    payload = {"id": 1, "amount": 10}
    state = reduce(AppState(), TransactionAdded(payload))
    payload["amount"] = 999

    assert state.transactions[0]["amount"] == 10
    with pytest.raises(TypeError):
        state.transactions[0]["amount"] = 5


def test_update_and_remove_replace_by_id():
    state = reduce(AppState(), TransactionsLoaded(({"id": 1, "x": "a"}, {"id": 2, "x": "b"})))
    state = reduce(state, TransactionUpdated({"id": 2, "x": "B"}))
    assert [t["x"] for t in state.transactions] == ["a", "B"]

    state = reduce(state, TransactionRemoved(1))
    assert [t["id"] for t in state.transactions] == [2]


def test_budget_actions():
    state = reduce(AppState(), BudgetsLoaded(({"id": 5, "spent": 0},)))
    state = reduce(state, BudgetAdded({"id": 6, "spent": 0}))
    state = reduce(state, BudgetUpdated({"id": 5, "spent": 60}))
    assert [(b["id"], b["spent"]) for b in state.budgets] == [(5, 60), (6, 0)]


def test_errors_set_and_clear():
    state = reduce(AppState(), RequestFailed("Failed to fetch budgets."))
    assert state.error == "Failed to fetch budgets."
    assert reduce(state, ErrorCleared()).error is None


def test_session_lifecycle_resets_state():
    state = reduce(AppState(), SessionStarted("tok", {"id": 1, "name": "Alice"}))
    assert state.session.is_authenticated
    state = reduce(state, TransactionAdded({"id": 1}))

    ended = reduce(state, SessionEnded())
    assert ended == AppState()
    assert not ended.session.is_authenticated


def test_store_notifies_subscribers_with_each_snapshot():
    store = Store()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(TransactionAdded({"id": 1}))
    store.dispatch(TransactionAdded({"id": 2}))
    unsubscribe()
    store.dispatch(TransactionRemoved(1))

    assert [len(s.transactions) for s in seen] == [1, 2]
    assert [t["id"] for t in store.state.transactions] == [2]


def test_unknown_action_is_rejected():
    with pytest.raises(TypeError):
        reduce(AppState(), object())
