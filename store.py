"""Client-side application state for API consumers.

State is a frozen snapshot. Every action goes through ``reduce`` which
returns a new snapshot; ``Store`` holds the latest one and notifies
subscribers after each dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Union

Record = Mapping[str, object]


def _freeze(payload: Mapping[str, object]) -> Record:
    return MappingProxyType(dict(payload))


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    user: Optional[Record] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None


@dataclass(frozen=True)
class AppState:
    session: Session = field(default_factory=Session)
    transactions: tuple[Record, ...] = ()
    budgets: tuple[Record, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class SessionStarted:
    token: str
    user: Mapping[str, object]


@dataclass(frozen=True)
class SessionEnded:
    pass


@dataclass(frozen=True)
class TransactionsLoaded:
    items: tuple[Mapping[str, object], ...]


@dataclass(frozen=True)
class TransactionAdded:
    item: Mapping[str, object]


@dataclass(frozen=True)
class TransactionUpdated:
    item: Mapping[str, object]


@dataclass(frozen=True)
class TransactionRemoved:
    id: int


@dataclass(frozen=True)
class BudgetsLoaded:
    items: tuple[Mapping[str, object], ...]


@dataclass(frozen=True)
class BudgetAdded:
    item: Mapping[str, object]


@dataclass(frozen=True)
class BudgetUpdated:
    item: Mapping[str, object]


@dataclass(frozen=True)
class BudgetRemoved:
    id: int


@dataclass(frozen=True)
class RequestFailed:
    message: str


@dataclass(frozen=True)
class ErrorCleared:
    pass


Action = Union[
    SessionStarted,
    SessionEnded,
    TransactionsLoaded,
    TransactionAdded,
    TransactionUpdated,
    TransactionRemoved,
    BudgetsLoaded,
    BudgetAdded,
    BudgetUpdated,
    BudgetRemoved,
    RequestFailed,
    ErrorCleared,
]


def _replace_item(
    items: tuple[Record, ...], updated: Mapping[str, object]
) -> tuple[Record, ...]:
    frozen = _freeze(updated)
    return tuple(frozen if item["id"] == updated["id"] else item for item in items)


def _without(items: tuple[Record, ...], item_id: int) -> tuple[Record, ...]:
    return tuple(item for item in items if item["id"] != item_id)


def reduce(state: AppState, action: Action) -> AppState:
    if isinstance(action, SessionStarted):
        return AppState(session=Session(token=action.token, user=_freeze(action.user)))
    if isinstance(action, SessionEnded):
        return AppState()
    if isinstance(action, TransactionsLoaded):
        items = tuple(_freeze(i) for i in action.items)
        return replace(state, transactions=items, error=None)
    if isinstance(action, TransactionAdded):
        items = state.transactions + (_freeze(action.item),)
        return replace(state, transactions=items, error=None)
    if isinstance(action, TransactionUpdated):
        items = _replace_item(state.transactions, action.item)
        return replace(state, transactions=items, error=None)
    if isinstance(action, TransactionRemoved):
        items = _without(state.transactions, action.id)
        return replace(state, transactions=items, error=None)
    if isinstance(action, BudgetsLoaded):
        items = tuple(_freeze(i) for i in action.items)
        return replace(state, budgets=items, error=None)
    if isinstance(action, BudgetAdded):
        items = state.budgets + (_freeze(action.item),)
        return replace(state, budgets=items, error=None)
    if isinstance(action, BudgetUpdated):
        items = _replace_item(state.budgets, action.item)
        return replace(state, budgets=items, error=None)
    if isinstance(action, BudgetRemoved):
        items = _without(state.budgets, action.id)
        return replace(state, budgets=items, error=None)
    if isinstance(action, RequestFailed):
        return replace(state, error=action.message)
    if isinstance(action, ErrorCleared):
        return replace(state, error=None)
    raise TypeError(f"Unknown action: {action!r}")


Listener = Callable[[AppState], None]


class Store:
    def __init__(self, initial: Optional[AppState] = None) -> None:
        self._state = initial or AppState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> AppState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state
