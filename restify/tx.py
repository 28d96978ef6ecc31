# -*- coding: utf-8 -*-

"""Transaction (unit-of-work) helpers.

The repository lifecycle wraps field filling and the save/delete call in one
atomic transaction:
- the outermost ``transaction()`` block commits on success
- any exception rolls back the whole block and propagates
- nested blocks join the outer transaction

The nesting depth is kept in a ContextVar so it's scoped to the current request.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional


@dataclass(frozen=True)
class _TxState:
    depth: int = 0


_TX_STATE: ContextVar[_TxState] = ContextVar("restify_tx_state", default=_TxState())
_AFTER_COMMIT: ContextVar[Optional[List[Callable[[], Any]]]] = ContextVar("restify_after_commit", default=None)


def in_transaction() -> bool:
    """Return True when a restify transaction block is active."""
    return _TX_STATE.get().depth > 0


def after_commit(callback: Callable[[], Any]) -> None:
    """Run `callback` once the outermost transaction has been committed.

    Outside of a transaction block the callback runs immediately.
    """
    callbacks = _AFTER_COMMIT.get()
    if callbacks is None:
        callback()
        return
    callbacks.append(callback)


@contextmanager
def transaction(session: Any = None) -> Iterator[Any]:
    """Atomic transaction scope.

    :param session: SQLAlchemy session, defaults to the restify DB session
    """
    if session is None:
        import restify

        session = restify.DB.session

    state = _TX_STATE.get()
    token = _TX_STATE.set(_TxState(depth=state.depth + 1))
    outermost = state.depth == 0
    callbacks_token = _AFTER_COMMIT.set([]) if outermost else None

    try:
        yield session
        if outermost:
            session.commit()
    except Exception:
        if outermost:
            session.rollback()
        raise
    else:
        if outermost:
            for callback in _AFTER_COMMIT.get():
                callback()
    finally:
        _TX_STATE.reset(token)
        if callbacks_token is not None:
            _AFTER_COMMIT.reset(callbacks_token)
