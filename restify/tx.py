"""Request transaction (unit-of-work) helpers.

- the endpoint pipeline marks every write with ``write_point``
- with ATOMIC_WRITES (default) a write point only flushes, the request boundary commits once
  on success and rolls back on any error: batch and Set requests are all-or-nothing
- without ATOMIC_WRITES every write point commits, earlier batch chunks stay committed
  when a later chunk fails

The request state is kept in a ContextVar.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

from .config import get_config


@dataclass(frozen=True)
class _TxState:
    in_request: bool = False
    writes_seen: bool = False


_TX_STATE: ContextVar[_TxState] = ContextVar("restify_tx_state", default=_TxState())


def begin_request() -> Token[_TxState]:
    return _TX_STATE.set(_TxState(in_request=True, writes_seen=False))


def end_request(token: Token[_TxState]) -> None:
    _TX_STATE.reset(token)


def in_request() -> bool:
    return _TX_STATE.get().in_request


def has_writes() -> bool:
    return _TX_STATE.get().writes_seen


def note_write() -> None:
    state = _TX_STATE.get()
    if state.in_request and not state.writes_seen:
        _TX_STATE.set(_TxState(in_request=True, writes_seen=True))


def atomic() -> bool:
    return bool(get_config("ATOMIC_WRITES"))


def write_point(session) -> None:
    """Flush (atomic mode) or commit the pending changes of `session`"""
    note_write()
    if atomic():
        session.flush()
    else:
        session.commit()


def should_commit() -> bool:
    """Return True when the request boundary has to commit"""
    return has_writes()
