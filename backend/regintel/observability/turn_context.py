"""
Turn context.

Stores per-turn identifiers (turn_id, tenant_id, conversation_id) in
ContextVars so every log line emitted while a turn is handled can carry them.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

_turn_id_var: ContextVar[str] = ContextVar("turn_id", default="")
_tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="")
_conversation_id_var: ContextVar[str] = ContextVar("conversation_id", default="")


def get_turn_id() -> str:
    """Get the current turn ID from context."""
    return _turn_id_var.get()


def get_tenant_id() -> str:
    return _tenant_id_var.get()


def get_conversation_id() -> str:
    return _conversation_id_var.get()


def new_turn_id() -> str:
    return uuid4().hex


@contextmanager
def bind_turn(
    tenant_id: str | None = None,
    conversation_id: str | None = None,
    turn_id: str | None = None,
) -> Iterator[str]:
    """Bind turn identifiers for the duration of the block and yield the turn ID.

    Previous values are restored on exit. Streaming turns re-enter the binding
    for each step rather than holding it across yields.
    """
    turn_id = turn_id or new_turn_id()
    previous = (_turn_id_var.get(), _tenant_id_var.get(), _conversation_id_var.get())
    _turn_id_var.set(turn_id)
    _tenant_id_var.set(tenant_id or "")
    _conversation_id_var.set(conversation_id or "")
    try:
        yield turn_id
    finally:
        _turn_id_var.set(previous[0])
        _tenant_id_var.set(previous[1])
        _conversation_id_var.set(previous[2])
