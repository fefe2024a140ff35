"""Propagate the acting staff member through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id_or_none() -> UUID | None:
    """Current user ID, or None for system/background work."""
    return _current_user_id.get()


def current_actor() -> str:
    """Label for created_by style columns: the user ID, or 'system'."""
    user_id = _current_user_id.get()
    return str(user_id) if user_id is not None else "system"


def set_current_user_id(user_id: UUID) -> None:
    """Set current user ID in context. Called by ActorMiddleware."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """
    Clear user context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Temporarily act as the given user.

    Example:
        with user_context(staff_id):
            invoice_service.create(data)  # audited as staff_id
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
