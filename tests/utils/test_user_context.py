"""Tests for utils/user_context.py - Actor propagation via contextvars."""

from uuid import uuid4

import pytest

from utils.user_context import (
    current_actor,
    get_current_user_id_or_none,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)


class TestSetAndClear:
    """Tests for set_current_user_id() and clear_current_user_id()."""

    def test_none_without_set(self):
        clear_current_user_id()  # Ensure clean state
        assert get_current_user_id_or_none() is None

    def test_set_then_get_returns_uuid(self):
        """Setting then getting should return the same UUID."""
        user_id = uuid4()
        set_current_user_id(user_id)
        assert get_current_user_id_or_none() == user_id
        clear_current_user_id()

    def test_clear_then_get_is_none(self):
        set_current_user_id(uuid4())
        clear_current_user_id()
        assert get_current_user_id_or_none() is None


class TestCurrentActor:
    """Tests for current_actor()."""

    def test_system_without_user(self):
        assert current_actor() == "system"

    def test_user_id_as_string(self):
        user_id = uuid4()
        with user_context(user_id):
            assert current_actor() == str(user_id)


class TestUserContextManager:
    """Tests for user_context() context manager."""

    def test_sets_and_clears(self):
        """Context manager should set inside, clear after."""
        clear_current_user_id()  # Ensure clean state
        user_id = uuid4()

        with user_context(user_id):
            assert get_current_user_id_or_none() == user_id

        assert get_current_user_id_or_none() is None

    def test_restores_previous(self):
        """Nested context managers should restore outer context."""
        outer_id = uuid4()
        inner_id = uuid4()

        with user_context(outer_id):
            with user_context(inner_id):
                assert get_current_user_id_or_none() == inner_id

            assert get_current_user_id_or_none() == outer_id

    def test_clears_on_exception(self):
        """Context should be cleared even if exception is raised."""
        clear_current_user_id()

        with pytest.raises(ValueError):
            with user_context(uuid4()):
                raise ValueError("test exception")

        assert get_current_user_id_or_none() is None
