"""Tests for the client and invoice audit trail."""

import pytest
from uuid import uuid4


class TestAuditAction:
    """Tests for AuditAction enum."""

    def test_has_create_update_delete(self):
        """AuditAction has required values."""
        from core.audit import AuditAction

        assert AuditAction.CREATE.value == "create"
        assert AuditAction.UPDATE.value == "update"
        assert AuditAction.DELETE.value == "delete"


class TestComputeChanges:
    """Tests for compute_changes utility function."""

    def test_detects_changed_fields(self):
        """Different values for same key detected."""
        from core.audit import compute_changes

        old = {"status": "draft", "total_amount": "550"}
        new = {"status": "issued", "total_amount": "550"}

        changes = compute_changes(old, new)

        assert changes == {"status": {"old": "draft", "new": "issued"}}

    def test_detects_added_and_removed_fields(self):
        from core.audit import compute_changes

        changes = compute_changes({"notes": "call first"}, {"due_date": "2024-04-01"})

        assert changes["notes"] == {"old": "call first", "new": None}
        assert changes["due_date"] == {"old": None, "new": "2024-04-01"}

    def test_excludes_updated_at_by_default(self):
        """updated_at not reported as change."""
        from core.audit import compute_changes

        old = {"status": "draft", "updated_at": "2024-03-01T12:00:00Z"}
        new = {"status": "draft", "updated_at": "2024-03-02T12:00:00Z"}

        assert compute_changes(old, new) == {}

    def test_custom_exclude_fields(self):
        """Can exclude additional fields."""
        from core.audit import compute_changes

        old = {"status": "draft", "issued_at": None}
        new = {"status": "issued", "issued_at": "2024-03-01T12:00:00Z"}

        changes = compute_changes(old, new, exclude_fields={"updated_at", "issued_at"})

        assert "status" in changes
        assert "issued_at" not in changes


class TestAuditLogger:
    """Tests for AuditLogger class."""

    def _inserted_params(self, db):
        query, params = db.execute.call_args.args
        assert "INSERT INTO audit_log" in query
        return params

    def test_log_change_inserts_row(self, db):
        from core.audit import AuditLogger, AuditAction

        entity_id = uuid4()
        AuditLogger(db).log_change(
            entity_type="invoice",
            entity_id=entity_id,
            action=AuditAction.CREATE,
            changes={"created": {"invoice_number": "INV-0001"}}
        )

        params = self._inserted_params(db)
        assert params[2] == "invoice"
        assert params[3] == entity_id
        assert params[4] == "create"
        assert params[5].adapted == {"created": {"invoice_number": "INV-0001"}}

    def test_log_change_uses_context_user(self, db, as_test_user, test_user_id):
        """Defaults to current user context."""
        from core.audit import AuditLogger, AuditAction

        AuditLogger(db).log_change("client", uuid4(), AuditAction.CREATE, {"created": {}})

        assert self._inserted_params(db)[1] == test_user_id

    def test_log_change_without_user_is_null(self, db):
        """Imports and other system work are attributed to no one."""
        from core.audit import AuditLogger, AuditAction

        AuditLogger(db).log_change("client", uuid4(), AuditAction.CREATE, {"created": {}})

        assert self._inserted_params(db)[1] is None

    def test_log_change_explicit_user_overrides(self, db, as_test_user, test_user_b_id):
        """Explicit user_id overrides context."""
        from core.audit import AuditLogger, AuditAction

        AuditLogger(db).log_change(
            entity_type="invoice",
            entity_id=uuid4(),
            action=AuditAction.UPDATE,
            changes={"status": {"old": "draft", "new": "issued"}},
            user_id=test_user_b_id
        )

        assert self._inserted_params(db)[1] == test_user_b_id

    def test_get_entity_history_queries_entity(self, db):
        from core.audit import AuditLogger

        entity_id = uuid4()
        db.execute.return_value = [{"action": "update"}, {"action": "create"}]

        history = AuditLogger(db).get_entity_history("invoice", entity_id)

        assert [h["action"] for h in history] == ["update", "create"]
        query, params = db.execute.call_args.args
        assert "ORDER BY created_at DESC" in query
        assert params == ("invoice", entity_id)

    def test_rejects_unknown_entity_type(self, db):
        from core.audit import AuditLogger, AuditAction

        with pytest.raises(ValueError):
            AuditLogger(db).log_change("customer", uuid4(), AuditAction.CREATE, {"created": {}})
        db.execute.assert_not_called()
