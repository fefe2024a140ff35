"""
Audit trail for client and invoice changes.

One append-only audit_log row per create, update or delete. Rows carry the
acting staff member's ID when a request identified one; imports and other
system work are stored with a NULL user.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.user_context import get_current_user_id_or_none
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntity(str, Enum):
    """Entity types that are audited."""

    CLIENT = "client"
    INVOICE = "invoice"


# Bookkeeping columns that change on every write
_IGNORED_FIELDS = frozenset({"updated_at"})


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-ready snapshots.

    Returns:
        {field: {"old": ..., "new": ...}} for every field whose value differs.
        A field missing on one side counts as None there.
    """
    exclude = _IGNORED_FIELDS if exclude_fields is None else exclude_fields

    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(set(old) | set(new))
        if key not in exclude and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writes and reads audit_log rows.

    Pass snapshots through model_dump(mode="json") first; Decimal amounts,
    dates and UUIDs must already be JSON-compatible.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: AuditEntity | str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None
    ) -> None:
        """
        Append one audit row.

        changes by action:
            CREATE  {"created": snapshot}
            UPDATE  output of compute_changes()
            DELETE  {"deleted": snapshot}
        """
        self.postgres.execute(
            """
            INSERT INTO audit_log (id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                user_id or get_current_user_id_or_none(),
                AuditEntity(entity_type).value,
                entity_id,
                action.value,
                Json(changes),
                now_utc()
            )
        )

    def get_entity_history(self, entity_type: AuditEntity | str, entity_id: UUID) -> list[dict[str, Any]]:
        """Every audit row for one entity, newest first."""
        return self.postgres.execute(
            """
            SELECT id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (AuditEntity(entity_type).value, entity_id)
        )
