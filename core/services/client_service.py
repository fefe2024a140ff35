"""
Client service: persistence for visa applicants.

Emails are unique and matched exactly (case-sensitive), which is what the
CSV importer relies on for duplicate detection.
"""

import logging
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, AuditEntity
from core.models import Client, ClientCreate
from utils.timezone import now_utc, epoch_millis

logger = logging.getLogger(__name__)

_MAX_CLIENT_ID_SUFFIX = 100


class ClientService:
    """Service for client operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def _client_id_taken(self, client_id: str) -> bool:
        row = self.postgres.execute_single(
            "SELECT 1 AS taken FROM clients WHERE client_id = %s",
            (client_id,)
        )
        return row is not None

    def generate_client_id(self, first_name: str | None, last_name: str | None) -> str:
        """
        Generate a human-friendly unique client ID.

        Format: first two letters of each name + last 6 digits of the epoch
        millisecond clock, e.g. MAGA482913. On collision a two-digit counter
        is appended (MAGA48291301, MAGA48291302, ...).

        Raises:
            ValueError: If no free ID is found
        """
        first = (first_name or "")[:2].upper() or "XX"
        last = (last_name or "")[:2].upper() or "XX"
        base = f"{first}{last}{str(epoch_millis())[-6:]}"

        if not self._client_id_taken(base):
            return base

        for counter in range(1, _MAX_CLIENT_ID_SUFFIX + 1):
            candidate = f"{base}{counter:02d}"
            if not self._client_id_taken(candidate):
                return candidate

        raise ValueError(f"Could not allocate a unique client ID for {base}")

    def create(self, data: ClientCreate) -> Client:
        """
        Create a new client.

        Args:
            data: Client creation data; client_id is generated when missing

        Returns:
            Created client
        """
        client_id = data.client_id or self.generate_client_id(data.first_name, data.last_name)
        emergency_contact = (
            Json(data.emergency_contact.model_dump(mode="json"))
            if data.emergency_contact else None
        )
        now = now_utc()

        row = self.postgres.execute_returning(
            """
            INSERT INTO clients (
                id, client_id, first_name, last_name, email, phone,
                date_of_birth, gender, address, city, state, zip_code,
                passport_number, passport_country, visa_type,
                visa_application_date, visa_expiration_date,
                special_requirements, current_applications, travel_history,
                emergency_contact, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s,
                %s, %s,
                %s, %s, %s,
                %s, %s, %s
            )
            RETURNING *
            """,
            (
                uuid4(), client_id, data.first_name, data.last_name, data.email, data.phone,
                data.date_of_birth, data.gender.value, data.address, data.city, data.state, data.zip_code,
                data.passport_number, data.passport_country, data.visa_type,
                data.visa_application_date, data.visa_expiration_date,
                data.special_requirements, data.current_applications, data.travel_history,
                emergency_contact, now, now
            )
        )[0]

        client = Client.model_validate(row)

        self.audit.log_change(
            entity_type=AuditEntity.CLIENT,
            entity_id=client.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        logger.info(f"Created client {client.client_id}")
        return client

    def get_by_id(self, id: UUID) -> Client | None:
        """Get client by primary key, None if not found."""
        row = self.postgres.execute_single(
            "SELECT * FROM clients WHERE id = %s",
            (id,)
        )
        return Client.model_validate(row) if row else None

    def find_by_email(self, email: str) -> Client | None:
        """Exact, case-sensitive email lookup."""
        row = self.postgres.execute_single(
            "SELECT * FROM clients WHERE email = %s",
            (email,)
        )
        return Client.model_validate(row) if row else None

    def list_all(self, limit: int = 50, offset: int = 0, search: str | None = None) -> list[Client]:
        """
        List clients, newest first.

        Args:
            limit: Maximum results
            offset: Offset for pagination
            search: Optional case-insensitive match on name, email, phone,
                passport number or client ID
        """
        where, params = self._search_clause(search)
        rows = self.postgres.execute(
            f"""
            SELECT * FROM clients
            {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            params + (limit, offset)
        )
        return [Client.model_validate(row) for row in rows]

    def count(self, search: str | None = None) -> int:
        """Number of clients matching the same filter as list_all()."""
        where, params = self._search_clause(search)
        return self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM clients {where}",
            params
        ) or 0

    def search(self, query: str, limit: int = 10) -> list[Client]:
        """Quick lookup for pickers: first `limit` matches for query."""
        if not query or not query.strip():
            return []
        return self.list_all(limit=limit, search=query.strip())

    @staticmethod
    def _search_clause(search: str | None) -> tuple[str, tuple]:
        if not search:
            return "", ()

        pattern = f"%{search}%"
        return (
            """
            WHERE first_name ILIKE %s
               OR last_name ILIKE %s
               OR email ILIKE %s
               OR phone ILIKE %s
               OR passport_number ILIKE %s
               OR client_id ILIKE %s
            """,
            (pattern,) * 6,
        )
