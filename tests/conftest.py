"""Shared test fixtures for the back office test suite."""

import os

import psycopg2
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4
from pathlib import Path
from unittest.mock import Mock

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

SCHEMA_PATH = Path(__file__).parent.parent / "sql" / "schema.sql"


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Context manager that sets primary test user context."""
    with user_context(test_user_id):
        yield test_user_id


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def db():
    """PostgresClient stand-in; tests script the rows it returns."""
    return Mock(spec=PostgresClient)


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture(scope="session")
def pg():
    """
    Session-scoped PostgresClient on a real database, schema loaded.

    Uses TEST_DATABASE_URL when set, otherwise the database URL from Vault.
    Tests that need it are skipped when neither is configured or the server
    cannot be reached.
    """
    from clients.vault_client import get_database_url

    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        if not os.environ.get("VAULT_ADDR"):
            pytest.skip("No TEST_DATABASE_URL or VAULT_ADDR configured")
        url = get_database_url()

    try:
        client = PostgresClient(url)
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL unavailable: {e}")

    client.execute(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture
def reset_db_state(pg):
    """Empty every table before the test; yields the real PostgresClient."""
    pg.execute("TRUNCATE clients, invoices, audit_log")
    yield pg


@pytest.fixture
def pg_audit(reset_db_state):
    return AuditLogger(reset_db_state)


# =============================================================================
# ROW BUILDERS
# =============================================================================


def make_client_row(**overrides) -> dict:
    """A clients table row as RealDictCursor returns it."""
    row = {
        "id": uuid4(),
        "client_id": "MAGA123456",
        "first_name": "Maria",
        "last_name": "Garcia",
        "email": "maria.garcia@gmail.com",
        "phone": "+1 555 010 2030",
        "date_of_birth": date(1988, 4, 17),
        "gender": "female",
        "address": None,
        "city": None,
        "state": None,
        "zip_code": None,
        "passport_number": "X1234567",
        "passport_country": "Mexico",
        "visa_type": "B1/B2",
        "visa_application_date": date(2024, 2, 1),
        "visa_expiration_date": None,
        "special_requirements": [],
        "current_applications": [],
        "travel_history": [],
        "emergency_contact": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    row.update(overrides)
    return row


def make_invoice_row(**overrides) -> dict:
    """An invoices table row: one 5 x 100 item at 10% tax, no deposit."""
    row = {
        "id": uuid4(),
        "invoice_number": "INV-0001",
        "visa_case_id": "CASE-1",
        "client_id": "MAGA123456",
        "client_name": "Maria Garcia",
        "client_email": "maria.garcia@gmail.com",
        "items": [{
            "description": "Visa application processing",
            "quantity": "5",
            "unit_price": "100",
            "item_type": "service",
            "amount": "500",
        }],
        "subtotal": Decimal("500"),
        "tax_rate": Decimal("10"),
        "tax_amount": Decimal("50"),
        "total_amount": Decimal("550"),
        "deposit_amount": Decimal("0"),
        "due_amount": Decimal("550"),
        "currency": "USD",
        "status": "draft",
        "due_date": None,
        "issued_at": None,
        "paid_at": None,
        "cancelled_at": None,
        "notes": None,
        "created_by": "system",
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    row.update(overrides)
    return row


@pytest.fixture
def client_row():
    """Builder for clients rows: client_row(email=...)."""
    return make_client_row


@pytest.fixture
def invoice_row():
    """Builder for invoices rows: invoice_row(status="issued")."""
    return make_invoice_row
