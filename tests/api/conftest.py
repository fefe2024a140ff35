"""API test fixtures: TestClient over the real app wiring with mocked services."""

from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from core.config import AgencyConfig
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def client_service():
    service = Mock(spec=ClientService)
    service.find_by_email.return_value = None
    return service


@pytest.fixture
def invoice_service():
    return Mock(spec=InvoiceService)


@pytest.fixture
def services(client_service, invoice_service):
    return {
        "client": client_service,
        "invoice": invoice_service,
    }


@pytest.fixture
def config():
    return AgencyConfig()


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services, config):
    """FastAPI app with middleware, error handlers, and every router."""
    from main import create_app

    return create_app(services, config)


@pytest.fixture
def client(app):
    """Test client acting as the primary test user."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["X-User-ID"] = "00000000-0000-0000-0000-000000000001"
    return c


@pytest.fixture
def anonymous_client(app):
    """Test client without an X-User-ID header (system actor)."""
    return TestClient(app, raise_server_exceptions=False)
