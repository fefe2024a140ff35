"""
Visa agency back office API.

Run with:
    python main.py
or
    uvicorn main:create_app --factory
"""

import logging
import os

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from api.billing import create_billing_router
from api.clients import create_clients_router
from api.errors import register_error_handlers
from api.imports import create_import_router
from api.middleware import RequestIDMiddleware, ActorMiddleware
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url, get_agency_settings
from core.audit import AuditLogger
from core.config import AgencyConfig
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: AgencyConfig) -> dict:
    """Wire services around one shared database client."""
    audit = AuditLogger(postgres)
    return {
        "client": ClientService(postgres, audit),
        "invoice": InvoiceService(postgres, audit, config),
    }


def create_app(services: dict | None = None, config: AgencyConfig | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Without arguments, settings and the database URL are read from Vault.
    """
    if config is None:
        config = AgencyConfig(**get_agency_settings())
    if services is None:
        services = build_services(PostgresClient(get_database_url()), config)

    app = FastAPI(title="Visa Agency Back Office")
    app.add_middleware(ActorMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_billing_router(services, config), prefix="/api")
    app.include_router(create_clients_router(services, config), prefix="/api")
    app.include_router(create_import_router(services), prefix="/api")

    logger.info(f"API ready (currency={config.default_currency}, page_size={config.page_size})")
    return app


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )
