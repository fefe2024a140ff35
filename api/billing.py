"""Invoice endpoints under /api/billing/invoices."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.encoders import jsonable_encoder

from api.base import success_response, pagination_meta
from core.config import AgencyConfig
from core.invoice_totals import format_amount
from core.models import InvoiceCreate, InvoiceUpdate, InvoiceStatus, TotalsPreviewRequest
from utils.pagination import paginate


def create_billing_router(services: dict, config: AgencyConfig) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]

    @router.get("/billing/invoices")
    async def list_invoices(
        request: Request,
        status: InvoiceStatus | None = Query(None),
        client_id: str | None = Query(None, alias="clientId"),
        visa_case_id: str | None = Query(None, alias="visaCaseId"),
        page: int = Query(1, ge=1),
        limit: int | None = Query(None, ge=1, le=500),
        sort_by: str = Query("created_at", alias="sortBy"),
        sort_order: str = Query("desc", alias="sortOrder"),
    ):
        page_result = invoice_svc.list_invoices(
            status=status,
            client_id=client_id,
            visa_case_id=visa_case_id,
            page=page,
            limit=limit or config.page_size,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return success_response(
            {
                "invoices": [i.model_dump(mode="json") for i in page_result.items],
                "pagination": pagination_meta(page_result),
            },
            request.state.request_id,
        ).model_dump(mode="json")

    @router.post("/billing/invoices", status_code=201)
    async def create_invoice(request: Request, body: InvoiceCreate):
        invoice = invoice_svc.create(body)
        return success_response(
            invoice.model_dump(mode="json"), request.state.request_id
        ).model_dump(mode="json")

    @router.post("/billing/invoices/totals")
    async def preview_totals(request: Request, body: TotalsPreviewRequest):
        currency = body.currency or config.default_currency
        items, totals, problems = invoice_svc.preview_totals(
            body.items, body.tax_rate, body.deposit_amount
        )
        return success_response(
            {
                "items": [item.model_dump(mode="json") for item in items],
                "totals": totals.model_dump(mode="json"),
                "display": {
                    name: format_amount(value, currency)
                    for name, value in totals.model_dump().items()
                },
                "errors": problems,
            },
            request.state.request_id,
        ).model_dump(mode="json")

    @router.get("/billing/invoices/{invoice_id}")
    async def get_invoice(request: Request, invoice_id: UUID):
        invoice = invoice_svc.get_by_id(invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return success_response(
            invoice.model_dump(mode="json"), request.state.request_id
        ).model_dump(mode="json")

    @router.get("/billing/invoices/{invoice_id}/history")
    async def invoice_history(
        request: Request,
        invoice_id: UUID,
        page: int = Query(1, ge=1),
        limit: int | None = Query(None, ge=1, le=500),
    ):
        entries = paginate(
            invoice_svc.history(invoice_id),
            page,
            limit or config.page_size,
            config.max_visible_pages,
        )
        return success_response(
            {
                "entries": jsonable_encoder(entries.items),
                "pagination": pagination_meta(entries),
            },
            request.state.request_id,
        ).model_dump(mode="json")

    @router.put("/billing/invoices/{invoice_id}")
    async def update_invoice(request: Request, invoice_id: UUID, body: InvoiceUpdate):
        invoice = invoice_svc.update(invoice_id, body)
        return success_response(
            invoice.model_dump(mode="json"), request.state.request_id
        ).model_dump(mode="json")

    @router.delete("/billing/invoices/{invoice_id}")
    async def delete_invoice(request: Request, invoice_id: UUID):
        if not invoice_svc.delete(invoice_id):
            raise ValueError(f"Invoice {invoice_id} not found")
        return success_response({"deleted": True}, request.state.request_id).model_dump(mode="json")

    return router
