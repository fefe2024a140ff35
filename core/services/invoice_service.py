"""
Invoice service for agency billing.

Totals are never trusted from the caller: line amounts and every derived
figure are recomputed with core.invoice_totals on each create and update.
Paid and cancelled invoices are frozen.
"""

import logging
import re
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, AuditEntity, compute_changes
from core.config import AgencyConfig
from core.invoice_totals import compute_totals, recompute_line_amount, validate_invoice
from core.models import (
    Invoice,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceLineItem,
    InvoiceTotals,
    InvoiceStatus,
    STATUS_TRANSITIONS,
)
from utils.pagination import Page, clamp_page, page_of
from utils.user_context import current_actor
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS = {
    "created_at", "invoice_number", "total_amount",
    "due_date", "status", "client_name",
}

# Timestamp column stamped the first time an invoice enters a status
_STATUS_TIMESTAMPS = {
    InvoiceStatus.ISSUED: "issued_at",
    InvoiceStatus.PAID: "paid_at",
    InvoiceStatus.CANCELLED: "cancelled_at",
}


def _items_json(items: list[InvoiceLineItem]) -> Json:
    return Json([item.model_dump(mode="json") for item in items])


class InvoiceService:
    """Service for invoice operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, config: AgencyConfig | None = None):
        self.postgres = postgres
        self.audit = audit
        self.config = config or AgencyConfig()

    def _generate_invoice_number(self) -> str:
        """
        Next sequential invoice number.

        Format: INV-0001, INV-0002, ... continuing from the most recently
        created invoice.
        """
        prefix = self.config.invoice_number_prefix

        latest = self.postgres.execute_single(
            "SELECT invoice_number FROM invoices ORDER BY created_at DESC LIMIT 1"
        )

        sequence = 1
        if latest is not None:
            match = re.match(rf"{re.escape(prefix)}-(\d+)", latest["invoice_number"])
            if match:
                sequence = int(match.group(1)) + 1

        return f"{prefix}-{sequence:0{self.config.invoice_number_width}d}"

    @staticmethod
    def _calculate(
        items: list[InvoiceLineItem],
        tax_rate: Decimal,
        deposit_amount: Decimal,
    ) -> InvoiceTotals:
        """Recompute every line amount and the totals; raise on the first form error."""
        for item in items:
            recompute_line_amount(item)

        totals = compute_totals(items, tax_rate, deposit_amount)

        problems = validate_invoice(items, totals)
        if problems:
            raise ValueError(problems[0])

        return totals

    def preview_totals(
        self,
        items: list[InvoiceLineItem],
        tax_rate: Decimal,
        deposit_amount: Decimal,
    ) -> tuple[list[InvoiceLineItem], InvoiceTotals, list[str]]:
        """
        Live totals for the create/edit forms. Nothing is saved.

        Returns:
            (items with recomputed amounts, totals, validation messages)
        """
        for item in items:
            recompute_line_amount(item)
        totals = compute_totals(items, tax_rate, deposit_amount)
        return items, totals, validate_invoice(items, totals)

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create an invoice.

        Args:
            data: Invoice creation data

        Returns:
            Created invoice (draft, or issued with issued_at stamped)

        Raises:
            ValueError: If items are missing/incomplete or the deposit exceeds the total
        """
        totals = self._calculate(data.items, data.tax_rate, data.deposit_amount)

        invoice_id = uuid4()
        invoice_number = self._generate_invoice_number()
        now = now_utc()
        issued_at = now if data.status == InvoiceStatus.ISSUED else None

        row = self.postgres.execute_returning(
            """
            INSERT INTO invoices (
                id, invoice_number, visa_case_id, client_id, client_name, client_email,
                items, subtotal, tax_rate, tax_amount, total_amount,
                deposit_amount, due_amount, currency, status,
                due_date, issued_at, notes, created_by,
                created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s
            )
            RETURNING *
            """,
            (
                invoice_id, invoice_number, data.visa_case_id, data.client_id,
                data.client_name, data.client_email,
                _items_json(data.items), totals.subtotal, data.tax_rate,
                totals.tax_amount, totals.total_amount,
                totals.deposit_amount, totals.due_amount,
                data.currency or self.config.default_currency, data.status.value,
                data.due_date, issued_at, data.notes, current_actor(),
                now, now
            )
        )[0]

        invoice = Invoice.model_validate(row)

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "invoice_number": invoice_number,
                    "visa_case_id": data.visa_case_id,
                    "client_id": data.client_id,
                    "total_amount": str(totals.total_amount),
                    "status": data.status.value,
                }
            }
        )

        logger.info(f"Created invoice {invoice_number} for client {data.client_id}")
        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Returns:
            Invoice if found, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )

        if row is None:
            return None

        return Invoice.model_validate(row)

    def history(self, invoice_id: UUID) -> list[dict[str, Any]]:
        """
        Audit trail for an invoice, newest first.

        Deleted invoices keep their history, so a missing invoice only
        raises when it never had any.
        """
        entries = self.audit.get_entity_history(AuditEntity.INVOICE, invoice_id)
        if not entries:
            raise ValueError(f"Invoice {invoice_id} not found")
        return entries

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update an invoice.

        Supplying items, tax_rate or deposit_amount recomputes all totals;
        values not supplied fall back to what is stored. A status change must
        follow STATUS_TRANSITIONS and stamps the matching date once.

        Raises:
            ValueError: If not found, frozen, invalid totals or bad transition
        """
        current = self.get_by_id(invoice_id)
        if current is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        if current.is_final:
            raise ValueError("Cannot edit paid or cancelled invoices")

        updates: dict[str, Any] = {}

        if data.items is not None or data.tax_rate is not None or data.deposit_amount is not None:
            items = data.items if data.items is not None else [i.model_copy() for i in current.items]
            tax_rate = data.tax_rate if data.tax_rate is not None else current.tax_rate
            deposit = data.deposit_amount if data.deposit_amount is not None else current.deposit_amount

            totals = self._calculate(items, tax_rate, deposit)

            updates["items"] = _items_json(items)
            updates["tax_rate"] = tax_rate
            updates.update(totals.model_dump())

        if data.status is not None and data.status != current.status:
            if data.status not in STATUS_TRANSITIONS[current.status]:
                raise ValueError(
                    f"Cannot transition from {current.status.value} to {data.status.value}"
                )
            updates["status"] = data.status.value

            stamp_column = _STATUS_TIMESTAMPS[data.status]
            if getattr(current, stamp_column) is None:
                updates[stamp_column] = now_utc()

        for column in ("currency", "due_date", "notes", "client_name", "client_email"):
            value = getattr(data, column)
            if value is not None:
                updates[column] = value

        if not updates:
            return current

        set_parts = [f"{column} = %s" for column in updates]
        params = list(updates.values())

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.append(invoice_id)

        row = self.postgres.execute_returning(
            f"""
            UPDATE invoices
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]

        updated = Invoice.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type=AuditEntity.INVOICE,
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return updated

    def delete(self, invoice_id: UUID) -> bool:
        """
        Delete a draft or issued invoice.

        Returns:
            True if deleted, False if not found

        Raises:
            ValueError: If the invoice is paid or cancelled
        """
        current = self.get_by_id(invoice_id)
        if current is None:
            return False

        if current.is_final:
            raise ValueError("Cannot delete paid or cancelled invoices")

        self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s RETURNING id",
            (invoice_id,)
        )

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")}
        )

        return True

    def list_invoices(
        self,
        status: InvoiceStatus | None = None,
        client_id: str | None = None,
        visa_case_id: str | None = None,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page:
        """
        List invoices with optional filters.

        Args:
            status: Only invoices in this status
            client_id: Only invoices for this client
            visa_case_id: Only invoices for this visa case
            page: 1-based page number, clamped to the pages that exist
            limit: Page size (defaults to config.page_size)
            sort_by: One of the sortable columns
            sort_order: 'asc' or 'desc'

        Returns:
            Page of Invoice models with the pager's page numbers

        Raises:
            ValueError: On an unknown sort column or order
        """
        if sort_by not in _SORTABLE_COLUMNS:
            raise ValueError(
                f"Cannot sort by '{sort_by}'. Valid columns: {', '.join(sorted(_SORTABLE_COLUMNS))}"
            )
        if sort_order not in ("asc", "desc"):
            raise ValueError("sort_order must be 'asc' or 'desc'")

        limit = limit or self.config.page_size

        conditions = []
        params: list[Any] = []
        if status is not None:
            conditions.append("status = %s")
            params.append(status.value)
        if client_id:
            conditions.append("client_id = %s")
            params.append(client_id)
        if visa_case_id:
            conditions.append("visa_case_id = %s")
            params.append(visa_case_id)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM invoices {where}",
            tuple(params)
        ) or 0
        page = clamp_page(page, total, limit)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            {where}
            ORDER BY {sort_by} {sort_order.upper()}
            LIMIT %s OFFSET %s
            """,
            tuple(params + [limit, (page - 1) * limit])
        )

        return page_of(
            [Invoice.model_validate(row) for row in rows],
            page, limit, total, self.config.max_visible_pages,
        )
