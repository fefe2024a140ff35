"""Invoice domain models.

Money is carried as Decimal end to end (NUMERIC in Postgres) so sums and
percentages never pick up binary floating point drift. Tax rate is a
percentage: 10 means 10%.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    CANCELLED = "cancelled"


# Allowed status changes; paid and cancelled are final
STATUS_TRANSITIONS: dict[InvoiceStatus, set[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: {InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED},
    InvoiceStatus.ISSUED: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELLED: set(),
}

FINAL_STATUSES = {InvoiceStatus.PAID, InvoiceStatus.CANCELLED}


class ItemType(str, Enum):
    """Category of a billable line."""

    SERVICE = "service"
    FEE = "fee"
    CONSULTATION = "consultation"
    PROCESSING = "processing"
    OTHER = "other"


class InvoiceLineItem(BaseModel):
    """One billable entry on an invoice."""

    description: str = Field("", max_length=500)
    quantity: Decimal = Field(Decimal("1"), ge=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    item_type: ItemType = ItemType.SERVICE
    amount: Decimal | None = Field(None, ge=0)

    @model_validator(mode="after")
    def compute_amount_if_missing(self) -> "InvoiceLineItem":
        """Derive amount from quantity * unit_price when not provided."""
        if self.amount is None:
            self.amount = self.quantity * self.unit_price
        return self


class InvoiceTotals(BaseModel):
    """Derived money figures for an invoice. Never stored on its own."""

    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    deposit_amount: Decimal
    due_amount: Decimal


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    visa_case_id: str = Field(..., min_length=1, max_length=100)
    client_id: str = Field(..., min_length=1, max_length=100)
    client_name: str = Field(..., min_length=1, max_length=255)
    client_email: str = Field(..., min_length=3, max_length=255)
    items: list[InvoiceLineItem] = Field(default_factory=list)
    tax_rate: Decimal = Field(Decimal("0"), ge=0)
    deposit_amount: Decimal = Decimal("0")
    currency: str | None = Field(None, min_length=3, max_length=3)
    due_date: date | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def reject_final_status(self) -> "InvoiceCreate":
        """New invoices start as draft or issued."""
        if self.status in FINAL_STATUSES:
            raise ValueError(f"Invoices cannot be created as {self.status.value}")
        return self


class InvoiceUpdate(BaseModel):
    """Data that can be updated on an invoice. All fields optional."""

    items: list[InvoiceLineItem] | None = None
    tax_rate: Decimal | None = Field(None, ge=0)
    deposit_amount: Decimal | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    due_date: date | None = None
    status: InvoiceStatus | None = None
    notes: str | None = Field(None, max_length=2000)
    client_name: str | None = Field(None, min_length=1, max_length=255)
    client_email: str | None = Field(None, min_length=3, max_length=255)


class TotalsPreviewRequest(BaseModel):
    """What the create/edit forms send on every change."""

    items: list[InvoiceLineItem] = Field(default_factory=list)
    tax_rate: Decimal = Field(Decimal("0"), ge=0)
    deposit_amount: Decimal = Decimal("0")
    currency: str | None = Field(None, min_length=3, max_length=3)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    invoice_number: str
    visa_case_id: str
    client_id: str
    client_name: str
    client_email: str
    items: list[InvoiceLineItem]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    deposit_amount: Decimal
    due_amount: Decimal
    currency: str
    status: InvoiceStatus
    due_date: date | None
    issued_at: datetime | None
    paid_at: datetime | None
    cancelled_at: datetime | None
    notes: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def is_final(self) -> bool:
        """Paid and cancelled invoices are frozen."""
        return self.status in FINAL_STATUSES

    @property
    def totals(self) -> InvoiceTotals:
        return InvoiceTotals(
            subtotal=self.subtotal,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            deposit_amount=self.deposit_amount,
            due_amount=self.due_amount,
        )
