"""Core domain models."""

from core.models.client import Client, ClientCreate, EmergencyContact, Gender
from core.models.invoice import (
    Invoice,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceLineItem,
    InvoiceTotals,
    InvoiceStatus,
    ItemType,
    TotalsPreviewRequest,
    STATUS_TRANSITIONS,
    FINAL_STATUSES,
)

__all__ = [
    # Client
    "Client", "ClientCreate", "EmergencyContact", "Gender",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceLineItem", "InvoiceTotals",
    "InvoiceStatus", "ItemType", "TotalsPreviewRequest",
    "STATUS_TRANSITIONS", "FINAL_STATUSES",
]
