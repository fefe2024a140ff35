"""
Invoice money calculations.

Pure functions shared by invoice creation, editing and the live totals
preview. Nothing here touches the database and nothing here raises on
bad numbers: user input that does not parse counts as zero, and
submit-time problems come back as messages from validate_invoice().
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from core.models import InvoiceLineItem, InvoiceTotals

ZERO = Decimal("0")
_CENT = Decimal("0.01")

MSG_NO_ITEMS = "Please add at least one invoice item"
MSG_INCOMPLETE_ITEMS = "Please fill in all item details and ensure amounts are greater than zero"
MSG_DEPOSIT_EXCEEDS_TOTAL = "Deposit amount cannot be greater than the total amount"


def to_amount(value: Any) -> Decimal:
    """
    Coerce form input to a Decimal amount.

    None, blanks, garbage, NaN and infinities all become 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO

    if not amount.is_finite():
        return ZERO
    return amount


def recompute_line_amount(item: InvoiceLineItem) -> InvoiceLineItem:
    """Set item.amount to quantity * unit_price. Mutates and returns the item."""
    item.amount = item.quantity * item.unit_price
    return item


def compute_totals(
    items: Iterable[InvoiceLineItem],
    tax_rate_percent: Any,
    deposit_amount: Any = None,
) -> InvoiceTotals:
    """
    Derive subtotal, tax, total, deposit and amount due.

    Sums the stored item amounts as they are; call recompute_line_amount()
    first if quantities or prices changed.

    Args:
        items: Line items with amounts set
        tax_rate_percent: Tax rate as a percentage (10 = 10%)
        deposit_amount: Prepayment; negatives and garbage count as 0

    Returns:
        InvoiceTotals
    """
    subtotal = sum((to_amount(item.amount) for item in items), ZERO)
    tax_amount = subtotal * (to_amount(tax_rate_percent) / 100)
    total_amount = subtotal + tax_amount
    deposit = max(ZERO, to_amount(deposit_amount))
    due_amount = max(ZERO, total_amount - deposit)

    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=total_amount,
        deposit_amount=deposit,
        due_amount=due_amount,
    )


def validate_invoice(
    items: list[InvoiceLineItem],
    totals: InvoiceTotals,
    check_deposit: bool = True,
) -> list[str]:
    """
    Submit-time checks for an invoice.

    Returns:
        User-facing messages in the order the form reports them.
        Empty list means the invoice can be saved.
    """
    problems = []

    if not items:
        problems.append(MSG_NO_ITEMS)
    elif any(not item.description.strip() or to_amount(item.amount) <= 0 for item in items):
        problems.append(MSG_INCOMPLETE_ITEMS)

    if check_deposit and totals.deposit_amount > totals.total_amount:
        problems.append(MSG_DEPOSIT_EXCEEDS_TOTAL)

    return problems


def format_amount(value: Any, currency: str) -> str:
    """Render an amount for display, e.g. 'USD 550.00'."""
    return f"{currency} {to_amount(value).quantize(_CENT, rounding=ROUND_HALF_UP):.2f}"
