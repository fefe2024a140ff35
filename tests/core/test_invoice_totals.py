"""Tests for core/invoice_totals.py - invoice money calculations."""

from decimal import Decimal

import pytest

from core.invoice_totals import (
    MSG_DEPOSIT_EXCEEDS_TOTAL,
    MSG_INCOMPLETE_ITEMS,
    MSG_NO_ITEMS,
    compute_totals,
    format_amount,
    recompute_line_amount,
    to_amount,
    validate_invoice,
)
from core.models import InvoiceLineItem


def item(description="Visa application processing", quantity="1", unit_price="0", amount=None):
    return InvoiceLineItem(
        description=description,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        amount=amount,
    )


class TestToAmount:
    """Tests for to_amount()."""

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "NaN", "Infinity", "-inf", True])
    def test_unparsable_is_zero(self, value):
        assert to_amount(value) == Decimal("0")

    def test_parses_strings(self):
        assert to_amount(" 12.50 ") == Decimal("12.50")

    def test_passes_decimals_through(self):
        assert to_amount(Decimal("7.25")) == Decimal("7.25")

    def test_ints_and_floats(self):
        assert to_amount(3) == Decimal("3")
        assert to_amount(0.5) == Decimal("0.5")


class TestRecomputeLineAmount:
    """Tests for recompute_line_amount()."""

    def test_quantity_times_price(self):
        line = item(quantity="5", unit_price="100")
        recompute_line_amount(line)
        assert line.amount == Decimal("500")

    def test_overrides_stale_amount(self):
        line = item(quantity="2", unit_price="30", amount=Decimal("999"))
        assert recompute_line_amount(line).amount == Decimal("60")

    def test_no_rounding(self):
        line = item(quantity="3", unit_price="0.333")
        recompute_line_amount(line)
        assert line.amount == Decimal("0.999")


class TestComputeTotals:
    """Tests for compute_totals()."""

    def test_basic_example(self):
        """5 x 100 at 10% tax with no deposit."""
        line = recompute_line_amount(item(quantity="5", unit_price="100"))

        totals = compute_totals([line], Decimal("10"), Decimal("0"))

        assert totals.subtotal == Decimal("500")
        assert totals.tax_amount == Decimal("50")
        assert totals.total_amount == Decimal("550")
        assert totals.deposit_amount == Decimal("0")
        assert totals.due_amount == Decimal("550")

    def test_deposit_reduces_due(self):
        line = recompute_line_amount(item(quantity="5", unit_price="100"))

        totals = compute_totals([line], Decimal("10"), Decimal("200"))

        assert totals.total_amount == Decimal("550")
        assert totals.due_amount == Decimal("350")

    def test_subtotal_is_sum_of_amounts(self):
        lines = [
            recompute_line_amount(item(quantity="2", unit_price="75")),
            recompute_line_amount(item(quantity="1", unit_price="49.99")),
            recompute_line_amount(item(quantity="3", unit_price="10")),
        ]

        totals = compute_totals(lines, 0)

        assert totals.subtotal == Decimal("229.99")
        assert totals.total_amount == totals.subtotal + totals.tax_amount

    def test_due_never_negative(self):
        line = recompute_line_amount(item(quantity="1", unit_price="100"))

        totals = compute_totals([line], 0, Decimal("250"))

        assert totals.due_amount == Decimal("0")

    def test_negative_deposit_is_zero(self):
        line = recompute_line_amount(item(quantity="1", unit_price="100"))

        totals = compute_totals([line], 0, Decimal("-40"))

        assert totals.deposit_amount == Decimal("0")
        assert totals.due_amount == Decimal("100")

    def test_garbage_tax_and_deposit_are_zero(self):
        line = recompute_line_amount(item(quantity="1", unit_price="80"))

        totals = compute_totals([line], "ten", "lots")

        assert totals.tax_amount == Decimal("0")
        assert totals.deposit_amount == Decimal("0")
        assert totals.due_amount == Decimal("80")

    def test_no_items(self):
        totals = compute_totals([], Decimal("10"))

        assert totals.subtotal == Decimal("0")
        assert totals.total_amount == Decimal("0")
        assert totals.due_amount == Decimal("0")

    def test_fractional_tax_not_rounded(self):
        line = recompute_line_amount(item(quantity="1", unit_price="19.99"))

        totals = compute_totals([line], Decimal("7.5"))

        assert totals.tax_amount == Decimal("1.49925")

    def test_deterministic(self):
        lines = [recompute_line_amount(item(quantity="4", unit_price="12.5"))]
        assert compute_totals(lines, 8, 10) == compute_totals(lines, 8, 10)


class TestValidateInvoice:
    """Tests for validate_invoice()."""

    def _check(self, lines, tax="0", deposit="0", **kwargs):
        for line in lines:
            recompute_line_amount(line)
        totals = compute_totals(lines, Decimal(tax), Decimal(deposit))
        return validate_invoice(lines, totals, **kwargs)

    def test_valid_invoice(self):
        assert self._check([item(quantity="5", unit_price="100")], tax="10") == []

    def test_no_items(self):
        assert self._check([]) == [MSG_NO_ITEMS]

    def test_blank_description(self):
        assert self._check([item(description="  ", unit_price="100")]) == [MSG_INCOMPLETE_ITEMS]

    def test_zero_amount(self):
        assert self._check([item(unit_price="0")]) == [MSG_INCOMPLETE_ITEMS]

    def test_deposit_exceeds_total(self):
        problems = self._check([item(unit_price="100")], deposit="150")
        assert problems == [MSG_DEPOSIT_EXCEEDS_TOTAL]

    def test_deposit_equal_to_total_is_fine(self):
        assert self._check([item(unit_price="100")], deposit="100") == []

    def test_deposit_check_can_be_skipped(self):
        assert self._check([item(unit_price="100")], deposit="150", check_deposit=False) == []

    def test_messages_in_order(self):
        problems = self._check([item(description="", unit_price="0")], deposit="10")
        assert problems == [MSG_INCOMPLETE_ITEMS, MSG_DEPOSIT_EXCEEDS_TOTAL]

    def test_exact_messages(self):
        assert MSG_NO_ITEMS == "Please add at least one invoice item"
        assert MSG_INCOMPLETE_ITEMS == (
            "Please fill in all item details and ensure amounts are greater than zero"
        )
        assert MSG_DEPOSIT_EXCEEDS_TOTAL == "Deposit amount cannot be greater than the total amount"


class TestFormatAmount:
    """Tests for format_amount()."""

    def test_two_decimals(self):
        assert format_amount(Decimal("550"), "USD") == "USD 550.00"

    def test_rounds_half_up(self):
        assert format_amount(Decimal("1.005"), "EUR") == "EUR 1.01"
        assert format_amount(Decimal("1.49925"), "USD") == "USD 1.50"

    def test_garbage_is_zero(self):
        assert format_amount("n/a", "GBP") == "GBP 0.00"
