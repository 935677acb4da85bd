"""
Invoice calculation engine - pure functions over invoice lines.

Arithmetic is exact Decimal. Per-line figures are rounded to cents; the
aggregate subtotal and VAT total are each rounded once from the exact sums,
and total is the sum of those two rounded aggregates so that
total == subtotal + vat_total always holds.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from .exceptions import DomainValidationError
from .value_objects import CENT, HUNDRED, ZERO, InvoiceLine, VatRate, round_money


class HasLines(Protocol):
    id: str
    lines: Sequence[InvoiceLine]
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal


@dataclass(frozen=True, slots=True)
class LineCalculation:
    line_index: int
    description: str
    product_id: str | None
    service_id: str | None
    quantity: int
    unit_price: Decimal
    vat_rate: Decimal
    line_subtotal: Decimal
    vat_amount: Decimal
    line_total: Decimal


@dataclass(frozen=True, slots=True)
class InvoiceCalculation:
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal
    lines: tuple[LineCalculation, ...]
    line_count: int


@dataclass(frozen=True, slots=True)
class TotalDifferences:
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal


def _exact_amounts(line: InvoiceLine) -> tuple[Decimal, Decimal]:
    line_subtotal = line.quantity * line.unit_price
    return line_subtotal, line_subtotal * line.vat_rate / HUNDRED


def calculate_line(line: InvoiceLine, line_index: int = 0) -> LineCalculation:
    if line is None:
        raise DomainValidationError("Invoice line is required")
    line_subtotal, vat_amount = _exact_amounts(line)
    line_subtotal, vat_amount = round_money(line_subtotal), round_money(vat_amount)
    return LineCalculation(
        line_index=line_index,
        description=line.description,
        product_id=line.product_id,
        service_id=line.service_id,
        quantity=line.quantity,
        unit_price=line.unit_price,
        vat_rate=line.vat_rate,
        line_subtotal=line_subtotal,
        vat_amount=vat_amount,
        line_total=line_subtotal + vat_amount,
    )


def calculate_lines(lines: Iterable[InvoiceLine]) -> InvoiceCalculation:
    if lines is None:
        raise DomainValidationError("Invoice lines are required")
    calculations: list[LineCalculation] = []
    subtotal = ZERO
    vat_total = ZERO
    for index, line in enumerate(lines):
        calculations.append(calculate_line(line, index))
        line_subtotal, vat_amount = _exact_amounts(line)
        subtotal += line_subtotal
        vat_total += vat_amount

    subtotal, vat_total = round_money(subtotal), round_money(vat_total)
    return InvoiceCalculation(
        subtotal=subtotal,
        vat_total=vat_total,
        total=subtotal + vat_total,
        lines=tuple(calculations),
        line_count=len(calculations),
    )


class InvoiceCalculationService:
    """
    Service - Totals, VAT breakdown and line statistics for an invoice.
    Stateless; never mutates the invoice it is given.
    """

    tolerance = CENT

    @staticmethod
    def _require(invoice: HasLines) -> HasLines:
        if invoice is None:
            raise DomainValidationError("Invoice entity is required")
        return invoice

    def calculate(self, lines: Iterable[InvoiceLine]) -> InvoiceCalculation:
        return calculate_lines(lines)

    def calculate_line(self, line: InvoiceLine, line_index: int = 0) -> LineCalculation:
        return calculate_line(line, line_index)

    def calculate_invoice(self, invoice: HasLines) -> InvoiceCalculation:
        return calculate_lines(self._require(invoice).lines)

    def calculate_many(self, invoices: Iterable[HasLines]) -> dict[str, InvoiceCalculation]:
        return {invoice.id: self.calculate_invoice(invoice) for invoice in invoices}

    def subtotal(self, invoice: HasLines) -> Decimal:
        return self.calculate_invoice(invoice).subtotal

    def vat_total(self, invoice: HasLines) -> Decimal:
        return self.calculate_invoice(invoice).vat_total

    def total(self, invoice: HasLines) -> Decimal:
        return self.calculate_invoice(invoice).total

    def unique_vat_rates(self, invoice: HasLines) -> list[Decimal]:
        rates: list[Decimal] = []
        for line in self._require(invoice).lines:
            if line.vat_rate not in rates:
                rates.append(line.vat_rate)
        return rates

    def vat_total_for_rate(self, invoice: HasLines, vat_rate: Decimal) -> Decimal:
        rate = VatRate(vat_rate).value
        vat_total = ZERO
        for line in self._require(invoice).lines:
            if line.vat_rate == rate:
                vat_total += _exact_amounts(line)[1]
        return round_money(vat_total)

    def vat_breakdown(self, invoice: HasLines) -> dict[Decimal, Decimal]:
        """VAT amount per distinct rate, in order of first appearance."""
        return {rate: self.vat_total_for_rate(invoice, rate) for rate in self.unique_vat_rates(invoice)}

    def total_quantity(self, invoice: HasLines) -> int:
        return sum(line.quantity for line in self._require(invoice).lines)

    def product_line_count(self, invoice: HasLines) -> int:
        return sum(1 for line in self._require(invoice).lines if line.is_product)

    def service_line_count(self, invoice: HasLines) -> int:
        return sum(1 for line in self._require(invoice).lines if line.is_service)

    def other_line_count(self, invoice: HasLines) -> int:
        return sum(
            1 for line in self._require(invoice).lines
            if not line.is_product and not line.is_service
        )

    def total_differences(self, invoice: HasLines) -> TotalDifferences:
        calculated = self.calculate_invoice(invoice)
        return TotalDifferences(
            subtotal=round_money(invoice.subtotal - calculated.subtotal),
            vat_total=round_money(invoice.vat_total - calculated.vat_total),
            total=round_money(invoice.total - calculated.total),
        )

    def validate_totals(self, invoice: HasLines) -> bool:
        """
        Stored totals agree with a fresh calculation to less than one cent.
        An Invoice recomputes its totals when built, so this is for totals
        read back from storage (see records.StoredTotals).
        """
        calculated = self.calculate_invoice(invoice)
        return (
            abs(invoice.subtotal - calculated.subtotal) < self.tolerance
            and abs(invoice.vat_total - calculated.vat_total) < self.tolerance
            and abs(invoice.total - calculated.total) < self.tolerance
        )
