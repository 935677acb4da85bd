"""
Unit tests - Value objects: VAT rate, NIF, invoice number, period and lines.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from app.domain.exceptions import DomainValidationError
from app.domain.value_objects import (
    ExportFormat,
    InvoiceLine,
    InvoiceNumber,
    Period,
    TaxpayerNumber,
    TransactionLineItem,
    VatRate,
    round_money,
    to_decimal,
)


class TestMoney:

    def test_round_half_up(self):
        assert round_money(Decimal("0.005")) == Decimal("0.01")
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("-0.005")) == Decimal("-0.01")

    def test_float_goes_through_its_string_form(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("raw", [None, True, "abc", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, raw):
        with pytest.raises(DomainValidationError):
            to_decimal(raw)


class TestVatRate:

    def test_standard_rates(self):
        assert VatRate.standard().value == Decimal("23.00")
        assert VatRate.intermediate().value == Decimal("13.00")
        assert VatRate.reduced().value == Decimal("6.00")
        assert VatRate.zero().is_zero()

    def test_bounds_are_inclusive(self):
        assert VatRate(Decimal("0")).value == Decimal("0.00")
        assert VatRate(Decimal("100")).value == Decimal("100.00")

    @pytest.mark.parametrize("rate", ["-0.01", "100.01", "250"])
    def test_out_of_range(self, rate):
        with pytest.raises(DomainValidationError, match="between 0 and 100"):
            VatRate(Decimal(rate))

    def test_fraction(self):
        assert VatRate(Decimal("23")).as_fraction == Decimal("0.23")


class TestTaxpayerNumber:

    @pytest.mark.parametrize("nif", ["123456789", "000000000", "100000010", "100000100", " 123 456 789 "])
    def test_valid_numbers(self, nif):
        assert TaxpayerNumber.is_valid(nif) is True

    @pytest.mark.parametrize("nif", ["123456780", "12345678", "1234567890", "12345678a", "", "   ", None])
    def test_invalid_numbers(self, nif):
        assert TaxpayerNumber.is_valid(nif) is False

    def test_check_digit_of_ten_or_eleven_becomes_zero(self):
        """Weighted sum 12 gives 11 - 1 = 10, which maps to 0."""
        assert TaxpayerNumber.check_digit("10000010") == 0
        assert TaxpayerNumber.check_digit("00000000") == 0

    def test_whitespace_is_stripped(self):
        assert str(TaxpayerNumber("123 456 789")) == "123456789"

    def test_wrong_check_digit_message(self):
        with pytest.raises(DomainValidationError, match="check digit"):
            TaxpayerNumber("123456780")

    @given(st.text(alphabet="0123456789", min_size=8, max_size=8))
    def test_exactly_one_check_digit_is_valid(self, prefix):
        valid = [digit for digit in range(10) if TaxpayerNumber.is_valid(f"{prefix}{digit}")]
        assert valid == [TaxpayerNumber.check_digit(prefix)]

    @given(st.text(alphabet="0123456789", min_size=9, max_size=9))
    def test_validity_follows_mod_11(self, nif):
        total = sum(int(digit) * weight for digit, weight in zip(nif[:8], range(9, 1, -1)))
        expected = 11 - total % 11
        expected = 0 if expected >= 10 else expected
        assert TaxpayerNumber.is_valid(nif) is (int(nif[8]) == expected)


class TestInvoiceNumber:

    def test_format_is_zero_padded(self):
        assert str(InvoiceNumber(2025, 1)) == "2025/0001"
        assert str(InvoiceNumber(2025, 42)) == "2025/0042"

    def test_sequence_above_9999_widens(self):
        assert str(InvoiceNumber(2025, 12345)) == "2025/12345"

    def test_parse(self):
        number = InvoiceNumber.parse("2025/0007")
        assert number.year == 2025
        assert number.sequence == 7

    @pytest.mark.parametrize("text", ["DRAFT-1750000000000", "25/0001", "2025-0001", ""])
    def test_parse_rejects_non_fiscal_numbers(self, text):
        assert InvoiceNumber.is_fiscal(text) is False
        with pytest.raises(DomainValidationError):
            InvoiceNumber.parse(text)

    def test_sequence_starts_at_one(self):
        with pytest.raises(DomainValidationError):
            InvoiceNumber(2025, 0)

    def test_draft_placeholder_uses_milliseconds(self):
        moment = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
        placeholder = InvoiceNumber.draft_placeholder(moment)
        assert placeholder == f"DRAFT-{int(moment.timestamp() * 1000)}"
        assert InvoiceNumber.is_fiscal(placeholder) is False


class TestPeriod:

    def test_end_before_start_is_rejected(self):
        start = datetime(2025, 6, 1, tzinfo=timezone.utc)
        with pytest.raises(DomainValidationError, match="cannot be before"):
            Period(start, start - timedelta(seconds=1))

    def test_duration_is_inclusive(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert Period(start, start).duration_days() == 1
        assert Period(start, datetime(2025, 12, 31, tzinfo=timezone.utc)).duration_days() == 365

    def test_naive_datetimes_are_utc(self):
        period = Period(datetime(2025, 6, 1), datetime(2025, 6, 30))
        assert period.start.tzinfo is timezone.utc
        assert period.contains(datetime(2025, 6, 15, tzinfo=timezone.utc))
        assert not period.contains(datetime(2025, 7, 1, tzinfo=timezone.utc))


class TestInvoiceLine:

    def test_normalizes_fields(self):
        line = InvoiceLine(
            description="  Cat litter  ", quantity=3, unit_price="8.50", vat_rate=23, product_id=" p-1 "
        )
        assert line.description == "Cat litter"
        assert line.unit_price == Decimal("8.50")
        assert line.vat_rate == Decimal("23.00")
        assert line.product_id == "p-1"
        assert line.is_product and not line.is_service

    @pytest.mark.parametrize("changes, message", [
        ({"description": "  "}, "description is required"),
        ({"description": "x" * 501}, "cannot exceed 500"),
        ({"quantity": 0}, "positive integer"),
        ({"quantity": 1.5}, "positive integer"),
        ({"unit_price": Decimal("-1")}, "cannot be negative"),
        ({"vat_rate": Decimal("101")}, "between 0 and 100"),
        ({"product_id": "p-1", "service_id": "s-1"}, "both a product and a service"),
    ])
    def test_invalid_lines(self, changes, message):
        values = {"description": "Item", "quantity": 1, "unit_price": Decimal("1"), "vat_rate": Decimal("23")}
        values.update(changes)
        with pytest.raises(DomainValidationError, match=message):
            InvoiceLine(**values)

    def test_line_without_catalog_reference_is_allowed(self):
        line = InvoiceLine(description="Misc", quantity=1, unit_price=Decimal("0"), vat_rate=Decimal("0"))
        assert not line.is_product and not line.is_service


class TestTransactionLineItem:

    def test_needs_exactly_one_reference(self):
        with pytest.raises(DomainValidationError, match="either productId or serviceId"):
            TransactionLineItem(quantity=1, unit_price=Decimal("1"))
        with pytest.raises(DomainValidationError, match="both productId and serviceId"):
            TransactionLineItem(quantity=1, unit_price=Decimal("1"), product_id="p", service_id="s")

    def test_amount(self):
        item = TransactionLineItem(quantity=3, unit_price=Decimal("2.50"), service_id="s-1")
        assert item.amount == Decimal("7.50")


class TestExportFormat:

    @pytest.mark.parametrize("raw, expected", [("csv", ExportFormat.CSV), ("Json", ExportFormat.JSON)])
    def test_parse_is_case_insensitive(self, raw, expected):
        assert ExportFormat.parse(raw) is expected

    def test_parse_rejects_other_formats(self):
        with pytest.raises(DomainValidationError, match="'csv' or 'json'"):
            ExportFormat.parse("xml")
