"""
Domain Entities - financial documents of the petshop back office.

Each aggregate is a frozen dataclass validated in __post_init__. State
changes return a new instance through dataclasses.replace, which re-runs the
validation, so no caller can hold a structurally invalid document.
Cross references between aggregates are ids only.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from .calculation import calculate_lines
from .exceptions import (
    CorruptedDocumentError,
    DomainValidationError,
    IllegalTransitionError,
    ImmutabilityError,
)
from .value_objects import (
    ZERO,
    ExportFormat,
    InvoiceLine,
    InvoiceStatus,
    PaymentStatus,
    Period,
    TaxpayerNumber,
    TransactionLineItem,
    as_utc,
    round_money,
    to_decimal,
    utcnow,
)

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED}),
    InvoiceStatus.ISSUED: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.REFUNDED}),
    InvoiceStatus.CANCELLED: frozenset(),
    InvoiceStatus.REFUNDED: frozenset(),
}

# Statuses only reachable through issuance; they always carry issued_at.
ISSUED_STATUSES = frozenset({InvoiceStatus.ISSUED, InvoiceStatus.PAID, InvoiceStatus.REFUNDED})


def _require_text(value: str | None, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(message)
    return value


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _optional_moment(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def _check_index(index: int, size: int, message: str) -> None:
    if not 0 <= index < size:
        raise DomainValidationError(message)


@dataclass(frozen=True)
class Company:
    """Read-only input - the legal entity issuing invoices."""
    id: str
    name: str
    nif: str | None = None

    def has_valid_nif(self) -> bool:
        return TaxpayerNumber.is_valid(self.nif)


@dataclass(frozen=True)
class Store:
    """Read-only input - a shop of a company; part of the numbering scope."""
    id: str
    company_id: str
    name: str = ""


@dataclass(frozen=True)
class CatalogItem:
    """Read-only input - a product or service that can be sold."""
    id: str
    name: str
    unit_price: Decimal = ZERO
    vat_rate: Decimal | None = None


@dataclass(frozen=True)
class Invoice:
    """
    Entity - Fiscal sales document.
    Lines, number and buyer are editable only while DRAFT; after issuance
    corrections go through credit notes or voiding.
    """
    id: str
    company_id: str
    store_id: str
    invoice_number: str
    created_by: str
    buyer_customer_id: str | None = None
    lines: tuple[InvoiceLine, ...] = ()
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issued_at: datetime | None = None
    paid_at: datetime | None = None
    payment_method: str | None = None
    external_reference: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    subtotal: Decimal = field(init=False, default=ZERO)
    vat_total: Decimal = field(init=False, default=ZERO)
    total: Decimal = field(init=False, default=ZERO)

    def __post_init__(self) -> None:
        _require_text(self.id, "Invoice ID is required")
        _require_text(self.company_id, "Company ID is required - an Invoice must be linked to a Company")
        _require_text(self.store_id, "Store ID is required - an Invoice must be linked to a Store")
        _require_text(self.invoice_number, "Invoice number is required")
        _require_text(self.created_by, "Created by user ID is required")

        lines = tuple(self.lines)
        for line in lines:
            if not isinstance(line, InvoiceLine):
                raise DomainValidationError("Invoice lines must be InvoiceLine values")
        try:
            status = InvoiceStatus(self.status)
        except ValueError:
            raise DomainValidationError(f"Unknown invoice status: {self.status}") from None

        if status in ISSUED_STATUSES and self.issued_at is None:
            raise CorruptedDocumentError(f"Invoice {self.id} is {status.value} without issued_at date")
        if status in (InvoiceStatus.PAID, InvoiceStatus.REFUNDED) and self.paid_at is None:
            raise CorruptedDocumentError(f"Invoice {self.id} is {status.value} without paid_at date")

        totals = calculate_lines(lines)
        set_ = object.__setattr__
        set_(self, "invoice_number", self.invoice_number.strip())
        set_(self, "buyer_customer_id", _optional_text(self.buyer_customer_id))
        set_(self, "lines", lines)
        set_(self, "status", status)
        set_(self, "issued_at", _optional_moment(self.issued_at))
        set_(self, "paid_at", _optional_moment(self.paid_at))
        set_(self, "created_at", as_utc(self.created_at))
        set_(self, "updated_at", as_utc(self.updated_at))
        set_(self, "subtotal", totals.subtotal)
        set_(self, "vat_total", totals.vat_total)
        set_(self, "total", totals.total)

    def _touch(self, **changes) -> "Invoice":
        return replace(self, updated_at=utcnow(), **changes)

    def _ensure_draft(self, action: str) -> None:
        if self.status is not InvoiceStatus.DRAFT:
            raise ImmutabilityError(
                f"Cannot {action} after invoice is issued (status: {self.status.value})"
            )

    def _ensure_transition(self, target: InvoiceStatus, detail: str = "") -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise IllegalTransitionError(self.status.value, target.value, detail)

    def update_invoice_number(self, invoice_number: str) -> "Invoice":
        self._ensure_draft("update invoice number")
        _require_text(invoice_number, "Invoice number is required")
        return self._touch(invoice_number=invoice_number)

    def update_buyer(self, buyer_customer_id: str | None) -> "Invoice":
        self._ensure_draft("update buyer customer")
        return self._touch(buyer_customer_id=buyer_customer_id)

    def add_line(self, line: InvoiceLine) -> "Invoice":
        self._ensure_draft("add lines")
        return self._touch(lines=(*self.lines, line))

    def remove_line(self, index: int) -> "Invoice":
        self._ensure_draft("remove lines")
        _check_index(index, len(self.lines), "Invoice line index out of bounds")
        return self._touch(lines=self.lines[:index] + self.lines[index + 1:])

    def update_line(self, index: int, line: InvoiceLine) -> "Invoice":
        self._ensure_draft("update lines")
        _check_index(index, len(self.lines), "Invoice line index out of bounds")
        return self._touch(lines=self.lines[:index] + (line,) + self.lines[index + 1:])

    def set_lines(self, lines: Iterable[InvoiceLine]) -> "Invoice":
        self._ensure_draft("set lines")
        return self._touch(lines=tuple(lines))

    def issue(self, issued_at: datetime | None = None) -> "Invoice":
        self._ensure_transition(InvoiceStatus.ISSUED, "only DRAFT invoices can be issued")
        if not self.lines:
            raise DomainValidationError("Cannot issue invoice without line items")
        return self._touch(status=InvoiceStatus.ISSUED, issued_at=issued_at or utcnow())

    def mark_as_paid(
        self,
        paid_at: datetime | None = None,
        payment_method: str | None = None,
        external_reference: str | None = None,
    ) -> "Invoice":
        self._ensure_transition(InvoiceStatus.PAID, "only ISSUED invoices can be marked as paid")
        return self._touch(
            status=InvoiceStatus.PAID,
            paid_at=paid_at or utcnow(),
            payment_method=payment_method,
            external_reference=external_reference,
        )

    def override_payment(
        self,
        paid_at: datetime,
        payment_method: str | None,
        external_reference: str | None = None,
    ) -> "Invoice":
        """Rewrite the payment details of an invoice that is already PAID."""
        if self.status is not InvoiceStatus.PAID:
            raise IllegalTransitionError(
                self.status.value, InvoiceStatus.PAID.value, "payment override requires a PAID invoice"
            )
        return self._touch(
            paid_at=paid_at,
            payment_method=payment_method,
            external_reference=external_reference,
        )

    def cancel(self) -> "Invoice":
        if self.status is InvoiceStatus.PAID:
            raise IllegalTransitionError(
                self.status.value, InvoiceStatus.CANCELLED.value,
                "cannot cancel a paid invoice - use refund flow instead",
            )
        if self.status is InvoiceStatus.CANCELLED:
            raise IllegalTransitionError(
                self.status.value, InvoiceStatus.CANCELLED.value, "invoice is already cancelled"
            )
        self._ensure_transition(InvoiceStatus.CANCELLED, "cannot cancel a refunded invoice")
        return self._touch(status=InvoiceStatus.CANCELLED)

    def mark_as_refunded(self) -> "Invoice":
        self._ensure_transition(InvoiceStatus.REFUNDED, "only PAID invoices can be refunded")
        return self._touch(status=InvoiceStatus.REFUNDED)

    def can_be_modified(self) -> bool:
        return self.status is InvoiceStatus.DRAFT

    def can_be_issued(self) -> bool:
        return self.status is InvoiceStatus.DRAFT and bool(self.lines)

    def can_be_cancelled(self) -> bool:
        return InvoiceStatus.CANCELLED in ALLOWED_TRANSITIONS[self.status]

    def is_draft(self) -> bool:
        return self.status is InvoiceStatus.DRAFT

    def is_issued(self) -> bool:
        return self.status is InvoiceStatus.ISSUED

    def is_paid(self) -> bool:
        return self.status is InvoiceStatus.PAID

    def is_cancelled(self) -> bool:
        return self.status is InvoiceStatus.CANCELLED

    def is_refunded(self) -> bool:
        return self.status is InvoiceStatus.REFUNDED

    def has_buyer(self) -> bool:
        return self.buyer_customer_id is not None

    @property
    def line_count(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class CreditNote:
    """
    Entity - Correction document reducing the value of an issued invoice.
    Amount and reason are editable until issued_at is set.
    """
    id: str
    invoice_id: str
    amount: Decimal
    created_by: str
    issued_at: datetime | None = None
    reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _require_text(self.id, "CreditNote ID is required")
        _require_text(self.invoice_id, "Invoice ID is required - a CreditNote must reference an Invoice")
        _require_text(self.created_by, "Created by user ID is required")
        amount = to_decimal(self.amount, "Credit note amount")
        if amount <= ZERO:
            raise DomainValidationError("Credit note amount must be positive")
        object.__setattr__(self, "amount", round_money(amount))
        object.__setattr__(self, "issued_at", _optional_moment(self.issued_at))
        object.__setattr__(self, "created_at", as_utc(self.created_at))

    @property
    def is_issued(self) -> bool:
        return self.issued_at is not None

    def _ensure_editable(self, action: str) -> None:
        if self.is_issued:
            raise ImmutabilityError(f"Cannot {action} after credit note is issued")

    def update_amount(self, amount: Decimal) -> "CreditNote":
        self._ensure_editable("update amount")
        return replace(self, amount=amount)

    def update_reason(self, reason: str | None) -> "CreditNote":
        self._ensure_editable("update reason")
        return replace(self, reason=reason)

    def issue(self, issued_at: datetime | None = None) -> "CreditNote":
        if self.is_issued:
            raise ImmutabilityError("Credit note is already issued")
        return replace(self, issued_at=issued_at or utcnow())

    def can_be_modified(self) -> bool:
        return not self.is_issued

    def has_reason(self) -> bool:
        return bool(self.reason and self.reason.strip())


@dataclass(frozen=True)
class Transaction:
    """
    Entity - Point-of-sale settlement record linked to one invoice.
    PENDING -> PAID_MANUAL -> REFUNDED; there is no way back to PENDING.
    """
    id: str
    store_id: str
    invoice_id: str
    created_by: str
    line_items: tuple[TransactionLineItem, ...] = ()
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    total_amount: Decimal = field(init=False, default=ZERO)

    def __post_init__(self) -> None:
        _require_text(self.id, "Transaction ID is required")
        _require_text(self.store_id, "Store ID is required - a Transaction must be linked to a Store")
        _require_text(self.invoice_id, "Invoice ID is required - a Transaction must be linked to an Invoice")
        _require_text(self.created_by, "Created by user ID is required")
        line_items = tuple(self.line_items)
        for item in line_items:
            if not isinstance(item, TransactionLineItem):
                raise DomainValidationError("Transaction line items must be TransactionLineItem values")
        try:
            payment_status = PaymentStatus(self.payment_status)
        except ValueError:
            raise DomainValidationError(f"Unknown payment status: {self.payment_status}") from None

        object.__setattr__(self, "line_items", line_items)
        object.__setattr__(self, "payment_status", payment_status)
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        object.__setattr__(self, "updated_at", as_utc(self.updated_at))
        object.__setattr__(self, "total_amount", round_money(sum((item.amount for item in line_items), ZERO)))

    def _touch(self, **changes) -> "Transaction":
        return replace(self, updated_at=utcnow(), **changes)

    def _ensure_pending(self, action: str) -> None:
        if self.payment_status is not PaymentStatus.PENDING:
            raise ImmutabilityError(
                f"Cannot {action} on a {self.payment_status.value} transaction"
            )

    def add_line_item(self, item: TransactionLineItem) -> "Transaction":
        self._ensure_pending("add line items")
        return self._touch(line_items=(*self.line_items, item))

    def remove_line_item(self, index: int) -> "Transaction":
        self._ensure_pending("remove line items")
        _check_index(index, len(self.line_items), "Line item index out of bounds")
        return self._touch(line_items=self.line_items[:index] + self.line_items[index + 1:])

    def update_line_item(self, index: int, item: TransactionLineItem) -> "Transaction":
        self._ensure_pending("update line items")
        _check_index(index, len(self.line_items), "Line item index out of bounds")
        return self._touch(line_items=self.line_items[:index] + (item,) + self.line_items[index + 1:])

    def set_line_items(self, items: Iterable[TransactionLineItem]) -> "Transaction":
        self._ensure_pending("set line items")
        return self._touch(line_items=tuple(items))

    def mark_as_paid_manual(self) -> "Transaction":
        if self.payment_status is not PaymentStatus.PENDING:
            raise IllegalTransitionError(
                self.payment_status.value, PaymentStatus.PAID_MANUAL.value,
                "only pending transactions can be marked as paid",
            )
        return self._touch(payment_status=PaymentStatus.PAID_MANUAL)

    def mark_as_refunded(self) -> "Transaction":
        if self.payment_status is not PaymentStatus.PAID_MANUAL:
            raise IllegalTransitionError(
                self.payment_status.value, PaymentStatus.REFUNDED.value,
                "mark the transaction as paid first",
            )
        return self._touch(payment_status=PaymentStatus.REFUNDED)

    def product_line_items(self) -> tuple[TransactionLineItem, ...]:
        return tuple(item for item in self.line_items if item.product_id is not None)

    def service_line_items(self) -> tuple[TransactionLineItem, ...]:
        return tuple(item for item in self.line_items if item.service_id is not None)

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.line_items)

    def is_pending(self) -> bool:
        return self.payment_status is PaymentStatus.PENDING

    def is_paid(self) -> bool:
        return self.payment_status is PaymentStatus.PAID_MANUAL

    def is_refunded(self) -> bool:
        return self.payment_status is PaymentStatus.REFUNDED

    def can_be_completed(self) -> bool:
        return bool(self.line_items) and self.is_pending()


@dataclass(frozen=True)
class FinancialExport:
    """
    Entity - Generated report of invoices, transactions and credit notes.
    Once a file path or SFTP reference is set the export is frozen.
    """
    id: str
    company_id: str
    created_by: str
    format: ExportFormat = ExportFormat.CSV
    period_start: datetime | None = None
    period_end: datetime | None = None
    file_path: str | None = None
    sftp_reference: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _require_text(self.id, "FinancialExport ID is required")
        _require_text(self.company_id, "Company ID is required - a FinancialExport must be linked to a Company")
        _require_text(self.created_by, "Created by user ID is required")
        try:
            export_format = ExportFormat(self.format)
        except ValueError:
            raise DomainValidationError(f"Unknown export format: {self.format}") from None
        start = _optional_moment(self.period_start)
        end = _optional_moment(self.period_end)
        if start is not None and end is not None:
            Period(start, end)
        file_path = _optional_text(self.file_path)
        sftp_reference = _optional_text(self.sftp_reference)
        if file_path and sftp_reference:
            raise DomainValidationError(
                "Cannot have both file_path and sftp_reference - use one or the other"
            )

        object.__setattr__(self, "format", export_format)
        object.__setattr__(self, "period_start", start)
        object.__setattr__(self, "period_end", end)
        object.__setattr__(self, "file_path", file_path)
        object.__setattr__(self, "sftp_reference", sftp_reference)
        object.__setattr__(self, "created_at", as_utc(self.created_at))

    def is_generated(self) -> bool:
        return self.file_path is not None or self.sftp_reference is not None

    def _ensure_editable(self, action: str) -> None:
        if self.is_generated():
            raise ImmutabilityError(f"Cannot update {action} after export is generated")

    def update_period_start(self, period_start: datetime | None) -> "FinancialExport":
        self._ensure_editable("period start")
        return replace(self, period_start=period_start)

    def update_period_end(self, period_end: datetime | None) -> "FinancialExport":
        self._ensure_editable("period end")
        return replace(self, period_end=period_end)

    def update_format(self, export_format: ExportFormat) -> "FinancialExport":
        self._ensure_editable("format")
        return replace(self, format=export_format)

    def set_file_path(self, file_path: str) -> "FinancialExport":
        self._ensure_editable("file path")
        _require_text(file_path, "File path cannot be empty")
        return replace(self, file_path=file_path)

    def set_sftp_reference(self, sftp_reference: str) -> "FinancialExport":
        self._ensure_editable("sftp reference")
        _require_text(sftp_reference, "SFTP reference cannot be empty")
        return replace(self, sftp_reference=sftp_reference)

    def has_period(self) -> bool:
        return self.period_start is not None and self.period_end is not None

    def period_duration_days(self) -> int | None:
        if not self.has_period():
            return None
        return Period(self.period_start, self.period_end).duration_days()

    def can_be_modified(self) -> bool:
        return not self.is_generated()
