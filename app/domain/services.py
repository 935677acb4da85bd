"""
Domain Services - Business rules spanning more than one aggregate.
Stateless; every answer is advisory, the use cases act on it.
"""

from dataclasses import dataclass, field

from .entities import ALLOWED_TRANSITIONS, Company, Invoice
from .value_objects import InvoiceStatus, TaxpayerNumber

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


@dataclass
class IssuanceValidation:
    can_issue: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class TransitionValidation:
    is_valid: bool
    error: str | None = None


class InvoiceIssuanceService:
    """
    Service - Decides whether an invoice may be issued or moved to a status.
    Consumes an Invoice and its Company; never mutates either.
    """

    def validate_issuance(self, invoice: Invoice, company: Company) -> IssuanceValidation:
        """
        Check every issuance precondition and collect all failures.
        Buyer-less invoices are allowed but produce a warning.
        """
        errors: list[str] = []
        warnings: list[str] = []

        if invoice is None:
            return IssuanceValidation(False, ["Invoice entity is required"])
        if company is None:
            return IssuanceValidation(False, ["Company entity is required"])

        errors.extend(self.validate_company_nif(company))

        if invoice.status is not InvoiceStatus.DRAFT:
            errors.append(
                f"Invoice must be in DRAFT status to be issued. Current status: {invoice.status.value}"
            )
        if not invoice.lines:
            errors.append("Invoice must have at least one line item")
        if not invoice.invoice_number or not invoice.invoice_number.strip():
            errors.append("Invoice must have a valid invoice number")
        if invoice.company_id != company.id:
            errors.append("Invoice does not belong to the provided company")
        if not invoice.has_buyer():
            warnings.append("Invoice has no buyer customer (anonymous sale)")

        return IssuanceValidation(not errors, errors, warnings)

    def validate_company_nif(self, company: Company) -> list[str]:
        if not company.nif or not company.nif.strip():
            return ["Company NIF is required for invoice issuance"]
        if not TaxpayerNumber.is_valid(company.nif):
            return ["Company NIF is invalid (must be 9 digits with a valid check digit)"]
        return []

    def validate_transition(self, invoice: Invoice, target: InvoiceStatus) -> TransitionValidation:
        if invoice is None:
            return TransitionValidation(False, "Invoice entity is required")
        current = invoice.status
        if target is current:
            return TransitionValidation(False, f"Invoice is already {current.value}")
        if target not in ALLOWED_TRANSITIONS[current]:
            return TransitionValidation(
                False, f"Illegal transition from {current.value} to {target.value}"
            )
        if target is InvoiceStatus.ISSUED:
            if not invoice.lines:
                return TransitionValidation(False, "Cannot issue invoice without line items")
            if not invoice.invoice_number.strip():
                return TransitionValidation(False, "Cannot issue invoice without invoice number")
        return TransitionValidation(True)

    def can_transition(self, invoice: Invoice, target: InvoiceStatus) -> bool:
        return self.validate_transition(invoice, target).is_valid

    def valid_target_statuses(self, invoice: Invoice) -> list[InvoiceStatus]:
        return [
            status for status in InvoiceStatus
            if self.can_transition(invoice, status)
        ]

    def can_modify(self, invoice: Invoice) -> bool:
        return invoice.status is InvoiceStatus.DRAFT

    def can_issue(self, invoice: Invoice, company: Company) -> bool:
        return self.validate_issuance(invoice, company).can_issue

    def can_mark_as_paid(self, invoice: Invoice) -> bool:
        return invoice.status is InvoiceStatus.ISSUED

    def can_refund(self, invoice: Invoice) -> bool:
        return invoice.status is InvoiceStatus.PAID

    def can_cancel(self, invoice: Invoice) -> bool:
        return invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.ISSUED)

    def is_immutable(self, invoice: Invoice) -> bool:
        return invoice.status is not InvoiceStatus.DRAFT

    def is_terminal(self, invoice: Invoice) -> bool:
        return invoice.status in TERMINAL_STATUSES
