"""
Invoice use cases - draft creation, issuance, payment and voiding.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from app.application.errors import (
    ConflictError,
    InvoiceNumberConflictError,
    NotFoundError,
    ValidationError,
)
from app.application.ports import (
    AuditSink,
    CatalogLookup,
    CompanyRepository,
    CustomerRepository,
    InvoiceNumberGenerator,
    InvoiceRepository,
    RoleResolver,
    StoreRepository,
    TransactionRepository,
)
from app.application.results import Result
from app.application.use_cases.base import (
    MAX_PAYMENT_METHOD_LENGTH,
    MAX_REASON_LENGTH,
    UseCase,
    new_id,
)
from app.core.security import AuditAction, AuditEntry, Capability
from app.domain.entities import Invoice
from app.domain.services import InvoiceIssuanceService
from app.domain.value_objects import (
    InvoiceLine,
    InvoiceNumber,
    InvoiceStatus,
    PaymentStatus,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

LINE_FIELDS = ("description", "quantity", "unit_price", "vat_rate", "product_id", "service_id")
MAX_NUMBER_ATTEMPTS = 5


def to_invoice_line(raw: InvoiceLine | Mapping[str, Any]) -> InvoiceLine:
    if isinstance(raw, InvoiceLine):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("Invoice line must be an object")
    return InvoiceLine(**{name: raw.get(name) for name in LINE_FIELDS})


def invoice_snapshot(invoice: Invoice) -> dict[str, Any]:
    return {
        "status": invoice.status.value,
        "invoice_number": invoice.invoice_number,
        "total": str(invoice.total),
    }


async def load_invoice(invoices: InvoiceRepository, invoice_id: str) -> Invoice:
    invoice = await invoices.get(invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


class CreateInvoiceDraft(UseCase):
    """Create a DRAFT invoice with a DRAFT-<millis> placeholder number."""

    def __init__(
        self,
        invoices: InvoiceRepository,
        companies: CompanyRepository,
        stores: StoreRepository,
        customers: CustomerRepository,
        catalog: CatalogLookup,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices
        self.companies = companies
        self.stores = stores
        self.customers = customers
        self.catalog = catalog

    async def execute(
        self,
        company_id: str,
        store_id: str,
        lines: Sequence[InvoiceLine | Mapping[str, Any]],
        performed_by: str,
        buyer_customer_id: str | None = None,
    ) -> Result[Invoice]:
        try:
            await self.authorize(
                performed_by,
                Capability.INVOICE_CREATE_DRAFT,
                "Only Staff, Manager, Accountant, or Owner role can create invoices",
            )

            company = await self.companies.get(company_id)
            if company is None:
                raise NotFoundError("Company not found")
            store = await self.stores.get(store_id)
            if store is None:
                raise NotFoundError("Store not found")
            if store.company_id != company.id:
                raise ValidationError("Store does not belong to the specified company")

            if buyer_customer_id and not await self.customers.exists(buyer_customer_id):
                raise NotFoundError("Buyer customer not found")

            if not lines:
                raise ValidationError("Invoice must have at least one line item")
            invoice_lines = [to_invoice_line(raw) for raw in lines]
            await self._check_catalog_references(invoice_lines)

            now = self.clock()
            invoice = Invoice(
                id=self.id_factory(),
                company_id=company.id,
                store_id=store.id,
                invoice_number=InvoiceNumber.draft_placeholder(now),
                created_by=performed_by,
                buyer_customer_id=buyer_customer_id,
                lines=tuple(invoice_lines),
                created_at=now,
                updated_at=now,
            )
            saved = await self.invoices.save(invoice)

            await self.audit(AuditEntry(
                entity_type="Invoice",
                entity_id=saved.id,
                action=AuditAction.CREATE,
                performed_by=performed_by,
                after=invoice_snapshot(saved),
                timestamp=now,
            ))
            logger.info(f"Draft invoice {saved.id} created for store {store.id}")
            return Result.ok(saved)
        except Exception as error:
            return self.handle_error(error)

    async def _check_catalog_references(self, lines: list[InvoiceLine]) -> None:
        for line in lines:
            if line.product_id and await self.catalog.find_product(line.product_id) is None:
                raise NotFoundError(f"Product {line.product_id} not found")
            if line.service_id and await self.catalog.find_service(line.service_id) is None:
                raise NotFoundError(f"Service {line.service_id} not found")


class IssueInvoice(UseCase):
    """
    Issue a DRAFT invoice: validate against its company, assign the next
    fiscal number of its (company, store, year) scope and freeze it.
    """

    def __init__(
        self,
        invoices: InvoiceRepository,
        companies: CompanyRepository,
        number_generator: InvoiceNumberGenerator,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        issuance_service: InvoiceIssuanceService | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        max_number_attempts: int = MAX_NUMBER_ATTEMPTS,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices
        self.companies = companies
        self.number_generator = number_generator
        self.issuance_service = issuance_service or InvoiceIssuanceService()
        self.max_number_attempts = max_number_attempts

    async def execute(self, invoice_id: str, performed_by: str) -> Result[Invoice]:
        try:
            await self.authorize(
                performed_by,
                Capability.INVOICE_ISSUE,
                "Only Manager, Accountant, or Owner role can issue invoices",
            )

            loaded = invoice = await load_invoice(self.invoices, invoice_id)
            if invoice.status is not InvoiceStatus.DRAFT:
                raise ValidationError(
                    f"Only draft invoices can be issued. Current status: {invoice.status.value}"
                )

            company = await self.companies.get(invoice.company_id)
            if company is None:
                raise NotFoundError("Company not found")

            validation = self.issuance_service.validate_issuance(invoice, company)
            if not validation.can_issue:
                raise ValidationError("; ".join(validation.errors))
            for warning in validation.warnings:
                logger.info(f"Issuing invoice {invoice.id}: {warning}")

            before = invoice_snapshot(invoice)
            invoice_number = await self._unique_number(invoice)
            if invoice.invoice_number != invoice_number:
                invoice = invoice.update_invoice_number(invoice_number)

            invoice = invoice.issue(self.clock())
            saved = await self.invoices.save(invoice, expected=loaded)

            await self.audit(AuditEntry(
                entity_type="Invoice",
                entity_id=saved.id,
                action=AuditAction.ISSUE,
                performed_by=performed_by,
                before=before,
                after=invoice_snapshot(saved),
                timestamp=saved.issued_at,
            ))
            logger.info(f"Invoice {saved.id} issued as {saved.invoice_number}")
            return Result.ok(saved)
        except Exception as error:
            return self.handle_error(error)

    async def _unique_number(self, invoice: Invoice) -> str:
        for attempt in range(1, self.max_number_attempts + 1):
            invoice_number = await self.number_generator.next_number(invoice.company_id, invoice.store_id)
            existing = await self.invoices.find_by_number(invoice_number, invoice.company_id)
            if existing is None or existing.id == invoice.id:
                return invoice_number
            logger.warning(
                f"Invoice number {invoice_number} already used by invoice {existing.id} "
                f"(attempt {attempt}/{self.max_number_attempts})"
            )
        raise InvoiceNumberConflictError("Failed to generate unique invoice number")


class MarkInvoicePaid(UseCase):
    """
    Record the payment of an ISSUED invoice. A PAID invoice can have its
    payment details overridden by callers holding the override capability.
    """

    def __init__(
        self,
        invoices: InvoiceRepository,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices

    async def execute(
        self,
        invoice_id: str,
        payment_method: str,
        performed_by: str,
        paid_at: datetime | None = None,
        external_reference: str | None = None,
    ) -> Result[Invoice]:
        try:
            roles = await self.authorize(
                performed_by,
                Capability.INVOICE_MARK_PAID,
                "Only Staff, Manager, Accountant, or Owner role can mark invoices as paid",
            )
            payment_method = self._validate_payment_method(payment_method)
            paid_at = self._validate_paid_at(paid_at)

            loaded = invoice = await load_invoice(self.invoices, invoice_id)
            before = invoice_snapshot(invoice)

            if invoice.status is InvoiceStatus.ISSUED:
                invoice = invoice.mark_as_paid(paid_at, payment_method, external_reference)
            elif invoice.status is InvoiceStatus.PAID:
                if not self.rbac.any_role_has(roles, Capability.INVOICE_PAYMENT_OVERRIDE):
                    raise ConflictError(
                        "Invoice is already marked as paid. Only Manager, Accountant, or Owner can override"
                    )
                logger.info(f"Overriding payment details of invoice {invoice.id}")
                invoice = invoice.override_payment(paid_at, payment_method, external_reference)
            else:
                raise ValidationError("Only issued invoices can be marked as paid")

            saved = await self.invoices.save(invoice, expected=loaded)

            await self.audit(AuditEntry(
                entity_type="Invoice",
                entity_id=saved.id,
                action=AuditAction.MARK_PAID,
                performed_by=performed_by,
                before=before,
                after={
                    **invoice_snapshot(saved),
                    "payment_method": saved.payment_method,
                    "paid_at": saved.paid_at.isoformat(),
                    "external_reference": saved.external_reference,
                },
                timestamp=self.clock(),
            ))
            logger.info(f"Invoice {saved.id} marked as paid ({saved.payment_method})")
            return Result.ok(saved)
        except Exception as error:
            return self.handle_error(error)

    def _validate_payment_method(self, payment_method: str | None) -> str:
        if not payment_method or not payment_method.strip():
            raise ValidationError("Payment method is required")
        payment_method = payment_method.strip()
        if len(payment_method) > MAX_PAYMENT_METHOD_LENGTH:
            raise ValidationError(
                f"Payment method cannot exceed {MAX_PAYMENT_METHOD_LENGTH} characters"
            )
        return payment_method

    def _validate_paid_at(self, paid_at: datetime | None) -> datetime:
        now = self.clock()
        if paid_at is None:
            return now
        paid_at = as_utc(paid_at)
        if paid_at > now:
            raise ValidationError("Payment date cannot be in the future")
        return paid_at


class VoidInvoice(UseCase):
    """Cancel an ISSUED invoice unless a completed transaction is linked to it."""

    def __init__(
        self,
        invoices: InvoiceRepository,
        transactions: TransactionRepository,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices
        self.transactions = transactions

    async def execute(self, invoice_id: str, reason: str, performed_by: str) -> Result[Invoice]:
        try:
            await self.authorize(
                performed_by,
                Capability.INVOICE_VOID,
                "Only Manager, Accountant, or Owner role can void invoices",
            )
            if not reason or not reason.strip():
                raise ValidationError("Reason is required for voiding invoice")
            if len(reason) > MAX_REASON_LENGTH:
                raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")

            loaded = invoice = await load_invoice(self.invoices, invoice_id)
            if invoice.status not in (InvoiceStatus.ISSUED, InvoiceStatus.PAID):
                raise ValidationError("Only issued or paid invoices can be voided")

            await self._check_blocking_transactions(invoice.id)

            before = invoice_snapshot(invoice)
            invoice = invoice.cancel()
            saved = await self.invoices.save(invoice, expected=loaded)

            await self.audit(AuditEntry(
                entity_type="Invoice",
                entity_id=saved.id,
                action=AuditAction.VOID,
                performed_by=performed_by,
                before=before,
                after=invoice_snapshot(saved),
                metadata={"reason": reason.strip()},
                timestamp=self.clock(),
            ))
            logger.info(f"Invoice {saved.id} voided")
            return Result.ok(saved)
        except Exception as error:
            return self.handle_error(error)

    async def _check_blocking_transactions(self, invoice_id: str) -> None:
        try:
            transactions = await self.transactions.find_by_invoice(invoice_id)
        except Exception as error:
            logger.warning(f"Could not check transactions for invoice {invoice_id}: {error}")
            return
        if any(tx.payment_status is PaymentStatus.PAID_MANUAL for tx in transactions):
            raise ConflictError(
                "Invoice cannot be voided due to linked transactions. Reverse transactions first"
            )


class GetInvoice(UseCase):

    def __init__(
        self,
        invoices: InvoiceRepository,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices

    async def execute(self, invoice_id: str, performed_by: str) -> Result[Invoice]:
        try:
            await self.authorize(
                performed_by, Capability.INVOICE_VIEW, "You are not allowed to view invoices"
            )
            return Result.ok(await load_invoice(self.invoices, invoice_id))
        except Exception as error:
            return self.handle_error(error)
