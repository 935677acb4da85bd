"""
Credit note use case - reduce the value of an issued or paid invoice.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from app.application.errors import ValidationError
from app.application.ports import AuditSink, CreditNoteRepository, InvoiceRepository, RoleResolver
from app.application.results import Result
from app.application.use_cases.base import MAX_REASON_LENGTH, UseCase, new_id
from app.application.use_cases.invoices import load_invoice
from app.core.security import AuditAction, AuditEntry, Capability
from app.domain.entities import CreditNote
from app.domain.value_objects import ZERO, InvoiceStatus, round_money, to_decimal, utcnow

logger = logging.getLogger(__name__)


class CreateCreditNote(UseCase):
    """
    The note is issued immediately. Its amount may not exceed the invoice
    total nor what is left after earlier credit notes.
    """

    def __init__(
        self,
        invoices: InvoiceRepository,
        credit_notes: CreditNoteRepository,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.invoices = invoices
        self.credit_notes = credit_notes

    async def execute(
        self,
        invoice_id: str,
        amount: Decimal | str | int,
        reason: str,
        performed_by: str,
    ) -> Result[CreditNote]:
        try:
            await self.authorize(
                performed_by,
                Capability.CREDIT_NOTE_CREATE,
                "Only Manager, Accountant, or Owner role can create credit notes",
            )
            if not invoice_id or not invoice_id.strip():
                raise ValidationError("Invoice ID is required")
            if not reason or not reason.strip():
                raise ValidationError("Reason is required for credit note")
            if len(reason) > MAX_REASON_LENGTH:
                raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")
            amount = round_money(to_decimal(amount, "Credit note amount"))
            if amount <= ZERO:
                raise ValidationError("Credit note amount must be greater than 0")

            invoice = await load_invoice(self.invoices, invoice_id)
            if invoice.status not in (InvoiceStatus.ISSUED, InvoiceStatus.PAID):
                raise ValidationError("Credit note can only be created for issued or paid invoices")

            outstanding = await self.outstanding_amount(invoice.id, invoice.total)
            if amount > invoice.total:
                raise ValidationError("Credit note amount cannot exceed invoice total")
            if amount > outstanding:
                raise ValidationError(
                    f"Credit note amount cannot exceed outstanding amount. Outstanding: {outstanding}"
                )

            now = self.clock()
            credit_note = CreditNote(
                id=self.id_factory(),
                invoice_id=invoice.id,
                amount=amount,
                created_by=performed_by,
                reason=reason.strip(),
                created_at=now,
            ).issue(now)
            saved = await self.credit_notes.save(credit_note)

            await self.audit(AuditEntry(
                entity_type="CreditNote",
                entity_id=saved.id,
                action=AuditAction.CREATE,
                performed_by=performed_by,
                after={
                    "invoice_id": saved.invoice_id,
                    "amount": str(saved.amount),
                    "reason": saved.reason,
                },
                timestamp=now,
            ))
            logger.info(f"Credit note {saved.id} of {saved.amount} issued against invoice {invoice.id}")
            return Result.ok(saved)
        except Exception as error:
            return self.handle_error(error)

    async def outstanding_amount(self, invoice_id: str, invoice_total: Decimal) -> Decimal:
        existing = await self.credit_notes.find_by_invoice(invoice_id)
        credited = sum((note.amount for note in existing), ZERO)
        return max(round_money(invoice_total - credited), ZERO)
