"""
Point-of-sale transaction use cases.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.application.errors import NotFoundError, ValidationError
from app.application.ports import (
    AuditSink,
    CatalogLookup,
    CustomerRepository,
    InvoiceRepository,
    RoleResolver,
    StoreRepository,
    TransactionRepository,
)
from app.application.results import Result
from app.application.use_cases.base import UseCase, new_id
from app.application.use_cases.invoices import invoice_snapshot
from app.core.security import AuditAction, AuditEntry, Capability
from app.domain.entities import CatalogItem, Invoice, Transaction
from app.domain.value_objects import (
    InvoiceLine,
    InvoiceNumber,
    PaymentStatus,
    TransactionLineItem,
    VatRate,
    utcnow,
)

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("quantity", "unit_price", "product_id", "service_id", "description")


@dataclass(frozen=True)
class TransactionOutcome:
    transaction: Transaction
    invoice: Invoice


def to_line_item(raw: TransactionLineItem | Mapping[str, Any]) -> TransactionLineItem:
    if isinstance(raw, TransactionLineItem):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("Line item must be an object")
    return TransactionLineItem(**{name: raw.get(name) for name in ITEM_FIELDS})


class CreateTransaction(UseCase):
    """
    Register a sale at a store: a DRAFT invoice for the store's company and
    a PENDING transaction linked to it.
    """

    def __init__(
        self,
        transactions: TransactionRepository,
        invoices: InvoiceRepository,
        stores: StoreRepository,
        customers: CustomerRepository,
        catalog: CatalogLookup,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.transactions = transactions
        self.invoices = invoices
        self.stores = stores
        self.customers = customers
        self.catalog = catalog

    async def execute(
        self,
        store_id: str,
        line_items: Sequence[TransactionLineItem | Mapping[str, Any]],
        performed_by: str,
        buyer_customer_id: str | None = None,
    ) -> Result[TransactionOutcome]:
        try:
            await self.authorize(
                performed_by,
                Capability.TRANSACTION_CREATE,
                "Only Staff, Manager, Accountant, or Owner role can create transactions",
            )
            if not store_id or not store_id.strip():
                raise ValidationError("Store ID is required")
            if not line_items:
                raise ValidationError("Transaction must have at least one line item")

            store = await self.stores.get(store_id)
            if store is None:
                raise NotFoundError("Store not found")
            if buyer_customer_id and not await self.customers.exists(buyer_customer_id):
                raise NotFoundError("Customer not found")

            items = [to_line_item(raw) for raw in line_items]
            invoice_lines = [await self._invoice_line(item) for item in items]

            now = self.clock()
            invoice = Invoice(
                id=self.id_factory(),
                company_id=store.company_id,
                store_id=store.id,
                invoice_number=InvoiceNumber.draft_placeholder(now),
                created_by=performed_by,
                buyer_customer_id=buyer_customer_id,
                lines=tuple(invoice_lines),
                created_at=now,
                updated_at=now,
            )
            transaction = Transaction(
                id=self.id_factory(),
                store_id=store.id,
                invoice_id=invoice.id,
                created_by=performed_by,
                line_items=tuple(items),
                created_at=now,
                updated_at=now,
            )
            invoice = await self.invoices.save(invoice)
            transaction = await self.transactions.save(transaction)

            await self.audit(AuditEntry(
                entity_type="Transaction",
                entity_id=transaction.id,
                action=AuditAction.CREATE,
                performed_by=performed_by,
                after={
                    "store_id": transaction.store_id,
                    "invoice_id": invoice.id,
                    "total_amount": str(transaction.total_amount),
                    "payment_status": transaction.payment_status.value,
                    "invoice": invoice_snapshot(invoice),
                },
                timestamp=now,
            ))
            logger.info(f"Transaction {transaction.id} created with draft invoice {invoice.id}")
            return Result.ok(TransactionOutcome(transaction, invoice))
        except Exception as error:
            return self.handle_error(error)

    async def _invoice_line(self, item: TransactionLineItem) -> InvoiceLine:
        catalog_item: CatalogItem | None
        if item.product_id:
            catalog_item = await self.catalog.find_product(item.product_id)
            if catalog_item is None:
                raise NotFoundError(f"Product with ID {item.product_id} not found")
        else:
            catalog_item = await self.catalog.find_service(item.service_id)
            if catalog_item is None:
                raise NotFoundError(f"Service with ID {item.service_id} not found")

        vat_rate = catalog_item.vat_rate if catalog_item.vat_rate is not None else VatRate.standard().value
        return InvoiceLine(
            description=item.description or catalog_item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            vat_rate=vat_rate,
            product_id=item.product_id,
            service_id=item.service_id,
        )


class CompleteTransaction(UseCase):
    """Settle a PENDING transaction manually (cash, card terminal, ...)."""

    def __init__(
        self,
        transactions: TransactionRepository,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.transactions = transactions

    async def execute(self, transaction_id: str, performed_by: str) -> Result[Transaction]:
        try:
            await self.authorize(
                performed_by,
                Capability.TRANSACTION_COMPLETE,
                "Only Staff, Manager, Accountant, or Owner role can complete transactions",
            )
            transaction = await self.transactions.get(transaction_id)
            if transaction is None:
                raise NotFoundError("Transaction not found")
            if transaction.payment_status is not PaymentStatus.PENDING:
                raise ValidationError(
                    "Transaction is not in pending status. Only pending transactions can be completed"
                )

            completed = await self.transactions.save(transaction.mark_as_paid_manual())

            await self.audit(AuditEntry(
                entity_type="Transaction",
                entity_id=completed.id,
                action=AuditAction.COMPLETE,
                performed_by=performed_by,
                before={"payment_status": transaction.payment_status.value},
                after={
                    "payment_status": completed.payment_status.value,
                    "total_amount": str(completed.total_amount),
                },
                timestamp=self.clock(),
            ))
            logger.info(f"Transaction {completed.id} completed")
            return Result.ok(completed)
        except Exception as error:
            return self.handle_error(error)
