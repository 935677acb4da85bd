"""
Mappers between aggregates and their persisted records.

Records are flat dicts: ISO-8601 timestamps, decimals as strings, invoice
lines embedded as an ordered list. Mapping a record to an entity and back
yields the same record.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from app.application.ports import Record
from app.core.security import AuditEntry
from app.domain.calculation import InvoiceCalculationService
from app.domain.entities import (
    CatalogItem,
    Company,
    CreditNote,
    FinancialExport,
    Invoice,
    Store,
    Transaction,
)
from app.domain.value_objects import InvoiceLine, TransactionLineItem

logger = logging.getLogger(__name__)

INVOICES = "invoices"
CREDIT_NOTES = "credit_notes"
TRANSACTIONS = "transactions"
FINANCIAL_EXPORTS = "financial_exports"
COMPANIES = "companies"
STORES = "stores"
CUSTOMERS = "customers"
PRODUCTS = "products"
SERVICES = "services"
USERS = "users"
AUDIT_LOGS = "audit_logs"
INVOICE_NUMBER_COUNTERS = "invoice_number_counters"

_calculator = InvoiceCalculationService()


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _moment(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _decimal(value: Any) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def invoice_to_record(invoice: Invoice) -> Record:
    return {
        "id": invoice.id,
        "company_id": invoice.company_id,
        "store_id": invoice.store_id,
        "invoice_number": invoice.invoice_number,
        "buyer_customer_id": invoice.buyer_customer_id,
        "lines": [
            {
                "description": line.description,
                "product_id": line.product_id,
                "service_id": line.service_id,
                "quantity": line.quantity,
                "unit_price": str(line.unit_price),
                "vat_rate": str(line.vat_rate),
            }
            for line in invoice.lines
        ],
        "subtotal": str(invoice.subtotal),
        "vat_total": str(invoice.vat_total),
        "total": str(invoice.total),
        "status": invoice.status.value,
        "issued_at": _iso(invoice.issued_at),
        "paid_at": _iso(invoice.paid_at),
        "payment_method": invoice.payment_method,
        "external_reference": invoice.external_reference,
        "created_by": invoice.created_by,
        "created_at": _iso(invoice.created_at),
        "updated_at": _iso(invoice.updated_at),
    }


@dataclass(frozen=True)
class StoredTotals:
    """Totals as persisted, next to the lines they were computed from."""

    id: str
    lines: tuple[InvoiceLine, ...]
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal


def _check_stored_totals(invoice: Invoice, record: Record) -> None:
    amounts = [_decimal(record.get(name)) for name in ("subtotal", "vat_total", "total")]
    if None in amounts:
        return
    stored = StoredTotals(invoice.id, invoice.lines, *amounts)
    if not _calculator.validate_totals(stored):
        differences = _calculator.total_differences(stored)
        logger.warning(
            f"Invoice {invoice.id} stored totals differ from computed: "
            f"subtotal {differences.subtotal:+}, vat_total {differences.vat_total:+}, total {differences.total:+}"
        )


def invoice_from_record(record: Record) -> Invoice:
    invoice = Invoice(
        id=record["id"],
        company_id=record["company_id"],
        store_id=record["store_id"],
        invoice_number=record["invoice_number"],
        created_by=record["created_by"],
        buyer_customer_id=record.get("buyer_customer_id"),
        lines=tuple(
            InvoiceLine(
                description=line["description"],
                quantity=int(line["quantity"]),
                unit_price=Decimal(line["unit_price"]),
                vat_rate=Decimal(line["vat_rate"]),
                product_id=line.get("product_id"),
                service_id=line.get("service_id"),
            )
            for line in record.get("lines", [])
        ),
        status=record["status"],
        issued_at=_moment(record.get("issued_at")),
        paid_at=_moment(record.get("paid_at")),
        payment_method=record.get("payment_method"),
        external_reference=record.get("external_reference"),
        created_at=_moment(record["created_at"]),
        updated_at=_moment(record["updated_at"]),
    )
    _check_stored_totals(invoice, record)
    return invoice


def credit_note_to_record(credit_note: CreditNote) -> Record:
    return {
        "id": credit_note.id,
        "invoice_id": credit_note.invoice_id,
        "amount": str(credit_note.amount),
        "reason": credit_note.reason,
        "issued_at": _iso(credit_note.issued_at),
        "created_by": credit_note.created_by,
        "created_at": _iso(credit_note.created_at),
    }


def credit_note_from_record(record: Record) -> CreditNote:
    return CreditNote(
        id=record["id"],
        invoice_id=record["invoice_id"],
        amount=Decimal(record["amount"]),
        reason=record.get("reason"),
        issued_at=_moment(record.get("issued_at")),
        created_by=record["created_by"],
        created_at=_moment(record["created_at"]),
    )


def transaction_to_record(transaction: Transaction) -> Record:
    return {
        "id": transaction.id,
        "store_id": transaction.store_id,
        "invoice_id": transaction.invoice_id,
        "line_items": [
            {
                "product_id": item.product_id,
                "service_id": item.service_id,
                "description": item.description,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
            }
            for item in transaction.line_items
        ],
        "total_amount": str(transaction.total_amount),
        "payment_status": transaction.payment_status.value,
        "created_by": transaction.created_by,
        "created_at": _iso(transaction.created_at),
        "updated_at": _iso(transaction.updated_at),
    }


def transaction_from_record(record: Record) -> Transaction:
    return Transaction(
        id=record["id"],
        store_id=record["store_id"],
        invoice_id=record["invoice_id"],
        line_items=tuple(
            TransactionLineItem(
                quantity=int(item["quantity"]),
                unit_price=Decimal(item["unit_price"]),
                product_id=item.get("product_id"),
                service_id=item.get("service_id"),
                description=item.get("description"),
            )
            for item in record.get("line_items", [])
        ),
        payment_status=record["payment_status"],
        created_by=record["created_by"],
        created_at=_moment(record["created_at"]),
        updated_at=_moment(record["updated_at"]),
    )


def export_to_record(export: FinancialExport) -> Record:
    return {
        "id": export.id,
        "company_id": export.company_id,
        "format": export.format.value,
        "period_start": _iso(export.period_start),
        "period_end": _iso(export.period_end),
        "file_path": export.file_path,
        "sftp_reference": export.sftp_reference,
        "created_by": export.created_by,
        "created_at": _iso(export.created_at),
    }


def export_from_record(record: Record) -> FinancialExport:
    return FinancialExport(
        id=record["id"],
        company_id=record["company_id"],
        format=record["format"],
        period_start=_moment(record.get("period_start")),
        period_end=_moment(record.get("period_end")),
        file_path=record.get("file_path"),
        sftp_reference=record.get("sftp_reference"),
        created_by=record["created_by"],
        created_at=_moment(record["created_at"]),
    )


def company_to_record(company: Company) -> Record:
    return {"id": company.id, "name": company.name, "nif": company.nif}


def company_from_record(record: Record) -> Company:
    return Company(id=record["id"], name=record.get("name", ""), nif=record.get("nif"))


def store_to_record(store: Store) -> Record:
    return {"id": store.id, "company_id": store.company_id, "name": store.name}


def store_from_record(record: Record) -> Store:
    return Store(id=record["id"], company_id=record["company_id"], name=record.get("name", ""))


def catalog_item_to_record(item: CatalogItem) -> Record:
    return {
        "id": item.id,
        "name": item.name,
        "unit_price": str(item.unit_price),
        "vat_rate": str(item.vat_rate) if item.vat_rate is not None else None,
    }


def catalog_item_from_record(record: Record) -> CatalogItem:
    return CatalogItem(
        id=record["id"],
        name=record.get("name", ""),
        unit_price=_decimal(record.get("unit_price")) or Decimal("0"),
        vat_rate=_decimal(record.get("vat_rate")),
    )


def audit_entry_to_record(entry: AuditEntry) -> Record:
    return {
        "id": entry.id,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "action": entry.action.value,
        "performed_by": entry.performed_by,
        "before": entry.before,
        "after": entry.after,
        "metadata": entry.metadata,
        "timestamp": _iso(entry.timestamp),
    }
