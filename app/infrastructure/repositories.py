"""
Repositories backed by a RecordStore.
"""

from app.application.errors import ConflictError
from app.application.ports import (
    CatalogLookup,
    CompanyRepository,
    CreditNoteRepository,
    CustomerRepository,
    FinancialExportRepository,
    InvoiceRepository,
    RecordStore,
    RecordTransaction,
    StoreRepository,
    TransactionRepository,
)
from app.domain.entities import (
    CatalogItem,
    Company,
    CreditNote,
    FinancialExport,
    Invoice,
    Store,
    Transaction,
)
from app.domain.value_objects import InvoiceStatus, Period
from app.infrastructure import records
from app.infrastructure.records import (
    COMPANIES,
    CREDIT_NOTES,
    CUSTOMERS,
    FINANCIAL_EXPORTS,
    INVOICES,
    PRODUCTS,
    SERVICES,
    STORES,
    TRANSACTIONS,
)


def _revision(invoice: Invoice) -> tuple:
    return (
        invoice.status,
        invoice.invoice_number,
        invoice.issued_at,
        invoice.paid_at,
        invoice.payment_method,
        invoice.external_reference,
        invoice.updated_at,
    )


class RecordStoreInvoiceRepository(InvoiceRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, invoice_id: str) -> Invoice | None:
        record = await self.store.get(INVOICES, invoice_id)
        return records.invoice_from_record(record) if record else None

    async def save(self, invoice: Invoice, expected: Invoice | None = None) -> Invoice:
        """
        Compare-and-set write. The stored invoice must still be the one the
        caller loaded (expected); without expected the invoice must be new.
        """
        record = records.invoice_to_record(invoice)

        async def write(transaction: RecordTransaction) -> None:
            current = await transaction.get(INVOICES, invoice.id)
            if expected is None:
                if current is not None:
                    raise ConflictError(f"Invoice {invoice.id} already exists")
            elif current is None or _revision(records.invoice_from_record(current)) != _revision(expected):
                raise ConflictError("Invoice was modified concurrently. Reload it and try again")
            transaction.set(INVOICES, invoice.id, record)

        await self.store.run_in_transaction(write)
        return invoice

    async def find_by_number(self, invoice_number: str, company_id: str) -> Invoice | None:
        found = await self.store.query(INVOICES, invoice_number=invoice_number, company_id=company_id)
        return records.invoice_from_record(found[0]) if found else None

    async def find_issued_in_period(
        self, company_id: str, period: Period, include_cancelled: bool = False
    ) -> list[Invoice]:
        invoices = [
            records.invoice_from_record(record)
            for record in await self.store.query(INVOICES, company_id=company_id)
        ]
        return sorted(
            (
                invoice for invoice in invoices
                if invoice.issued_at is not None
                and period.contains(invoice.issued_at)
                and (include_cancelled or invoice.status is not InvoiceStatus.CANCELLED)
            ),
            key=lambda invoice: invoice.issued_at,
        )


class RecordStoreCreditNoteRepository(CreditNoteRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, credit_note_id: str) -> CreditNote | None:
        record = await self.store.get(CREDIT_NOTES, credit_note_id)
        return records.credit_note_from_record(record) if record else None

    async def save(self, credit_note: CreditNote) -> CreditNote:
        await self.store.set(CREDIT_NOTES, credit_note.id, records.credit_note_to_record(credit_note))
        return credit_note

    async def find_by_invoice(self, invoice_id: str) -> list[CreditNote]:
        notes = [
            records.credit_note_from_record(record)
            for record in await self.store.query(CREDIT_NOTES, invoice_id=invoice_id)
        ]
        return sorted(notes, key=lambda note: note.created_at)


class RecordStoreTransactionRepository(TransactionRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, transaction_id: str) -> Transaction | None:
        record = await self.store.get(TRANSACTIONS, transaction_id)
        return records.transaction_from_record(record) if record else None

    async def save(self, transaction: Transaction) -> Transaction:
        await self.store.set(TRANSACTIONS, transaction.id, records.transaction_to_record(transaction))
        return transaction

    async def find_by_invoice(self, invoice_id: str) -> list[Transaction]:
        return [
            records.transaction_from_record(record)
            for record in await self.store.query(TRANSACTIONS, invoice_id=invoice_id)
        ]

    async def find_by_stores_in_period(self, store_ids: list[str], period: Period) -> list[Transaction]:
        found: list[Transaction] = []
        for store_id in store_ids:
            for record in await self.store.query(TRANSACTIONS, store_id=store_id):
                transaction = records.transaction_from_record(record)
                if period.contains(transaction.created_at):
                    found.append(transaction)
        return sorted(found, key=lambda transaction: transaction.created_at)


class RecordStoreFinancialExportRepository(FinancialExportRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, export_id: str) -> FinancialExport | None:
        record = await self.store.get(FINANCIAL_EXPORTS, export_id)
        return records.export_from_record(record) if record else None

    async def save(self, export: FinancialExport) -> FinancialExport:
        await self.store.set(FINANCIAL_EXPORTS, export.id, records.export_to_record(export))
        return export


class RecordStoreCompanyRepository(CompanyRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, company_id: str) -> Company | None:
        record = await self.store.get(COMPANIES, company_id)
        return records.company_from_record(record) if record else None


class RecordStoreStoreRepository(StoreRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def get(self, store_id: str) -> Store | None:
        record = await self.store.get(STORES, store_id)
        return records.store_from_record(record) if record else None

    async def find_by_company(self, company_id: str) -> list[Store]:
        return [
            records.store_from_record(record)
            for record in await self.store.query(STORES, company_id=company_id)
        ]


class RecordStoreCustomerRepository(CustomerRepository):

    def __init__(self, store: RecordStore):
        self.store = store

    async def exists(self, customer_id: str) -> bool:
        return await self.store.get(CUSTOMERS, customer_id) is not None


class RecordStoreCatalog(CatalogLookup):

    def __init__(self, store: RecordStore):
        self.store = store

    async def find_product(self, product_id: str) -> CatalogItem | None:
        record = await self.store.get(PRODUCTS, product_id)
        return records.catalog_item_from_record(record) if record else None

    async def find_service(self, service_id: str) -> CatalogItem | None:
        record = await self.store.get(SERVICES, service_id)
        return records.catalog_item_from_record(record) if record else None
