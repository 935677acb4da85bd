"""
Wiring of the use cases onto one record store.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from app.application.ports import FileStorage, RecordStore
from app.application.use_cases import (
    CompleteTransaction,
    CreateCreditNote,
    CreateFinancialExport,
    CreateInvoiceDraft,
    CreateTransaction,
    GetInvoice,
    IssueInvoice,
    MarkInvoicePaid,
    VoidInvoice,
)
from app.application.use_cases.base import new_id
from app.domain.value_objects import utcnow
from app.infrastructure.audit import RecordStoreAuditSink
from app.infrastructure.authorization import RecordStoreRoleResolver
from app.infrastructure.exports import FinancialExportFileGenerator, LocalFileStorage
from app.infrastructure.numbering import RecordStoreInvoiceNumberGenerator
from app.infrastructure.repositories import (
    RecordStoreCatalog,
    RecordStoreCompanyRepository,
    RecordStoreCreditNoteRepository,
    RecordStoreCustomerRepository,
    RecordStoreFinancialExportRepository,
    RecordStoreInvoiceRepository,
    RecordStoreStoreRepository,
    RecordStoreTransactionRepository,
)


@dataclass
class FinancialServices:
    store: RecordStore
    create_draft: CreateInvoiceDraft
    issue_invoice: IssueInvoice
    mark_paid: MarkInvoicePaid
    void_invoice: VoidInvoice
    get_invoice: GetInvoice
    create_credit_note: CreateCreditNote
    create_export: CreateFinancialExport
    create_transaction: CreateTransaction
    complete_transaction: CompleteTransaction


def build_services(
    store: RecordStore,
    export_dir: str,
    sftp_storage: FileStorage | None = None,
    clock: Callable[[], datetime] = utcnow,
    id_factory: Callable[[], str] = new_id,
) -> FinancialServices:
    invoices = RecordStoreInvoiceRepository(store)
    credit_notes = RecordStoreCreditNoteRepository(store)
    transactions = RecordStoreTransactionRepository(store)
    exports = RecordStoreFinancialExportRepository(store)
    companies = RecordStoreCompanyRepository(store)
    stores = RecordStoreStoreRepository(store)
    customers = RecordStoreCustomerRepository(store)
    catalog = RecordStoreCatalog(store)
    roles = RecordStoreRoleResolver(store)
    audit = RecordStoreAuditSink(store)
    common = {"clock": clock, "id_factory": id_factory}

    return FinancialServices(
        store=store,
        create_draft=CreateInvoiceDraft(invoices, companies, stores, customers, catalog, roles, audit, **common),
        issue_invoice=IssueInvoice(
            invoices, companies, RecordStoreInvoiceNumberGenerator(store, clock), roles, audit, **common
        ),
        mark_paid=MarkInvoicePaid(invoices, roles, audit, **common),
        void_invoice=VoidInvoice(invoices, transactions, roles, audit, **common),
        get_invoice=GetInvoice(invoices, roles, audit, **common),
        create_credit_note=CreateCreditNote(invoices, credit_notes, roles, audit, **common),
        create_export=CreateFinancialExport(
            exports, companies, stores, invoices, transactions, credit_notes,
            FinancialExportFileGenerator(), LocalFileStorage(export_dir), roles, audit,
            sftp_storage=sftp_storage, **common,
        ),
        create_transaction=CreateTransaction(
            transactions, invoices, stores, customers, catalog, roles, audit, **common
        ),
        complete_transaction=CompleteTransaction(transactions, roles, audit, **common),
    )
