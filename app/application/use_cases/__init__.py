"""Use cases - one class per operation, each returning a Result."""

from app.application.use_cases.base import UseCase
from app.application.use_cases.credit_notes import CreateCreditNote
from app.application.use_cases.exports import CreateFinancialExport, ExportOutcome
from app.application.use_cases.invoices import (
    CreateInvoiceDraft,
    GetInvoice,
    IssueInvoice,
    MarkInvoicePaid,
    VoidInvoice,
)
from app.application.use_cases.transactions import (
    CompleteTransaction,
    CreateTransaction,
    TransactionOutcome,
)
