"""Application layer - Use cases and DTOs."""

from app.application.dto.financial_dto import (
    CreditNoteCreateDTO,
    CreditNoteResponseDTO,
    FinancialExportCreateDTO,
    FinancialExportResponseDTO,
    InvoiceDraftCreateDTO,
    InvoiceResponseDTO,
    MarkPaidRequestDTO,
    TransactionCreateDTO,
    TransactionResponseDTO,
    VoidRequestDTO,
)
from app.application.errors import ApplicationError, ErrorCode
from app.application.results import ErrorInfo, Result
