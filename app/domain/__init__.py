"""Domain layer - Pure Python business logic."""

from app.domain.calculation import (
    InvoiceCalculation,
    InvoiceCalculationService,
    LineCalculation,
    calculate_line,
    calculate_lines,
)
from app.domain.entities import (
    ALLOWED_TRANSITIONS,
    CatalogItem,
    Company,
    CreditNote,
    FinancialExport,
    Invoice,
    Store,
    Transaction,
)
from app.domain.exceptions import (
    CorruptedDocumentError,
    DomainValidationError,
    IllegalTransitionError,
    ImmutabilityError,
)
from app.domain.services import InvoiceIssuanceService, IssuanceValidation, TransitionValidation
from app.domain.value_objects import (
    DeliveryMethod,
    ExportFormat,
    InvoiceLine,
    InvoiceNumber,
    InvoiceStatus,
    PaymentStatus,
    Period,
    TaxpayerNumber,
    TransactionLineItem,
    VatRate,
)
