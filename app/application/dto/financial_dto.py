"""
API DTOs - Data Transfer Objects for API requests/responses.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.value_objects import ExportFormat, InvoiceStatus, PaymentStatus


class InvoiceLineCreateDTO(BaseModel):
    """DTO - Invoice line."""
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    vat_rate: Decimal = Field(..., ge=0, le=100, description="VAT percentage")
    product_id: str | None = None
    service_id: str | None = None


class InvoiceDraftCreateDTO(BaseModel):
    """DTO - Create a draft invoice."""
    company_id: str = Field(..., min_length=1)
    store_id: str = Field(..., min_length=1)
    buyer_customer_id: str | None = None
    lines: list[InvoiceLineCreateDTO] = Field(..., min_length=1)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "company_id": "company-1",
            "store_id": "store-1",
            "buyer_customer_id": None,
            "lines": [
                {
                    "description": "Dog grooming",
                    "quantity": 2,
                    "unit_price": "50.00",
                    "vat_rate": "23",
                    "service_id": "service-grooming",
                }
            ],
        }
    })


class MarkPaidRequestDTO(BaseModel):
    payment_method: str = Field(..., max_length=64, examples=["CARD"])
    paid_at: datetime | None = None
    external_reference: str | None = None


class VoidRequestDTO(BaseModel):
    reason: str = Field(..., max_length=500)


class InvoiceLineResponseDTO(BaseModel):
    description: str
    quantity: int
    unit_price: Decimal
    vat_rate: Decimal
    product_id: str | None = None
    service_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class InvoiceResponseDTO(BaseModel):
    """DTO - Invoice."""
    id: str
    company_id: str
    store_id: str
    invoice_number: str
    buyer_customer_id: str | None
    lines: list[InvoiceLineResponseDTO]
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal
    status: InvoiceStatus
    issued_at: datetime | None
    paid_at: datetime | None
    payment_method: str | None
    external_reference: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CreditNoteCreateDTO(BaseModel):
    invoice_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    reason: str = Field(..., max_length=500)


class CreditNoteResponseDTO(BaseModel):
    id: str
    invoice_id: str
    amount: Decimal
    reason: str | None
    issued_at: datetime | None
    created_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FinancialExportCreateDTO(BaseModel):
    """DTO - Request a financial export of at most 365 days."""
    company_id: str = Field(..., min_length=1)
    period_start: datetime
    period_end: datetime
    format: str = Field(..., description="csv or json")
    include_voided: bool = False
    delivery_method: str = Field("download", description="download or sftp")


class FinancialExportResponseDTO(BaseModel):
    id: str
    company_id: str
    format: ExportFormat
    period_start: datetime | None
    period_end: datetime | None
    file_path: str | None
    sftp_reference: str | None
    record_count: int
    download_url: str | None
    created_by: str
    created_at: datetime


class TransactionLineItemDTO(BaseModel):
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    product_id: str | None = None
    service_id: str | None = None
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TransactionCreateDTO(BaseModel):
    store_id: str = Field(..., min_length=1)
    buyer_customer_id: str | None = None
    line_items: list[TransactionLineItemDTO] = Field(..., min_length=1)


class TransactionResponseDTO(BaseModel):
    id: str
    store_id: str
    invoice_id: str
    line_items: list[TransactionLineItemDTO]
    total_amount: Decimal
    payment_status: PaymentStatus
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionCreatedDTO(BaseModel):
    transaction: TransactionResponseDTO
    invoice: InvoiceResponseDTO


class ErrorResponseDTO(BaseModel):
    code: str
    message: str
