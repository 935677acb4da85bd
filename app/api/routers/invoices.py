"""
API Routers - Invoice lifecycle endpoints.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import current_user, get_services, unwrap
from app.application.dto.financial_dto import (
    InvoiceDraftCreateDTO,
    InvoiceResponseDTO,
    MarkPaidRequestDTO,
    VoidRequestDTO,
)
from app.infrastructure.container import FinancialServices

router = APIRouter(prefix="/api/v1/invoices", tags=["Invoices"])


@router.post("", response_model=InvoiceResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_draft_invoice(
    dto: InvoiceDraftCreateDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """
    Create a DRAFT invoice.

    - Placeholder number DRAFT-<timestamp> until issued
    - Lines, number and buyer editable only while DRAFT
    """
    result = await services.create_draft.execute(
        company_id=dto.company_id,
        store_id=dto.store_id,
        lines=[line.model_dump() for line in dto.lines],
        performed_by=user_id,
        buyer_customer_id=dto.buyer_customer_id,
    )
    return InvoiceResponseDTO.model_validate(unwrap(result))


@router.get("/{invoice_id}", response_model=InvoiceResponseDTO)
async def get_invoice(
    invoice_id: str,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    result = await services.get_invoice.execute(invoice_id, performed_by=user_id)
    return InvoiceResponseDTO.model_validate(unwrap(result))


@router.post("/{invoice_id}/issue", response_model=InvoiceResponseDTO)
async def issue_invoice(
    invoice_id: str,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """Issue a DRAFT invoice and assign its fiscal number YYYY/NNNN."""
    result = await services.issue_invoice.execute(invoice_id, performed_by=user_id)
    return InvoiceResponseDTO.model_validate(unwrap(result))


@router.post("/{invoice_id}/pay", response_model=InvoiceResponseDTO)
async def mark_invoice_paid(
    invoice_id: str,
    dto: MarkPaidRequestDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    result = await services.mark_paid.execute(
        invoice_id,
        payment_method=dto.payment_method,
        performed_by=user_id,
        paid_at=dto.paid_at,
        external_reference=dto.external_reference,
    )
    return InvoiceResponseDTO.model_validate(unwrap(result))


@router.post("/{invoice_id}/void", response_model=InvoiceResponseDTO)
async def void_invoice(
    invoice_id: str,
    dto: VoidRequestDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """Cancel an issued invoice. Paid invoices go through the refund flow."""
    result = await services.void_invoice.execute(invoice_id, reason=dto.reason, performed_by=user_id)
    return InvoiceResponseDTO.model_validate(unwrap(result))
