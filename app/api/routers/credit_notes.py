"""
API Routers - Credit notes.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import current_user, get_services, unwrap
from app.application.dto.financial_dto import CreditNoteCreateDTO, CreditNoteResponseDTO
from app.infrastructure.container import FinancialServices

router = APIRouter(prefix="/api/v1/credit-notes", tags=["Credit notes"])


@router.post("", response_model=CreditNoteResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_credit_note(
    dto: CreditNoteCreateDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """
    Issue a credit note against an ISSUED or PAID invoice.
    The amount cannot exceed what remains after earlier credit notes.
    """
    result = await services.create_credit_note.execute(
        invoice_id=dto.invoice_id,
        amount=dto.amount,
        reason=dto.reason,
        performed_by=user_id,
    )
    return CreditNoteResponseDTO.model_validate(unwrap(result))
