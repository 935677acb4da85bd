"""
API Routers - Point-of-sale transactions.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import current_user, get_services, unwrap
from app.application.dto.financial_dto import (
    InvoiceResponseDTO,
    TransactionCreateDTO,
    TransactionCreatedDTO,
    TransactionResponseDTO,
)
from app.infrastructure.container import FinancialServices

router = APIRouter(prefix="/api/v1/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionCreatedDTO, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    dto: TransactionCreateDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """Register a sale: a PENDING transaction and its DRAFT invoice."""
    result = await services.create_transaction.execute(
        store_id=dto.store_id,
        line_items=[item.model_dump() for item in dto.line_items],
        performed_by=user_id,
        buyer_customer_id=dto.buyer_customer_id,
    )
    outcome = unwrap(result)
    return TransactionCreatedDTO(
        transaction=TransactionResponseDTO.model_validate(outcome.transaction),
        invoice=InvoiceResponseDTO.model_validate(outcome.invoice),
    )


@router.post("/{transaction_id}/complete", response_model=TransactionResponseDTO)
async def complete_transaction(
    transaction_id: str,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    result = await services.complete_transaction.execute(transaction_id, performed_by=user_id)
    return TransactionResponseDTO.model_validate(unwrap(result))
