"""
API Routers - Financial exports.
"""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import current_user, get_services, unwrap
from app.application.dto.financial_dto import FinancialExportCreateDTO, FinancialExportResponseDTO
from app.infrastructure.container import FinancialServices

router = APIRouter(prefix="/api/v1/financial-exports", tags=["Financial exports"])


@router.post("", response_model=FinancialExportResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_financial_export(
    dto: FinancialExportCreateDTO,
    services: FinancialServices = Depends(get_services),
    user_id: str | None = Depends(current_user),
):
    """Export invoices, transactions and credit notes of up to 365 days as CSV or JSON."""
    result = await services.create_export.execute(
        company_id=dto.company_id,
        period_start=dto.period_start,
        period_end=dto.period_end,
        export_format=dto.format,
        performed_by=user_id,
        include_voided=dto.include_voided,
        delivery_method=dto.delivery_method,
    )
    outcome = unwrap(result)
    export = outcome.export
    return FinancialExportResponseDTO(
        id=export.id,
        company_id=export.company_id,
        format=export.format,
        period_start=export.period_start,
        period_end=export.period_end,
        file_path=export.file_path,
        sftp_reference=export.sftp_reference,
        record_count=outcome.record_count,
        download_url=outcome.download_url,
        created_by=export.created_by,
        created_at=export.created_at,
    )
