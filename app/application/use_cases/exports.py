"""
Financial export use case - bundle a company's documents of a period
into a CSV or JSON file and deliver it for download or over SFTP.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from app.application.errors import NotFoundError, ValidationError
from app.application.ports import (
    AuditSink,
    CompanyRepository,
    CreditNoteRepository,
    ExportBundle,
    ExportFileGenerator,
    FileStorage,
    FinancialExportRepository,
    InvoiceRepository,
    RoleResolver,
    StoreRepository,
    TransactionRepository,
)
from app.application.results import Result
from app.application.use_cases.base import UseCase, new_id
from app.core.security import AuditAction, AuditEntry, Capability
from app.domain.entities import FinancialExport
from app.domain.exceptions import DomainValidationError
from app.domain.value_objects import DeliveryMethod, ExportFormat, Period, as_utc, utcnow

logger = logging.getLogger(__name__)

MAX_PERIOD_DAYS = 365


@dataclass(frozen=True)
class ExportOutcome:
    export: FinancialExport
    record_count: int
    download_url: str | None = None


def export_file_name(company_id: str, period: Period, export_format: ExportFormat) -> str:
    return (
        f"financial-export-{company_id}-{period.start.date().isoformat()}"
        f"-{period.end.date().isoformat()}.{export_format.extension}"
    )


class CreateFinancialExport(UseCase):

    def __init__(
        self,
        exports: FinancialExportRepository,
        companies: CompanyRepository,
        stores: StoreRepository,
        invoices: InvoiceRepository,
        transactions: TransactionRepository,
        credit_notes: CreditNoteRepository,
        file_generator: ExportFileGenerator,
        file_storage: FileStorage,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        sftp_storage: FileStorage | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        super().__init__(role_resolver, audit_sink, clock, id_factory)
        self.exports = exports
        self.companies = companies
        self.stores = stores
        self.invoices = invoices
        self.transactions = transactions
        self.credit_notes = credit_notes
        self.file_generator = file_generator
        self.file_storage = file_storage
        self.sftp_storage = sftp_storage

    async def execute(
        self,
        company_id: str,
        period_start: datetime | None,
        period_end: datetime | None,
        export_format: str,
        performed_by: str,
        include_voided: bool = False,
        delivery_method: str = DeliveryMethod.DOWNLOAD.value,
    ) -> Result[ExportOutcome]:
        try:
            await self.authorize(
                performed_by,
                Capability.FINANCIAL_EXPORT,
                "Only Accountant or Owner role can create financial exports",
            )
            if not company_id or not company_id.strip():
                raise ValidationError("Company ID is required")
            period = self._validate_period(period_start, period_end)
            if not export_format:
                raise ValidationError("Format is required")
            fmt = ExportFormat.parse(export_format)
            delivery = self._validate_delivery(delivery_method)

            company = await self.companies.get(company_id)
            if company is None:
                raise NotFoundError("Company not found")

            invoices = await self.invoices.find_issued_in_period(company.id, period, include_voided)
            stores = await self.stores.find_by_company(company.id)
            transactions = await self.transactions.find_by_stores_in_period(
                [store.id for store in stores], period
            )
            credit_notes = []
            for invoice in invoices:
                credit_notes.extend(await self.credit_notes.find_by_invoice(invoice.id))

            now = self.clock()
            bundle = ExportBundle(
                company=company,
                period=period,
                invoices=invoices,
                transactions=transactions,
                credit_notes=credit_notes,
                generated_at=now,
            )
            if bundle.record_count == 0:
                raise NotFoundError("No financial records found for the specified period")

            if fmt is ExportFormat.CSV:
                content = self.file_generator.to_csv(bundle)
            else:
                content = self.file_generator.to_json(bundle)
            file_name = export_file_name(company.id, period, fmt)

            export = FinancialExport(
                id=self.id_factory(),
                company_id=company.id,
                created_by=performed_by,
                format=fmt,
                period_start=period.start,
                period_end=period.end,
                created_at=now,
            )
            download_url = None
            if delivery is DeliveryMethod.SFTP:
                export = export.set_sftp_reference(await self.sftp_storage.store(content, file_name))
            else:
                export = export.set_file_path(await self.file_storage.store(content, file_name))
                download_url = f"/exports/{file_name}"

            saved = await self.exports.save(export)

            await self.audit(AuditEntry(
                entity_type="FinancialExport",
                entity_id=saved.id,
                action=AuditAction.EXPORT,
                performed_by=performed_by,
                after={
                    "company_id": saved.company_id,
                    "format": saved.format.value,
                    "period_start": period.start.isoformat(),
                    "period_end": period.end.isoformat(),
                    "record_count": bundle.record_count,
                },
                timestamp=now,
            ))
            logger.info(
                f"Financial export {saved.id} for company {company.id}: "
                f"{bundle.record_count} records, {delivery.value}"
            )
            return Result.ok(ExportOutcome(saved, bundle.record_count, download_url))
        except Exception as error:
            return self.handle_error(error)

    def _validate_period(self, period_start: datetime | None, period_end: datetime | None) -> Period:
        if period_start is None:
            raise ValidationError("Period start date is required")
        if period_end is None:
            raise ValidationError("Period end date is required")
        try:
            period = Period(as_utc(period_start), as_utc(period_end))
        except DomainValidationError:
            raise ValidationError("Period start date must be before or equal to end date") from None
        if period.duration_days() > MAX_PERIOD_DAYS:
            raise ValidationError(f"Export period cannot exceed {MAX_PERIOD_DAYS} days")
        return period

    def _validate_delivery(self, delivery_method: str | None) -> DeliveryMethod:
        try:
            delivery = DeliveryMethod(str(delivery_method or DeliveryMethod.DOWNLOAD.value).strip().lower())
        except ValueError:
            raise ValidationError("Delivery method must be 'download' or 'sftp'") from None
        if delivery is DeliveryMethod.SFTP and self.sftp_storage is None:
            raise ValidationError("SFTP delivery is not configured")
        return delivery
