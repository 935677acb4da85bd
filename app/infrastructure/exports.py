"""
Export file rendering and local file storage.
"""

import asyncio
import csv
import io
import json
import logging
from pathlib import Path

from app.application.ports import ExportBundle, ExportFileGenerator, FileStorage
from app.infrastructure.records import (
    credit_note_to_record,
    invoice_to_record,
    transaction_to_record,
)

logger = logging.getLogger(__name__)

CSV_HEADER = ["type", "id", "reference", "date", "subtotal", "vat_total", "total", "status"]


class FinancialExportFileGenerator(ExportFileGenerator):

    def to_csv(self, bundle: ExportBundle) -> str:
        """One row per document; columns that do not apply are left empty."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for invoice in bundle.invoices:
            writer.writerow([
                "invoice",
                invoice.id,
                invoice.invoice_number,
                invoice.issued_at.isoformat() if invoice.issued_at else "",
                invoice.subtotal,
                invoice.vat_total,
                invoice.total,
                invoice.status.value,
            ])
        for transaction in bundle.transactions:
            writer.writerow([
                "transaction",
                transaction.id,
                transaction.invoice_id,
                transaction.created_at.isoformat(),
                "",
                "",
                transaction.total_amount,
                transaction.payment_status.value,
            ])
        for note in bundle.credit_notes:
            writer.writerow([
                "credit_note",
                note.id,
                note.invoice_id,
                note.issued_at.isoformat() if note.issued_at else "",
                "",
                "",
                note.amount,
                "issued" if note.is_issued else "draft",
            ])
        return buffer.getvalue()

    def to_json(self, bundle: ExportBundle) -> str:
        document = {
            "company": {"id": bundle.company.id, "name": bundle.company.name, "nif": bundle.company.nif},
            "period": {
                "start": bundle.period.start.isoformat(),
                "end": bundle.period.end.isoformat(),
            },
            "generated_at": bundle.generated_at.isoformat() if bundle.generated_at else None,
            "summary": {
                "invoice_count": len(bundle.invoices),
                "transaction_count": len(bundle.transactions),
                "credit_note_count": len(bundle.credit_notes),
                "invoiced_total": str(bundle.invoiced_total),
            },
            "invoices": [invoice_to_record(invoice) for invoice in bundle.invoices],
            "transactions": [transaction_to_record(tx) for tx in bundle.transactions],
            "credit_notes": [credit_note_to_record(note) for note in bundle.credit_notes],
        }
        return json.dumps(document, indent=2)


class LocalFileStorage(FileStorage):

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    async def store(self, content: str, name: str) -> str:
        path = self.directory / Path(name).name
        await asyncio.to_thread(self._write, path, content)
        logger.info(f"Export file written to {path}")
        return str(path)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
