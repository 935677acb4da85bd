"""Infrastructure layer."""

from app.infrastructure.container import FinancialServices, build_services
from app.infrastructure.memory import InMemoryRecordStore
from app.infrastructure.numbering import RecordStoreInvoiceNumberGenerator
