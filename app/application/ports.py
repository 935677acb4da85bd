"""
Ports - Interfaces of the collaborators the use cases depend on.
Adapters live in app.infrastructure.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from app.core.security import AuditEntry, Role
from app.domain.entities import (
    CatalogItem,
    Company,
    CreditNote,
    FinancialExport,
    Invoice,
    Store,
    Transaction,
)
from app.domain.value_objects import Period

Record = dict[str, Any]
T = TypeVar("T")


class RecordTransaction(ABC):
    """Reads see a consistent snapshot; writes are buffered until commit."""

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Record | None:
        ...

    @abstractmethod
    def set(self, collection: str, record_id: str, data: Record) -> None:
        ...


class RecordStore(ABC):

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Record | None:
        ...

    @abstractmethod
    async def set(self, collection: str, record_id: str, data: Record) -> None:
        ...

    @abstractmethod
    async def query(self, collection: str, **filters: Any) -> list[Record]:
        """Records whose top-level fields equal every given filter value."""
        ...

    @abstractmethod
    async def run_in_transaction(self, fn: Callable[[RecordTransaction], Awaitable[T]]) -> T:
        """
        Run fn atomically with serializable isolation over the records it reads.
        fn may be called more than once when a concurrent writer interferes,
        so it must not have side effects outside the transaction.
        """
        ...


class InvoiceRepository(ABC):

    @abstractmethod
    async def get(self, invoice_id: str) -> Invoice | None:
        ...

    @abstractmethod
    async def save(self, invoice: Invoice, expected: Invoice | None = None) -> Invoice:
        """Fails with ConflictError when the stored invoice is no longer expected."""
        ...

    @abstractmethod
    async def find_by_number(self, invoice_number: str, company_id: str) -> Invoice | None:
        ...

    @abstractmethod
    async def find_issued_in_period(
        self, company_id: str, period: Period, include_cancelled: bool = False
    ) -> list[Invoice]:
        ...


class CreditNoteRepository(ABC):

    @abstractmethod
    async def get(self, credit_note_id: str) -> CreditNote | None:
        ...

    @abstractmethod
    async def save(self, credit_note: CreditNote) -> CreditNote:
        ...

    @abstractmethod
    async def find_by_invoice(self, invoice_id: str) -> list[CreditNote]:
        ...


class TransactionRepository(ABC):

    @abstractmethod
    async def get(self, transaction_id: str) -> Transaction | None:
        ...

    @abstractmethod
    async def save(self, transaction: Transaction) -> Transaction:
        ...

    @abstractmethod
    async def find_by_invoice(self, invoice_id: str) -> list[Transaction]:
        ...

    @abstractmethod
    async def find_by_stores_in_period(self, store_ids: list[str], period: Period) -> list[Transaction]:
        ...


class FinancialExportRepository(ABC):

    @abstractmethod
    async def get(self, export_id: str) -> FinancialExport | None:
        ...

    @abstractmethod
    async def save(self, export: FinancialExport) -> FinancialExport:
        ...


class CompanyRepository(ABC):

    @abstractmethod
    async def get(self, company_id: str) -> Company | None:
        ...


class StoreRepository(ABC):

    @abstractmethod
    async def get(self, store_id: str) -> Store | None:
        ...

    @abstractmethod
    async def find_by_company(self, company_id: str) -> list[Store]:
        ...


class CustomerRepository(ABC):

    @abstractmethod
    async def exists(self, customer_id: str) -> bool:
        ...


class CatalogLookup(ABC):

    @abstractmethod
    async def find_product(self, product_id: str) -> CatalogItem | None:
        ...

    @abstractmethod
    async def find_service(self, service_id: str) -> CatalogItem | None:
        ...


class RoleResolver(ABC):

    @abstractmethod
    async def resolve_roles(self, user_id: str) -> frozenset[Role] | None:
        """None when the user is unknown."""
        ...


class AuditSink(ABC):

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        ...


class InvoiceNumberGenerator(ABC):

    @abstractmethod
    async def next_number(self, company_id: str, store_id: str) -> str:
        ...


@dataclass
class ExportBundle:
    company: Company
    period: Period
    invoices: list[Invoice] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    credit_notes: list[CreditNote] = field(default_factory=list)
    generated_at: datetime | None = None

    @property
    def record_count(self) -> int:
        return len(self.invoices) + len(self.transactions) + len(self.credit_notes)

    @property
    def invoiced_total(self) -> Decimal:
        return sum((invoice.total for invoice in self.invoices), Decimal("0"))


class ExportFileGenerator(ABC):

    @abstractmethod
    def to_csv(self, bundle: ExportBundle) -> str:
        ...

    @abstractmethod
    def to_json(self, bundle: ExportBundle) -> str:
        ...


class FileStorage(ABC):

    @abstractmethod
    async def store(self, content: str, name: str) -> str:
        """Persist content and return its location."""
        ...
