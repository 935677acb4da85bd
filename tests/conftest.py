"""
Pytest configuration and fixtures.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.security import Role
from app.domain.entities import CatalogItem, Company, Invoice, Store
from app.domain.value_objects import InvoiceLine, InvoiceStatus
from app.infrastructure.container import build_services
from app.infrastructure.memory import InMemoryRecordStore
from app.infrastructure.records import (
    COMPANIES,
    CUSTOMERS,
    PRODUCTS,
    SERVICES,
    STORES,
    USERS,
    catalog_item_to_record,
    company_to_record,
    store_to_record,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

COMPANY = Company(id="company-1", name="Petshop Lisboa, Lda.", nif="123456789")
STORE = Store(id="store-1", company_id=COMPANY.id, name="Loja Lisboa")
OTHER_COMPANY = Company(id="company-2", name="Sem NIF, Lda.", nif=None)
OTHER_STORE = Store(id="store-2", company_id=OTHER_COMPANY.id, name="Loja Porto")

PRODUCT = CatalogItem(id="product-1", name="Dog food 10kg", unit_price=Decimal("39.90"), vat_rate=Decimal("6"))
SERVICE = CatalogItem(id="service-1", name="Grooming", unit_price=Decimal("35.00"))

USERS_BY_ROLE = {
    Role.OWNER: "owner-1",
    Role.MANAGER: "manager-1",
    Role.ACCOUNTANT: "accountant-1",
    Role.STAFF: "staff-1",
    Role.VETERINARIAN: "vet-1",
}


async def seed_reference_data(store) -> None:
    for company in (COMPANY, OTHER_COMPANY):
        await store.set(COMPANIES, company.id, company_to_record(company))
    for shop in (STORE, OTHER_STORE):
        await store.set(STORES, shop.id, store_to_record(shop))
    await store.set(CUSTOMERS, "customer-1", {"id": "customer-1", "name": "Maria Silva"})
    for role, user_id in USERS_BY_ROLE.items():
        await store.set(USERS, user_id, {"id": user_id, "roles": [role.value], "active": True})
    await store.set(USERS, "inactive-1", {"id": "inactive-1", "roles": ["OWNER"], "active": False})
    await store.set(PRODUCTS, PRODUCT.id, catalog_item_to_record(PRODUCT))
    await store.set(SERVICES, SERVICE.id, catalog_item_to_record(SERVICE))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def seed():
    return seed_reference_data


@pytest.fixture
def users() -> dict[Role, str]:
    return dict(USERS_BY_ROLE)


@pytest.fixture
def company() -> Company:
    return COMPANY


@pytest.fixture
def line() -> InvoiceLine:
    return InvoiceLine(
        description="Dog grooming",
        quantity=2,
        unit_price=Decimal("50.00"),
        vat_rate=Decimal("23"),
    )


@pytest.fixture
def draft_invoice(line) -> Invoice:
    return Invoice(
        id="invoice-1",
        company_id=COMPANY.id,
        store_id=STORE.id,
        invoice_number="DRAFT-1750000000000",
        created_by="staff-1",
        lines=(line,),
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def make_invoice(line):
    """Build an invoice already in the given status with consistent timestamps."""

    def factory(status: InvoiceStatus, **overrides) -> Invoice:
        issued = status in (InvoiceStatus.ISSUED, InvoiceStatus.PAID, InvoiceStatus.REFUNDED)
        paid = status in (InvoiceStatus.PAID, InvoiceStatus.REFUNDED)
        values = {
            "id": "invoice-1",
            "company_id": COMPANY.id,
            "store_id": STORE.id,
            "invoice_number": "2025/0001" if issued else "DRAFT-1750000000000",
            "created_by": "staff-1",
            "lines": (line,),
            "status": status,
            "issued_at": NOW if issued else None,
            "paid_at": NOW if paid else None,
            "payment_method": "CARD" if paid else None,
            "created_at": NOW,
            "updated_at": NOW,
        }
        values.update(overrides)
        return Invoice(**values)

    return factory


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    asyncio.run(seed_reference_data(store))
    return store


@pytest.fixture
def services(record_store, tmp_path):
    return build_services(record_store, str(tmp_path / "exports"), clock=lambda: NOW)
