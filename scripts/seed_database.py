#!/usr/bin/env python3
"""
Database Seeding Script - Petshop financial back office
Seeds a demo company, store, users and catalog for testing and UAT.
"""

import asyncio
from decimal import Decimal

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.core.security import Role
from app.domain.entities import CatalogItem, Company, Store
from app.infrastructure.database import SqlRecordStore, create_engine, init_db
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

DEMO_COMPANY = Company(id="company-demo", name="Petshop Demo, Lda.", nif="123456789")
DEMO_STORE = Store(id="store-lisboa", company_id=DEMO_COMPANY.id, name="Loja Lisboa")

DEMO_USERS = [
    ("user-owner", [Role.OWNER]),
    ("user-manager", [Role.MANAGER]),
    ("user-accountant", [Role.ACCOUNTANT]),
    ("user-staff", [Role.STAFF]),
    ("user-vet", [Role.VETERINARIAN]),
]

DEMO_PRODUCTS = [
    CatalogItem(id="product-dog-food", name="Dog food 10kg", unit_price=Decimal("39.90"), vat_rate=Decimal("23")),
    CatalogItem(id="product-cat-litter", name="Cat litter 5L", unit_price=Decimal("8.50"), vat_rate=Decimal("23")),
    CatalogItem(id="product-vet-diet", name="Veterinary diet", unit_price=Decimal("52.00"), vat_rate=Decimal("6")),
]

DEMO_SERVICES = [
    CatalogItem(id="service-grooming", name="Grooming", unit_price=Decimal("35.00")),
    CatalogItem(id="service-consultation", name="Veterinary consultation", unit_price=Decimal("45.00")),
]


async def seed(store: SqlRecordStore) -> None:
    await store.set(COMPANIES, DEMO_COMPANY.id, company_to_record(DEMO_COMPANY))
    await store.set(STORES, DEMO_STORE.id, store_to_record(DEMO_STORE))
    await store.set(CUSTOMERS, "customer-demo", {"id": "customer-demo", "name": "Maria Silva"})
    for user_id, roles in DEMO_USERS:
        await store.set(USERS, user_id, {
            "id": user_id,
            "roles": [role.value for role in roles],
            "active": True,
        })
    for product in DEMO_PRODUCTS:
        await store.set(PRODUCTS, product.id, catalog_item_to_record(product))
    for service in DEMO_SERVICES:
        await store.set(SERVICES, service.id, catalog_item_to_record(service))


async def main() -> None:
    """Main function."""
    settings = get_settings()
    configure_logging(settings.log_level)
    print("=" * 60)
    print("Database Seeding - Petshop financial back office")
    print("=" * 60)

    engine = create_engine(settings.database_url)
    await init_db(engine)
    try:
        await seed(SqlRecordStore(engine))
    finally:
        await engine.dispose()

    print(f"  Company: {DEMO_COMPANY.name} (NIF {DEMO_COMPANY.nif})")
    print(f"  Store:   {DEMO_STORE.name}")
    print(f"  Users:   {', '.join(user_id for user_id, _ in DEMO_USERS)}")
    print(f"  Catalog: {len(DEMO_PRODUCTS)} products, {len(DEMO_SERVICES)} services")
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
