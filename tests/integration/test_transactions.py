"""
Integration tests - Point-of-sale transactions.
"""

import asyncio
from decimal import Decimal

import pytest

from app.application.errors import ErrorCode
from app.core.security import Role
from app.domain.value_objects import InvoiceStatus, PaymentStatus
from app.infrastructure.records import AUDIT_LOGS, INVOICES, TRANSACTIONS

ITEMS = [
    {"quantity": 2, "unit_price": "39.90", "product_id": "product-1"},
    {"quantity": 1, "unit_price": "35.00", "service_id": "service-1", "description": "Full grooming"},
]


def create(services, user_id, items=ITEMS, store_id="store-1", **options):
    return asyncio.run(services.create_transaction.execute(store_id, items, user_id, **options))


class TestCreateTransaction:

    def test_creates_pending_transaction_and_draft_invoice(self, services, users, record_store):
        result = create(services, users[Role.STAFF], buyer_customer_id="customer-1")
        assert result.success
        transaction, invoice = result.value.transaction, result.value.invoice

        assert transaction.payment_status is PaymentStatus.PENDING
        assert transaction.total_amount == Decimal("114.80")
        assert transaction.invoice_id == invoice.id
        assert invoice.status is InvoiceStatus.DRAFT
        assert invoice.company_id == "company-1"
        assert invoice.buyer_customer_id == "customer-1"

        assert asyncio.run(record_store.get(INVOICES, invoice.id)) is not None
        assert asyncio.run(record_store.get(TRANSACTIONS, transaction.id))["payment_status"] == "pending"

    def test_invoice_lines_take_vat_and_names_from_catalog(self, services, users):
        invoice = create(services, users[Role.STAFF]).value.invoice
        product_line, service_line = invoice.lines
        assert product_line.vat_rate == Decimal("6.00")
        assert product_line.description == "Dog food 10kg"
        assert service_line.vat_rate == Decimal("23.00")
        assert service_line.description == "Full grooming"
        # 79.80 * 6% + 35.00 * 23% = 4.788 + 8.05
        assert invoice.vat_total == Decimal("12.84")
        assert invoice.total == Decimal("127.64")

    @pytest.mark.parametrize("kwargs, code, message", [
        ({"store_id": " "}, ErrorCode.VALIDATION_ERROR, "Store ID is required"),
        ({"items": []}, ErrorCode.VALIDATION_ERROR, "at least one line item"),
        ({"store_id": "missing"}, ErrorCode.NOT_FOUND, "Store not found"),
        ({"buyer_customer_id": "missing"}, ErrorCode.NOT_FOUND, "Customer not found"),
        ({"items": [{"quantity": 1, "unit_price": "1", "product_id": "nope"}]},
         ErrorCode.NOT_FOUND, "Product with ID nope not found"),
        ({"items": [{"quantity": 1, "unit_price": "1", "service_id": "nope"}]},
         ErrorCode.NOT_FOUND, "Service with ID nope not found"),
        ({"items": [{"quantity": 1, "unit_price": "1"}]},
         ErrorCode.VALIDATION_ERROR, "either productId or serviceId"),
        ({"items": [{"quantity": 1, "unit_price": "1", "product_id": "product-1", "service_id": "service-1"}]},
         ErrorCode.VALIDATION_ERROR, "cannot have both"),
        ({"items": [{"quantity": -1, "unit_price": "1", "product_id": "product-1"}]},
         ErrorCode.VALIDATION_ERROR, "positive integer"),
    ])
    def test_rejected_transactions(self, services, users, kwargs, code, message):
        result = create(services, users[Role.STAFF], **kwargs)
        assert result.error.code == code
        assert message in result.error.message

    def test_veterinarian_is_forbidden(self, services, users):
        assert create(services, users[Role.VETERINARIAN]).error.code == ErrorCode.FORBIDDEN

    def test_unauthenticated(self, services):
        assert create(services, None).error.code == ErrorCode.UNAUTHORIZED


class TestCompleteTransaction:

    def test_complete(self, services, users, record_store):
        created = create(services, users[Role.STAFF]).value.transaction
        result = asyncio.run(services.complete_transaction.execute(created.id, users[Role.STAFF]))
        assert result.success
        assert result.value.payment_status is PaymentStatus.PAID_MANUAL

        entries = asyncio.run(record_store.query(AUDIT_LOGS, entity_id=created.id, action="COMPLETE"))
        assert entries[0]["before"] == {"payment_status": "pending"}
        assert entries[0]["after"]["payment_status"] == "paid_manual"

    def test_only_pending_transactions(self, services, users):
        created = create(services, users[Role.STAFF]).value.transaction
        asyncio.run(services.complete_transaction.execute(created.id, users[Role.STAFF]))
        result = asyncio.run(services.complete_transaction.execute(created.id, users[Role.STAFF]))
        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert "Only pending transactions can be completed" in result.error.message

    def test_unknown_transaction(self, services, users):
        result = asyncio.run(services.complete_transaction.execute("missing", users[Role.STAFF]))
        assert result.error.code == ErrorCode.NOT_FOUND
        assert result.error.message == "Transaction not found"
