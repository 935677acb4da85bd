"""
Integration tests - Sequential invoice numbering under concurrency.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from app.application.errors import TransactionAbortedError
from app.core.security import Role
from app.domain.value_objects import InvoiceNumber
from app.infrastructure.container import build_services
from app.infrastructure.memory import InMemoryRecordStore
from app.infrastructure.numbering import RecordStoreInvoiceNumberGenerator, counter_id
from app.infrastructure.records import INVOICE_NUMBER_COUNTERS

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

LINES = [{"description": "Cat litter", "quantity": 1, "unit_price": "8.50", "vat_rate": "23"}]


async def issue_concurrently(services, count: int) -> list:
    drafts = [
        (await services.create_draft.execute("company-1", "store-1", LINES, "staff-1")).value
        for _ in range(count)
    ]
    return await asyncio.gather(*(
        services.issue_invoice.execute(draft.id, "manager-1") for draft in drafts
    ))


class TestNumberGenerator:

    def test_first_number_of_scope(self):
        store = InMemoryRecordStore()
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: NOW)
        assert asyncio.run(generator.next_number("company-1", "store-1")) == "2025/0001"

        counter = asyncio.run(store.get(INVOICE_NUMBER_COUNTERS, counter_id("company-1", "store-1", 2025)))
        assert counter["last_number"] == 1
        assert counter["year"] == 2025

    def test_scopes_are_independent(self):
        store = InMemoryRecordStore()
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: NOW)

        async def scenario():
            return [
                await generator.next_number("company-1", "store-1"),
                await generator.next_number("company-1", "store-1"),
                await generator.next_number("company-1", "store-2"),
                await generator.next_number("company-2", "store-1"),
            ]

        assert asyncio.run(scenario()) == ["2025/0001", "2025/0002", "2025/0001", "2025/0001"]

    def test_ids_containing_separators_keep_their_own_counter(self):
        store = InMemoryRecordStore()
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: NOW)

        async def scenario():
            return [
                await generator.next_number("acme_north", "shop"),
                await generator.next_number("acme", "north_shop"),
            ]

        assert asyncio.run(scenario()) == ["2025/0001", "2025/0001"]
        assert counter_id("acme_north", "shop", 2025) != counter_id("acme", "north_shop", 2025)

        counter = asyncio.run(store.get(INVOICE_NUMBER_COUNTERS, counter_id("acme", "north_shop", 2025)))
        assert (counter["company_id"], counter["store_id"]) == ("acme", "north_shop")

    def test_sequence_restarts_each_year(self):
        store = InMemoryRecordStore()
        moments = iter([NOW, NOW, NOW.replace(year=2026, month=1, day=1, hour=0)])
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: next(moments))

        async def scenario():
            return [await generator.next_number("company-1", "store-1") for _ in range(3)]

        assert asyncio.run(scenario()) == ["2025/0001", "2025/0002", "2026/0001"]

    @pytest.mark.parametrize("count", [2, 10, 25])
    def test_concurrent_callers_get_distinct_numbers(self, count):
        store = InMemoryRecordStore(max_attempts=count)
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: NOW)

        async def scenario():
            return await asyncio.gather(*(
                generator.next_number("company-1", "store-1") for _ in range(count)
            ))

        numbers = asyncio.run(scenario())
        sequences = sorted(InvoiceNumber.parse(number).sequence for number in numbers)
        assert sequences == list(range(1, count + 1))

    def test_conflicting_transaction_is_aborted_after_max_attempts(self):
        store = InMemoryRecordStore(max_attempts=1)
        generator = RecordStoreInvoiceNumberGenerator(store, clock=lambda: NOW)

        async def scenario():
            return await asyncio.gather(
                generator.next_number("company-1", "store-1"),
                generator.next_number("company-1", "store-1"),
                return_exceptions=True,
            )

        first, second = asyncio.run(scenario())
        assert first == "2025/0001"
        assert isinstance(second, TransactionAbortedError)
        assert second.attempts == 1


class TestConcurrentIssuance:

    def test_concurrent_issue_yields_consecutive_numbers(self, services):
        results = asyncio.run(issue_concurrently(services, 8))
        assert all(result.success for result in results)
        numbers = sorted(result.value.invoice_number for result in results)
        assert numbers == [f"2025/{sequence:04d}" for sequence in range(1, 9)]

    @settings(max_examples=15, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(count=st.integers(min_value=1, max_value=10))
    def test_no_duplicates_for_any_number_of_callers(self, seed, tmp_path, count):
        store = InMemoryRecordStore()
        asyncio.run(seed(store))
        services = build_services(store, str(tmp_path), clock=lambda: NOW)

        results = asyncio.run(issue_concurrently(services, count))
        numbers = [result.value.invoice_number for result in results]
        assert len(set(numbers)) == count
        sequences = sorted(InvoiceNumber.parse(number).sequence for number in numbers)
        assert sequences == list(range(1, count + 1))

    def test_issued_invoices_are_never_renumbered(self, services, users):
        async def scenario():
            draft = (await services.create_draft.execute("company-1", "store-1", LINES, users[Role.STAFF])).value
            issued = (await services.issue_invoice.execute(draft.id, users[Role.MANAGER])).value
            await services.issue_invoice.execute(draft.id, users[Role.MANAGER])
            return issued, (await services.get_invoice.execute(draft.id, users[Role.STAFF])).value

        issued, stored = asyncio.run(scenario())
        assert stored.invoice_number == issued.invoice_number
