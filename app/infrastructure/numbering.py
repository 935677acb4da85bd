"""
Sequential invoice numbering.

One counter record per (company, store, year) holds the last number handed
out. The read-increment-write runs inside RecordStore.run_in_transaction, so
two concurrent callers of the same scope never receive the same number. A
number whose caller later fails is simply lost: the sequence is monotonic,
not gap-free.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime

from app.application.ports import InvoiceNumberGenerator, RecordStore, RecordTransaction
from app.domain.value_objects import InvoiceNumber, utcnow
from app.infrastructure.records import INVOICE_NUMBER_COUNTERS

logger = logging.getLogger(__name__)


def counter_id(company_id: str, store_id: str, year: int) -> str:
    # JSON array: distinct scopes never share a key, whatever the ids contain.
    return json.dumps([company_id, store_id, year])


class RecordStoreInvoiceNumberGenerator(InvoiceNumberGenerator):

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def next_number(self, company_id: str, store_id: str) -> str:
        now = self.clock()
        year = now.year
        record_id = counter_id(company_id, store_id, year)

        async def increment(transaction: RecordTransaction) -> int:
            counter = await transaction.get(INVOICE_NUMBER_COUNTERS, record_id)
            last_number = int(counter["last_number"]) if counter else 0
            transaction.set(INVOICE_NUMBER_COUNTERS, record_id, {
                "company_id": company_id,
                "store_id": store_id,
                "year": year,
                "last_number": last_number + 1,
                "updated_at": now.isoformat(),
            })
            return last_number + 1

        sequence = await self.store.run_in_transaction(increment)
        number = str(InvoiceNumber(year, sequence))
        logger.debug(f"Generated invoice number {number} for {record_id}")
        return number
