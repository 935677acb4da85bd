"""
Optimistic transactions shared by the record stores.

A transaction remembers the version of every record it reads and buffers
its writes. Commit fails with WriteConflict when any of those versions
moved in the meantime; the whole transaction function is then re-run.
"""

import asyncio
import logging
from abc import abstractmethod
from collections.abc import Awaitable, Callable
from typing import TypeVar

from app.application.errors import TransactionAbortedError
from app.application.ports import Record, RecordTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")
Key = tuple[str, str]

DEFAULT_MAX_ATTEMPTS = 10


class WriteConflict(Exception):
    pass


class OptimisticTransaction(RecordTransaction):

    def __init__(self) -> None:
        self.read_versions: dict[Key, int] = {}
        self.writes: dict[Key, Record] = {}

    def set(self, collection: str, record_id: str, data: Record) -> None:
        self.writes[(collection, record_id)] = dict(data)

    def remember_read(self, key: Key, version: int) -> None:
        # First read wins; a later read of a newer version must still conflict.
        self.read_versions.setdefault(key, version)

    @abstractmethod
    async def commit(self) -> None:
        ...


async def run_optimistic(
    begin: Callable[[], OptimisticTransaction],
    fn: Callable[[RecordTransaction], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> T:
    for attempt in range(1, max_attempts + 1):
        transaction = begin()
        result = await fn(transaction)
        try:
            await transaction.commit()
        except WriteConflict as conflict:
            logger.debug(f"Transaction conflict on attempt {attempt}/{max_attempts}: {conflict}")
            await asyncio.sleep(0)
            continue
        return result
    logger.warning(f"Transaction aborted after {max_attempts} attempts")
    raise TransactionAbortedError(max_attempts)
