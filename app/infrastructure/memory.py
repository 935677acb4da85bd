"""
In-memory record store. Every await yields to the event loop so concurrent
transactions interleave the way they would against a remote store.
"""

import asyncio
import copy
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from app.application.ports import Record, RecordStore, RecordTransaction
from app.infrastructure.transactions import (
    DEFAULT_MAX_ATTEMPTS,
    Key,
    OptimisticTransaction,
    WriteConflict,
    run_optimistic,
)

T = TypeVar("T")


class _MemoryTransaction(OptimisticTransaction):

    def __init__(self, store: "InMemoryRecordStore"):
        super().__init__()
        self._store = store

    async def get(self, collection: str, record_id: str) -> Record | None:
        key = (collection, record_id)
        if key in self.writes:
            return copy.deepcopy(self.writes[key])
        version, data = self._store.read(key)
        self.remember_read(key, version)
        # Yield after reading so other transactions can commit in between.
        await asyncio.sleep(0)
        return data

    async def commit(self) -> None:
        # No await below: the check and the writes run as one step of the loop.
        for key, version in self.read_versions.items():
            current, _ = self._store.read(key)
            if current != version:
                raise WriteConflict(f"{key[0]}/{key[1]} changed from version {version} to {current}")
        for key, data in self.writes.items():
            self._store.write(key, data)


class InMemoryRecordStore(RecordStore):

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.max_attempts = max_attempts
        self._records: dict[Key, tuple[int, Record]] = {}

    def read(self, key: Key) -> tuple[int, Record | None]:
        version, data = self._records.get(key, (0, None))
        return version, copy.deepcopy(data)

    def write(self, key: Key, data: Record) -> None:
        version, _ = self._records.get(key, (0, None))
        self._records[key] = (version + 1, copy.deepcopy(data))

    async def get(self, collection: str, record_id: str) -> Record | None:
        await asyncio.sleep(0)
        return self.read((collection, record_id))[1]

    async def set(self, collection: str, record_id: str, data: Record) -> None:
        await asyncio.sleep(0)
        self.write((collection, record_id), data)

    async def query(self, collection: str, **filters: Any) -> list[Record]:
        await asyncio.sleep(0)
        return [
            copy.deepcopy(data)
            for (name, _), (_, data) in self._records.items()
            if name == collection and all(data.get(field) == value for field, value in filters.items())
        ]

    async def run_in_transaction(self, fn: Callable[[RecordTransaction], Awaitable[T]]) -> T:
        return await run_optimistic(lambda: _MemoryTransaction(self), fn, self.max_attempts)

    def version_of(self, collection: str, record_id: str) -> int:
        return self._records.get((collection, record_id), (0, None))[0]
