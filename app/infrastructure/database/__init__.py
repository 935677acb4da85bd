"""
Database initialization and the SQL record store.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.application.ports import Record, RecordStore, RecordTransaction
from app.core.config import get_engine_url
from app.infrastructure.database.models import StoredRecord
from app.infrastructure.transactions import (
    DEFAULT_MAX_ATTEMPTS,
    Key,
    OptimisticTransaction,
    WriteConflict,
    run_optimistic,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_engine(database_url: str | None = None) -> AsyncEngine:
    database_url = database_url or get_engine_url()
    if database_url.startswith("sqlite") and ":///" in database_url:
        db_path = database_url.split(":///", 1)[1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(database_url, echo=False)


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database - create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info(f"Database tables ready on {engine.url.render_as_string(hide_password=True)}")


def _dumps(data: Record) -> str:
    return json.dumps(data, sort_keys=True)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _matches(key: Key):
    collection, record_id = key
    return (StoredRecord.collection == collection) & (StoredRecord.record_id == record_id)


class _SqlTransaction(OptimisticTransaction):

    def __init__(self, store: "SqlRecordStore"):
        super().__init__()
        self._store = store

    async def get(self, collection: str, record_id: str) -> Record | None:
        key = (collection, record_id)
        if key in self.writes:
            return json.loads(_dumps(self.writes[key]))
        async with self._store.session_factory() as session:
            row = await session.get(StoredRecord, key)
            version, data = (row.version, json.loads(row.data)) if row else (0, None)
        self.remember_read(key, version)
        return data

    async def commit(self) -> None:
        async with self._store.session_factory() as session:
            try:
                async with session.begin():
                    for key, version in self.read_versions.items():
                        if key not in self.writes:
                            await self._check_unchanged(session, key, version)
                    for key, data in self.writes.items():
                        await self._store.write(session, key, data, self.read_versions.get(key))
            except IntegrityError as error:
                raise WriteConflict(f"{error.__class__.__name__} on insert") from error

    async def _check_unchanged(self, session: AsyncSession, key: Key, version: int) -> None:
        if version == 0:
            if await session.get(StoredRecord, key) is not None:
                raise WriteConflict(f"{key[0]}/{key[1]} was created concurrently")
            return
        # Compare-and-set of the version onto itself; takes the row lock.
        result = await session.execute(
            update(StoredRecord)
            .where(_matches(key) & (StoredRecord.version == version))
            .values(version=version)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise WriteConflict(f"{key[0]}/{key[1]} changed since version {version}")


class SqlRecordStore(RecordStore):
    """
    Record store on a single SQLModel table. Transactions are optimistic:
    commit re-checks the versions read and conflicting transactions re-run.
    """

    def __init__(self, engine: AsyncEngine, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.engine = engine
        self.max_attempts = max_attempts
        self.session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def get(self, collection: str, record_id: str) -> Record | None:
        async with self.session_factory() as session:
            row = await session.get(StoredRecord, (collection, record_id))
            return json.loads(row.data) if row else None

    async def set(self, collection: str, record_id: str, data: Record) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await self.write(session, (collection, record_id), data, None)

    async def query(self, collection: str, **filters: Any) -> list[Record]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StoredRecord.data).where(StoredRecord.collection == collection)
            )
            rows = [json.loads(data) for data in result.scalars()]
        return [
            row for row in rows
            if all(row.get(field) == value for field, value in filters.items())
        ]

    async def run_in_transaction(self, fn: Callable[[RecordTransaction], Awaitable[T]]) -> T:
        return await run_optimistic(lambda: _SqlTransaction(self), fn, self.max_attempts)

    async def write(self, session: AsyncSession, key: Key, data: Record, expected: int | None) -> None:
        """Insert or compare-and-set update; expected None overwrites whatever is there."""
        if expected is None:
            current = await session.execute(select(StoredRecord.version).where(_matches(key)))
            expected = current.scalar_one_or_none() or 0

        if expected == 0:
            session.add(StoredRecord(
                collection=key[0], record_id=key[1], data=_dumps(data), version=1, updated_at=_now()
            ))
            await session.flush()
            return

        result = await session.execute(
            update(StoredRecord)
            .where(_matches(key) & (StoredRecord.version == expected))
            .values(data=_dumps(data), version=expected + 1, updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise WriteConflict(f"{key[0]}/{key[1]} changed since version {expected}")
