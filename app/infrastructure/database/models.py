"""
Infrastructure - SQLModel table backing the SQL record store.
"""

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredRecord(SQLModel, table=True):
    """One persisted record; data holds the record as JSON text."""

    __tablename__ = "stored_record"

    collection: str = Field(primary_key=True, max_length=64)
    record_id: str = Field(primary_key=True, max_length=255)
    data: str
    version: int = 1  # Bumped on every write, compared on commit
    updated_at: datetime = Field(default_factory=_utcnow, index=True)
