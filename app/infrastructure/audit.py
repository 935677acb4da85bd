from app.application.ports import AuditSink, RecordStore
from app.core.security import AuditEntry
from app.infrastructure.records import AUDIT_LOGS, audit_entry_to_record


class RecordStoreAuditSink(AuditSink):
    """Appends audit entries to the audit_logs collection."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def record(self, entry: AuditEntry) -> None:
        await self.store.set(AUDIT_LOGS, entry.id, audit_entry_to_record(entry))
