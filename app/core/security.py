"""
Security Core - Roles, capabilities and the audit trail entry.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


class Role(str, Enum):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    ACCOUNTANT = "ACCOUNTANT"
    VETERINARIAN = "VETERINARIAN"

    @classmethod
    def parse(cls, raw: str) -> "Role | None":
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return None


class Capability(str, Enum):
    INVOICE_CREATE_DRAFT = "INVOICE_CREATE_DRAFT"
    INVOICE_ISSUE = "INVOICE_ISSUE"
    INVOICE_MARK_PAID = "INVOICE_MARK_PAID"
    INVOICE_PAYMENT_OVERRIDE = "INVOICE_PAYMENT_OVERRIDE"
    INVOICE_VOID = "INVOICE_VOID"
    INVOICE_VIEW = "INVOICE_VIEW"
    CREDIT_NOTE_CREATE = "CREDIT_NOTE_CREATE"
    FINANCIAL_EXPORT = "FINANCIAL_EXPORT"
    TRANSACTION_CREATE = "TRANSACTION_CREATE"
    TRANSACTION_COMPLETE = "TRANSACTION_COMPLETE"


_FRONT_DESK = [
    Capability.INVOICE_CREATE_DRAFT,
    Capability.INVOICE_MARK_PAID,
    Capability.INVOICE_VIEW,
    Capability.TRANSACTION_CREATE,
    Capability.TRANSACTION_COMPLETE,
]

_BACK_OFFICE = _FRONT_DESK + [
    Capability.INVOICE_ISSUE,
    Capability.INVOICE_PAYMENT_OVERRIDE,
    Capability.INVOICE_VOID,
    Capability.CREDIT_NOTE_CREATE,
]

ROLE_CAPABILITIES: dict[Role, list[Capability]] = {
    Role.OWNER: list(Capability),
    Role.MANAGER: list(_BACK_OFFICE),
    Role.ACCOUNTANT: _BACK_OFFICE + [Capability.FINANCIAL_EXPORT],
    Role.STAFF: list(_FRONT_DESK),
    Role.VETERINARIAN: [],
}


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ISSUE = "ISSUE"
    MARK_PAID = "MARK_PAID"
    VOID = "VOID"
    COMPLETE = "COMPLETE"
    EXPORT = "EXPORT"


@dataclass
class AuditEntry:
    entity_type: str
    entity_id: str
    action: AuditAction
    performed_by: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RBACService:
    def has_capability(self, role: Role, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(role, [])

    def any_role_has(self, roles: frozenset[Role], capability: Capability) -> bool:
        return any(self.has_capability(role, capability) for role in roles)

    def get_role_capabilities(self, role: Role) -> list[Capability]:
        return ROLE_CAPABILITIES.get(role, [])

    def roles_with(self, capability: Capability) -> list[Role]:
        return [role for role in Role if self.has_capability(role, capability)]
