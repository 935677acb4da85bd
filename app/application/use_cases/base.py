"""
Shared plumbing for the use cases: authorization, audit and error mapping.
No exception leaves a use case; execute() always returns a Result.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import uuid4

from app.application.errors import ApplicationError, ErrorCode, ForbiddenError, UnauthorizedError
from app.application.ports import AuditSink, RoleResolver
from app.application.results import Result
from app.core.security import AuditEntry, Capability, RBACService, Role
from app.domain.exceptions import DomainValidationError
from app.domain.value_objects import utcnow

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500
MAX_PAYMENT_METHOD_LENGTH = 64


def new_id() -> str:
    return str(uuid4())


class UseCase:

    def __init__(
        self,
        role_resolver: RoleResolver,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.role_resolver = role_resolver
        self.audit_sink = audit_sink
        self.clock = clock
        self.id_factory = id_factory
        self.rbac = RBACService()

    async def authorize(self, user_id: str | None, capability: Capability, message: str) -> frozenset[Role]:
        if not user_id or not str(user_id).strip():
            raise UnauthorizedError("Authentication required")
        roles = await self.role_resolver.resolve_roles(user_id)
        if roles is None:
            raise UnauthorizedError("User not found")
        if not self.rbac.any_role_has(roles, capability):
            raise ForbiddenError(message)
        return roles

    async def audit(self, entry: AuditEntry) -> None:
        try:
            await self.audit_sink.record(entry)
        except Exception:
            logger.exception(
                f"Failed to record audit entry {entry.action.value} for {entry.entity_type} {entry.entity_id}"
            )

    def handle_error(self, error: Exception) -> Result:
        if isinstance(error, ApplicationError):
            return Result.fail(error.code, error.message)
        if isinstance(error, DomainValidationError):
            return Result.fail(ErrorCode.VALIDATION_ERROR, str(error))
        logger.exception(f"Unexpected error in {type(self).__name__}: {error}")
        return Result.fail(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")
