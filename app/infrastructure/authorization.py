import logging

from app.application.ports import RecordStore, RoleResolver
from app.core.security import Role
from app.infrastructure.records import USERS

logger = logging.getLogger(__name__)


class RecordStoreRoleResolver(RoleResolver):
    """
    Roles of a user record {"id", "roles": [...], "active"}.
    Inactive users resolve to no roles; unknown role names are ignored.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def resolve_roles(self, user_id: str) -> frozenset[Role] | None:
        user = await self.store.get(USERS, user_id)
        if user is None:
            return None
        if not user.get("active", True):
            return frozenset()
        roles = set()
        for raw in user.get("roles", []):
            role = Role.parse(raw)
            if role is None:
                logger.warning(f"Ignoring unknown role {raw!r} of user {user_id}")
                continue
            roles.add(role)
        return frozenset(roles)
