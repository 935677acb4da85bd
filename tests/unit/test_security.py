"""
Unit tests - Roles, capabilities and settings.
"""

import pytest

from app.core.config import Settings, get_engine_url
from app.core.security import Capability, RBACService, Role


@pytest.fixture
def rbac() -> RBACService:
    return RBACService()


class TestRoleCapabilities:

    @pytest.mark.parametrize("capability, roles", [
        (Capability.INVOICE_CREATE_DRAFT, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT, Role.STAFF}),
        (Capability.INVOICE_MARK_PAID, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT, Role.STAFF}),
        (Capability.INVOICE_ISSUE, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT}),
        (Capability.INVOICE_PAYMENT_OVERRIDE, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT}),
        (Capability.INVOICE_VOID, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT}),
        (Capability.CREDIT_NOTE_CREATE, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT}),
        (Capability.FINANCIAL_EXPORT, {Role.OWNER, Role.ACCOUNTANT}),
        (Capability.TRANSACTION_COMPLETE, {Role.OWNER, Role.MANAGER, Role.ACCOUNTANT, Role.STAFF}),
    ])
    def test_roles_with_capability(self, rbac, capability, roles):
        assert set(rbac.roles_with(capability)) == roles

    def test_veterinarian_has_no_financial_capability(self, rbac):
        assert rbac.get_role_capabilities(Role.VETERINARIAN) == []

    def test_any_role_has(self, rbac):
        assert rbac.any_role_has(frozenset({Role.VETERINARIAN, Role.STAFF}), Capability.INVOICE_MARK_PAID)
        assert not rbac.any_role_has(frozenset(), Capability.INVOICE_VIEW)

    @pytest.mark.parametrize("raw, expected", [("owner", Role.OWNER), (" Staff ", Role.STAFF), ("admin", None)])
    def test_parse_role(self, raw, expected):
        assert Role.parse(raw) is expected


class TestSettings:

    def test_sqlite_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_PATH", "/tmp/petshop.db")
        assert get_engine_url("sqlite") == "sqlite+aiosqlite:////tmp/petshop.db"

    def test_postgres_url(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db")
        monkeypatch.setenv("DB_NAME", "shop")
        assert get_engine_url("postgresql") == "postgresql+asyncpg://postgres:postgres@db:5432/shop"

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Unsupported database type"):
            get_engine_url("oracle")

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_TYPE", "memory")
        monkeypatch.setenv("NUMBERING_MAX_ATTEMPTS", "20")
        settings = Settings()
        assert settings.database_url == "memory://"
        assert settings.numbering_max_attempts == 20
