"""
Application settings read from the environment.
"""

import os
from dataclasses import dataclass, field


def get_engine_url(database_type: str | None = None) -> str:
    """Async driver URL from the DATABASE_* / DB_* environment variables."""
    db_type = database_type or os.getenv("DATABASE_TYPE", "sqlite")

    if db_type == "sqlite":
        db_path = os.getenv("DATABASE_PATH", "./data/petshop.db")
        return f"sqlite+aiosqlite:///{db_path}"
    elif db_type == "postgresql":
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        dbname = os.getenv("DB_NAME", "petshop")
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "postgres")
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{dbname}"
    elif db_type == "memory":
        return "memory://"
    else:
        raise ValueError(f"Unsupported database type: {db_type}")


@dataclass(frozen=True)
class Settings:
    database_type: str = field(default_factory=lambda: os.getenv("DATABASE_TYPE", "sqlite"))
    export_dir: str = field(default_factory=lambda: os.getenv("EXPORT_DIR", "./data/exports"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    numbering_max_attempts: int = field(
        default_factory=lambda: int(os.getenv("NUMBERING_MAX_ATTEMPTS", "10"))
    )
    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Petshop Financial API"))

    @property
    def database_url(self) -> str:
        return get_engine_url(self.database_type)


def get_settings() -> Settings:
    return Settings()
