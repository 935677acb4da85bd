"""
Main FastAPI application - Petshop financial back office.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers import credit_notes, exports, invoices, transactions
from app.core.config import Settings, get_settings
from app.core.logging_config import configure_logging
from app.infrastructure.container import FinancialServices, build_services
from app.infrastructure.database import SqlRecordStore, create_engine, init_db
from app.infrastructure.memory import InMemoryRecordStore

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


async def _default_services(settings: Settings) -> tuple[FinancialServices, object]:
    if settings.database_type == "memory":
        store = InMemoryRecordStore(settings.numbering_max_attempts)
        return build_services(store, settings.export_dir), None
    engine = create_engine(settings.database_url)
    await init_db(engine)
    store = SqlRecordStore(engine, settings.numbering_max_attempts)
    return build_services(store, settings.export_dir), engine


def create_app(services: FinancialServices | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Application lifespan - startup and shutdown events."""
        configure_logging(settings.log_level)
        engine = None
        if getattr(app.state, "services", None) is None:
            app.state.services, engine = await _default_services(settings)
        logger.info(f"{settings.app_name} started ({settings.database_type})")
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="""
## Petshop financial back office

- **Invoices**: draft, issue with sequential number YYYY/NNNN, payment, void
- **Credit notes**: corrections of issued invoices
- **Transactions**: point-of-sale settlements
- **Financial exports**: CSV / JSON per period

Issued invoices are immutable; every change is written to the audit trail.
        """,
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(invoices.router)
    app.include_router(credit_notes.router)
    app.include_router(exports.router)
    app.include_router(transactions.router)

    @app.get("/")
    def root():
        return {"name": settings.app_name, "version": VERSION, "docs": "/docs"}

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "store": settings.database_type}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
