"""
Production FastAPI Application

Checkout API with a background task group for confirmation emails and
inferred M-PESA confirmations.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import cleanup, container, setup
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import create_db_and_tables, get_engine
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Checkout Service] Starting up...')

    tracing = TracingConfig(service_name='ticket-checkout', service_version=settings.VERSION)
    tracing.setup()
    tracing.instrument_httpx()
    Logger.base.info('📊 [Checkout Service] OpenTelemetry tracing configured')

    # Fail fast on missing M-PESA / Resend configuration
    setup()

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Checkout Service] Dependency injection wired')

    engine = get_engine()
    tracing.instrument_sqlalchemy(engine=engine)
    Logger.base.info('🗄️  [Checkout Service] Database engine ready + instrumented')

    # Local development only; deployed databases are migrated with Alembic
    if os.getenv('AUTO_CREATE_TABLES', 'false').lower() == 'true':
        await create_db_and_tables(engine)
        Logger.base.info('🗄️  [Checkout Service] Database tables created')

    async with anyio.create_task_group() as tg:
        container.task_group.override(tg)
        Logger.base.info('✅ [Checkout Service] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Checkout Service] Shutting down...')
        tg.cancel_scope.cancel()

    container.task_group.reset_override()

    await cleanup()
    Logger.base.info('🔗 [Checkout Service] HTTP client and database closed')

    tracing.shutdown()
    container.unwire()

    Logger.base.info('👋 [Checkout Service] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
