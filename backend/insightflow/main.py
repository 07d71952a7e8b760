"""
InsightFlow API application.

Run with `python -m insightflow` or `uvicorn insightflow.main:app`.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insightflow.api.dependencies import get_sentiment_scheduler
from insightflow.api.v1 import (
    analysis,
    auth,
    comparison,
    health,
    linkedin,
    rag,
    sentiment,
    users,
    visualizations,
)
from insightflow.core.config import settings
from insightflow.core.database import async_session_maker, close_db, init_db
from insightflow.core.logging_config import setup_logging
from insightflow.middleware.logging import LoggingMiddleware
from insightflow.middleware.request_id import RequestIDMiddleware
from insightflow.services.monitored_companies import MonitoredCompanyService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup and shutdown hooks.

    Startup:
        - Configure logging and create tables
        - Seed the monitored company list
        - Start the sentiment scheduler when enabled

    Shutdown:
        - Stop the scheduler
        - Dispose of the engine
    """
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    await init_db()

    async with async_session_maker() as session:
        await MonitoredCompanyService(session).initialize_defaults()
        await session.commit()

    scheduler = None
    if settings.sentiment_scheduler_enabled:
        scheduler = get_sentiment_scheduler()
        scheduler.start()

    logger.info("InsightFlow started", extra={"version": settings.version})

    yield

    if scheduler is not None:
        await scheduler.stop()
    await close_db()


app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="Competitive intelligence: strategic frameworks, company comparison and sentiment monitoring",
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Last registered runs first: CORS wraps RequestID, which wraps logging
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=settings.api_prefix, tags=["auth"])
app.include_router(users.router, prefix=settings.api_prefix, tags=["users"])
app.include_router(analysis.router, prefix=settings.api_prefix, tags=["analysis"])
app.include_router(rag.router, prefix=settings.api_prefix, tags=["rag"])
app.include_router(linkedin.router, prefix=settings.api_prefix, tags=["linkedin"])
app.include_router(visualizations.router, prefix=settings.api_prefix, tags=["visualizations"])
app.include_router(comparison.router, prefix=settings.api_prefix, tags=["comparison"])
app.include_router(sentiment.router, prefix=settings.api_prefix, tags=["sentiment"])


@app.get("/")
async def root():
    return {
        "message": "InsightFlow API",
        "version": settings.version,
        "docs": "/docs",
    }
