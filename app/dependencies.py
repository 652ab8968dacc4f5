from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterator

from fastapi import FastAPI
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    options: dict = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Sync endpoints run in a threadpool, so the connection crosses threads.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(
    settings.assembled_database_url, **_engine_options(settings.assembled_database_url)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Provide a scoped database session.

    Anything left uncommitted when the request fails is rolled back, so a
    half-applied resequencing is never visible to later reads.
    """

    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@asynccontextmanager
async def lifespan_context(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown activities."""

    logger.info("Opening database engine")
    try:
        with engine.connect():
            logger.info("Database connection established")
        if settings.auto_create_schema:
            from .models import Base

            Base.metadata.create_all(bind=engine)
            logger.info("Database schema ensured")
        yield
    finally:
        logger.info("Disposing database engine")
        engine.dispose()
