"""
Operation-scoped database sessions.

Sessions are acquired lazily and released right after each operation, so no
connection is held while a handler waits on Stripe or the e-mail provider.

Usage:
    async with get_session() as session:
        result = await session.get(Model, id)
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.session import AsyncSessionLocal

logger = get_logger(__name__)


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a session for a single DB operation.

    Commits on success unless ``readonly``; rolls back and re-raises on
    exception.
    """
    start = time.perf_counter()
    async with AsyncSessionLocal() as session:
        logger.debug(
            f"Operation session acquire: {(time.perf_counter() - start) * 1000:.2f}ms, readonly={readonly}"
        )
        try:
            yield session
            if not readonly:
                await session.commit()
        except Exception as e:
            logger.error(f"Operation rollback due to: {e}")
            await session.rollback()
            raise
