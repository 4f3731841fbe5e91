from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from crudcore.core.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def maybe_begin(session: AsyncSession) -> AsyncIterator[bool]:
    """
    Join the caller's transaction when the session already has one.
    Otherwise open a short transaction that commits on exit and rolls back on error.

    Yields True when this block owns the transaction.
    """
    if session.in_transaction():
        yield False
        return
    logger.debug("opening transaction on session %s", id(session))
    async with session.begin():
        yield True
