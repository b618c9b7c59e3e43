# workhub/core/database.py
from functools import lru_cache
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from prisma import Prisma as PrismaClient
else:
    # The generated client only exists after `prisma generate`
    PrismaClient = Any


@lru_cache(maxsize=1)
def get_prisma() -> PrismaClient:
    """
    Return the process-wide Prisma client.

    The client is generated from prisma/schema.prisma, so it is built on first
    use rather than at import time.
    """
    from prisma import Prisma

    return Prisma()


async def get_db() -> PrismaClient:
    """Database dependency for FastAPI dependency injection."""
    return get_prisma()
