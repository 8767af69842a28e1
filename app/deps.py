from collections.abc import Iterator

from redis.asyncio import Redis
from sqlalchemy.orm import Session

from .db import get_db_session
from .redis_client import get_redis_client


async def get_redis() -> Redis:
    """
    FastAPI dependency that provides a shared Redis client.

    Tests override this dependency with an in-memory fake.
    """
    return get_redis_client()


def get_db() -> Iterator[Session]:
    """
    Provide a synchronous SQLAlchemy session.
    """
    yield from get_db_session()
