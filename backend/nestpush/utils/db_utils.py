"""Database utility functions."""
import asyncio
import functools
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError, SQLAlchemyError

from ..errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar('T')

TRANSIENT_ERROR_MESSAGES = [
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Primary key for rows keyed by UUID string."""
    return str(uuid.uuid4())


async def retry_on_lock(coro_func: Callable[[], T], max_retries: int = 3, base_delay: float = 0.1) -> T:
    """Retry a database operation on transient errors with exponential backoff.

    Handles SQLite lock contention and PostgreSQL transient connection errors
    that may occur under high load.

    Args:
        coro_func: Async function to call (should be a callable that returns a coroutine)
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles with each retry)

    Returns:
        The result of the coroutine function

    Raises:
        OperationalError: If all retries fail or error is not transient
    """
    last_exception = None
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            error_str = str(e).lower()
            if any(msg in error_str for msg in TRANSIENT_ERROR_MESSAGES):
                last_exception = e
                delay = base_delay * (2 ** attempt)
                logger.warning(f"Database transient error, retrying in {delay}s (attempt {attempt + 1}/{max_retries})")
                await asyncio.sleep(delay)
            else:
                raise
    raise last_exception


def storage_operation(name: str):
    """Decorator turning SQLAlchemy failures of a store method into StorageError."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"Storage error in {name}: {e}")
                raise StorageError(name, e) from e
        return wrapper
    return decorator
