import asyncio
import functools
import logging

logger = logging.getLogger(__name__)


def with_timeout(seconds):
    """Bounds an awaitable call, raising asyncio.TimeoutError when exceeded"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
            except asyncio.TimeoutError:
                logger.error(f"{func.__name__} timed out after {seconds}s")
                raise

        return wrapper

    return decorator
