"""
Boundary between services and the data store driver.

Driver failures become UpstreamUnavailable here so they can never be mistaken
for an empty result further up.
"""

import functools
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from portal.kernel.errors import UpstreamUnavailable
from portal.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def store_call(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Decorator for async data store calls. Integrity errors pass through for the caller."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except IntegrityError:
            raise
        except (OperationalError, InterfaceError, DBAPIError) as exc:
            logger.error(
                "Data store unavailable",
                extra={"call": func.__qualname__, "error": type(exc).__name__},
            )
            raise UpstreamUnavailable("The data store is temporarily unavailable") from exc

    return wrapper
