"""
Timeout-with-fallback helper shared by the enrichment stages.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(
    awaitable: Awaitable[T], timeout: float, fallback: T, label: str = "operation"
) -> T:
    """
    Race a unit of work against a timer.

    Returns the work's result if it finishes within ``timeout`` seconds,
    otherwise ``fallback``. Errors raised by the work are logged and also
    turn into ``fallback``; nothing propagates to the caller.

    Blocking calls that the work delegated to a thread keep running after a
    timeout and their result is dropped, so the work must not mutate shared
    state itself. Callers apply the returned value once this resolves.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{label} timed out after {timeout:.1f}s, using fallback")
        return fallback
    except Exception as e:
        logger.error(f"{label} failed: {e}", exc_info=True)
        return fallback
