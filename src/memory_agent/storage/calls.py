"""Bounded execution of blocking record-store calls from async code."""

import asyncio
import logging
from typing import Callable, TypeVar

from memory_agent.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_store(operation: str, fn: Callable[..., T], *args, timeout: float, **kwargs) -> T:
    """
    Run a store method in a worker thread with a deadline.

    Raises:
        RemoteUnavailable: On timeout or connection failure
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Record store {operation} timed out after {timeout}s")
        raise RemoteUnavailable(f"{operation} timed out") from e
    except ConnectionError as e:
        logger.error(f"Record store {operation} failed: {e}")
        raise RemoteUnavailable(f"{operation} failed: {e}") from e
