"""Async utility functions shared across modules."""

import asyncio
import logging
from collections.abc import Awaitable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def run_async_with_timeout(coro: Coroutine[Any, Any, T], shutdown_timeout: float = 10.0) -> T:
    """Run a coroutine to completion on a fresh event loop.

    Behaves like asyncio.run() except that a default executor still busy
    after shutdown_timeout is abandoned with a warning, so CLI commands
    never hang on exit.

    Args:
        coro: Coroutine to execute.
        shutdown_timeout: Seconds to wait for the default executor.

    Returns:
        Result of the coroutine.

    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(asyncio.wait_for(loop.shutdown_default_executor(), timeout=shutdown_timeout))
        except TimeoutError:
            logger.warning("Default executor still busy after %.1fs, not waiting", shutdown_timeout)
        finally:
            asyncio.set_event_loop(None)
            loop.close()


async def delayed_invoke(delay: float, coro: Coroutine[Any, Any, Any]) -> Any:
    """Execute coroutine after a delay.

    Used for advisory notices that fire only if nothing happened first.

    Args:
        delay: Seconds to wait before execution.
        coro: Coroutine to execute.

    Returns:
        Result of the coroutine.

    """
    if delay > 0:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            coro.close()
            raise
    return await coro


async def maybe_await(result: Awaitable[T] | T) -> T:
    """Await a callback result if it is awaitable."""
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        return await result
    return result  # type: ignore[return-value]
