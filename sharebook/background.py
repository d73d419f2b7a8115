"""Helpers for blocking work and fire-and-forget cleanup.

Storage writes, PDF layout and image decoding are synchronous; routers push
them onto the default executor with ``run_sync`` so the event loop stays free.
Cleanup that the response does not depend on (orphaned cover files, say) goes
through ``spawn`` so failures are logged rather than lost.
"""
from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

# strong refs; the loop only keeps weak ones
_pending: Set[asyncio.Task[Any]] = set()


def spawn(coro: Awaitable[Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
    """Schedule ``coro`` on the running loop and log it if it fails."""
    task = asyncio.create_task(coro, name=name)  # type: ignore[arg-type]
    _pending.add(task)

    def _done(t: asyncio.Task[Any]) -> None:
        _pending.discard(t)
        if t.cancelled():
            logger.debug("Background task %s cancelled", name or t)
            return
        exc = t.exception()
        if exc is not None:
            logger.error("Background task %s failed", name or t, exc_info=exc)

    task.add_done_callback(_done)
    return task


async def run_sync(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a blocking callable in the default executor and await its result."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


async def drain(timeout: float = 5.0) -> None:
    """Wait for outstanding background tasks; used on shutdown and in tests."""
    if _pending:
        await asyncio.wait(set(_pending), timeout=timeout)


__all__ = ["spawn", "run_sync", "drain"]
