from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

log = logging.getLogger(__name__)

async def join_all(*aws: Awaitable[Any]) -> List[Any]:
    """Run a fixed set of awaitables concurrently and return their results in order.

    The first failure cancels the remaining tasks and is re-raised as is, so a
    caller never sees a partial result.
    """
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            log.debug("cancelled %d sibling task(s) after failure", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        raise

async def bounded_map(fn: Callable[[T], Awaitable[R]], items: Iterable[T], limit: Optional[int] = None) -> List[R]:
    items = list(items)
    if not limit or limit <= 0:
        return await join_all(*(fn(item) for item in items))

    sem = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with sem:
            return await fn(item)

    return await join_all(*(_run(item) for item in items))
