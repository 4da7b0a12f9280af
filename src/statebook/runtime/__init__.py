"""Runtime support imported by generated suites."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from statebook.runtime.graph import NodeStatus, StateGraph, StateNode


async def staggered(delay_ms: int, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
    """Call `func(*args)` after `delay_ms` and await it."""
    await asyncio.sleep(delay_ms / 1000.0)
    return await func(*args)


async def joined(*invocations: Awaitable[Any]) -> list[Any]:
    """Await every invocation of a group, then raise the first error if any.

    No member is left running once this returns or raises, so a failing
    command cannot leave typed characters pending for the next test.
    """
    results = await asyncio.gather(*invocations, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


__all__ = [
    "NodeStatus",
    "StateGraph",
    "StateNode",
    "joined",
    "staggered",
]
