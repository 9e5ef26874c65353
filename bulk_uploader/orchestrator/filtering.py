"""Concurrent filtering helpers."""
import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")


async def async_filter(items: Sequence[T], predicate: Callable[[T], Awaitable[bool]]) -> List[T]:
    """
    Filter items with an async predicate, all predicates running at once.

    Survivors keep the order of ``items``, whatever order the predicates
    finish in.
    """
    verdicts = await asyncio.gather(*(predicate(item) for item in items))
    return [item for item, keep in zip(items, verdicts) if keep]
