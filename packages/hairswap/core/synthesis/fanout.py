"""Settle-all fan-out primitive.

Runs a batch of awaitables concurrently, waits for every one of them, and
returns tagged results in submission order. A failing awaitable never cancels
its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one awaitable in a settle-all batch."""

    index: int
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Sequence[Awaitable[T]]) -> list[Settled[T]]:
    """Await every item, collecting successes and failures.

    Args:
        awaitables: Awaitables to run concurrently

    Returns:
        One Settled per input, ordered by input position regardless of
        completion order
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)

    settled: list[Settled[T]] = []
    for index, result in enumerate(results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                # KeyboardInterrupt / SystemExit are not candidate failures
                raise result
            settled.append(Settled(index=index, error=result))
        else:
            settled.append(Settled(index=index, value=result))
    return settled
