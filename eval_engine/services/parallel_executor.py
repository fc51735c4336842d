"""Bounded-concurrency execution of independent work items."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from eval_engine.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_CONCURRENCY = 5


@dataclass
class ParallelRunResult(Generic[R]):
    results: List[R] = field(default_factory=list)
    aborted: bool = False


async def _call_safely(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    try:
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as exc:
        logger.warning("Progress callback failed: %s", exc)


async def run_bounded(
    items: Sequence[T],
    execute_one: Callable[[T], Awaitable[R]],
    *,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    make_error_result: Callable[[T, Exception], R],
    on_progress: Optional[Callable[[int, T], Any]] = None,
    on_result: Optional[Callable[[R, int], Any]] = None,
    abort_event: Optional[asyncio.Event] = None,
) -> ParallelRunResult[R]:
    """
    Run ``execute_one`` over ``items`` with at most ``max_concurrency`` in flight.

    Results come back in input order regardless of completion order. Items
    that never started because of an abort are left out. Callbacks fire in
    completion order; their failures are logged and ignored.

    Args:
        items: Work items
        execute_one: Coroutine function called with one item
        max_concurrency: Upper bound on concurrently running items
        make_error_result: Builds a result for an item whose execution raised
        on_progress: Called with (index, item) before an item runs
        on_result: Called with (result, index) after an item finishes
        abort_event: When set, items not yet started are skipped
    """
    total = len(items)
    if total == 0:
        return ParallelRunResult()

    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    slots: List[Optional[R]] = [None] * total
    aborted = False

    def abort_requested() -> bool:
        return abort_event is not None and abort_event.is_set()

    async def run_item(index: int, item: T) -> None:
        nonlocal aborted
        if abort_requested():
            aborted = True
            return

        async with semaphore:
            if abort_requested():
                aborted = True
                return

            await _call_safely(on_progress, index, item)
            try:
                result = await execute_one(item)
            except Exception as exc:
                logger.error("Item %d failed: %s", index, exc)
                result = make_error_result(item, exc)
            slots[index] = result
            await _call_safely(on_result, result, index)

    await asyncio.gather(*(run_item(index, item) for index, item in enumerate(items)))

    return ParallelRunResult(
        results=[result for result in slots if result is not None],
        aborted=aborted,
    )


__all__ = ["DEFAULT_MAX_CONCURRENCY", "ParallelRunResult", "run_bounded"]
