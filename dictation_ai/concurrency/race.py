"""First-of-two-completions-wins primitive.

Both sides run as tasks; when one finishes the other is cancelled and
awaited, so an in-flight HTTP request on the losing side is torn down
rather than left running with its result ignored.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from dictation_ai.logging.audit import get_audit_logger

T = TypeVar("T")


@dataclass
class RaceOutcome(Generic[T]):
    timed_out: bool
    value: T | None = None


async def _cancel_and_wait(task: asyncio.Task) -> None:
    if task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if current is not None and current.cancelling():
            raise
    except Exception as e:
        # The loser's failure is discarded along with its result
        get_audit_logger().debug(
            "Discarded losing branch failure",
            extra={"audit_data": {"error": str(e)}},
        )


async def race(first: Awaitable[Any], second: Awaitable[Any]) -> tuple[int, Any]:
    """Run both; return (index, result) of whichever completes first.

    An exception from the winner propagates. If the calling task is
    cancelled, both sides are cancelled before CancelledError propagates.
    """
    tasks = [asyncio.ensure_future(first), asyncio.ensure_future(second)]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    # Ties resolve to the first argument
    winner = 0 if tasks[0] in done else 1
    await _cancel_and_wait(tasks[1 - winner])
    return winner, tasks[winner].result()


async def run_with_timeout(operation: Awaitable[T], seconds: float) -> RaceOutcome[T]:
    """Race `operation` against a timer; a late result is discarded."""
    index, value = await race(operation, asyncio.sleep(seconds))
    if index == 1:
        return RaceOutcome(timed_out=True)
    return RaceOutcome(timed_out=False, value=value)
