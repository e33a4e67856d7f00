"""Background task management for fire-and-forget consolidation.

Tasks are tracked in a module-level set so they are not garbage collected
while running; callers never await them.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, Set

from micro_consolidation.telemetry import BACKGROUND_TASK_ERROR, get_logger

log = get_logger(__name__)

# Strong references to running background tasks
_background_tasks: Set[asyncio.Task] = set()


def run_in_background(coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
    """Run a coroutine in the background without blocking.

    Must be called while an event loop is running.

    Args:
        coro: Coroutine to run in background.
        name: Optional task name (shows up in error logs).

    Returns:
        The scheduled task. Callers are not expected to await it.

    Raises:
        RuntimeError: If no event loop is running.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    # Log any errors but don't propagate them
    task.add_done_callback(_log_task_error)
    return task


def _log_task_error(task: asyncio.Task) -> None:
    """Log an exception that escaped a background task."""
    if task.cancelled():
        return

    exc = task.exception()
    if exc is not None:
        log.error(
            BACKGROUND_TASK_ERROR,
            error=str(exc),
            error_type=type(exc).__name__,
            task_name=task.get_name(),
        )


async def wait_for_background_tasks() -> None:
    """Wait for all background tasks to complete.

    Useful for tests and graceful shutdown.
    """
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


async def cancel_background_tasks() -> int:
    """Cancel every running background task and wait for it to finish.

    Returns:
        Number of tasks that were cancelled.
    """
    tasks = [task for task in _background_tasks if not task.done()]
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    return len(tasks)


def get_background_task_count() -> int:
    """Get the number of running background tasks."""
    return len(_background_tasks)
