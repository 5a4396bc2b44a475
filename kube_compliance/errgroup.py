"""Wait for a fixed set of tasks and keep the first error."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any


@dataclass(kw_only=True)
class ErrorGroup:
    """Run awaitables concurrently and report the first one to fail.

    Unlike :class:`asyncio.TaskGroup`, a failing task does not cancel its
    siblings: :meth:`wait` returns only once every task has finished, then
    raises the exception of the task that failed first.
    """

    tasks: list[asyncio.Future[Any]] = field(default_factory=list)
    first_error: BaseException | None = None

    def go[T](self, awaitable: Awaitable[T]) -> asyncio.Future[T]:
        """Schedule an awaitable and return the future tracking it."""
        task = asyncio.ensure_future(awaitable)
        task.add_done_callback(self._record)
        self.tasks.append(task)
        return task

    def _record(self, task: asyncio.Future[Any]) -> None:
        if self.first_error is not None or task.cancelled():
            return
        self.first_error = task.exception()

    async def wait(self) -> None:
        """Wait for all tasks, then raise the first error if any."""
        await asyncio.gather(*self.tasks, return_exceptions=True)
        if self.first_error is not None:
            raise self.first_error
