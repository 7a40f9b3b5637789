"""
Per-invocation cancellation handle.
"""

from __future__ import annotations

import asyncio


class AbortHandle:
    """
    Cancellation handle owned by exactly one stream invocation.

    The handle is bound to the asyncio task running the invocation. Aborting
    it marks the invocation as aborted and cancels the task, unless the abort
    comes from inside that task, in which case the read loop notices the
    flag at its next check.
    """

    __slots__ = ("_aborted", "_task")

    def __init__(self) -> None:
        self._aborted = False
        self._task: asyncio.Task[None] | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def bind(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        task = self._task
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()
