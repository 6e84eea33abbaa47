"""
pxlsbot.services.message_queue — Per-Key FIFO Task Chains
==========================================================

Reaction events for the same message can arrive in rapid succession
(several people starring at once).  Running their handlers concurrently
could post two mirrors for one message, or apply a stale count after a
newer one.  :class:`MessageQueue` chains every task submitted under the
same key so they run strictly one after another, in submission order,
while tasks for different keys interleave freely.

Usage::

    queue = MessageQueue(timeout=30)
    result = await queue.enqueue(message_id, lambda: handle(message_id))
    if not result.ok:
        ...  # already logged

Semantics:
- ``enqueue`` returns only after *its* task has finished (or failed).
- A failing task never poisons its chain: the error is logged, captured in
  the returned :class:`TaskResult`, and the next task for the key runs.
- A key with nothing queued or running is dropped from the map.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Outcome of one queued task."""

    ok: bool
    value: Any = None
    error: BaseException | None = None


class MessageQueue:
    """Serialises async tasks per key.

    Parameters
    ----------
    timeout:
        Seconds a single task may run before it is abandoned and reported
        as failed.  ``None`` means no limit.

    Notes
    -----
    The timeout cancels the awaiting coroutine, not work already handed to
    a thread.  A database call in flight through
    :func:`~pxlsbot.database.engine.run_db` still completes, so a mapping
    row can be written after its task was reported as failed.  The next
    event for that message reads the row and reconciles against it.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self.timeout = timeout
        # key → future resolved when the newest task for that key finishes
        self._tails: dict[Hashable, asyncio.Future[None]] = {}

    def __len__(self) -> int:
        return len(self._tails)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tails

    async def enqueue(
        self, key: Hashable, task: Callable[[], Awaitable[Any]]
    ) -> TaskResult:
        """Run *task* after every task previously enqueued under *key*."""
        previous = self._tails.get(key)
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._tails[key] = done

        try:
            if previous is not None:
                await asyncio.shield(previous)
            return await self._run(key, task)
        finally:
            if previous is not None and not previous.done():
                # Cancelled while still waiting: successors must keep waiting
                # for the predecessor, not for us.
                previous.add_done_callback(lambda _f: self._release(key, done))
            else:
                self._release(key, done)

    async def _run(
        self, key: Hashable, task: Callable[[], Awaitable[Any]]
    ) -> TaskResult:
        try:
            if self.timeout is None:
                value = await task()
            else:
                value = await asyncio.wait_for(task(), timeout=self.timeout)
        except TimeoutError as exc:
            logger.error(
                "Queued task for key %s timed out after %.1fs", key, self.timeout,
            )
            return TaskResult(ok=False, error=exc)
        except Exception as exc:
            logger.exception("Queued task for key %s failed", key)
            return TaskResult(ok=False, error=exc)
        return TaskResult(ok=True, value=value)

    def _release(self, key: Hashable, done: asyncio.Future[None]) -> None:
        if not done.done():
            done.set_result(None)
        if self._tails.get(key) is done:
            del self._tails[key]
