"""In-process event fan-out for Splice.

The assistant publishes job progress and merge results here, the settings
store publishes configuration edits, and editor hosts or the CLI listen.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

HISTORY_SIZE = 500


@dataclass
class Event:
    """One published fact. ``job_id`` is empty for events not tied to a job."""

    event_type: str
    job_id: str = ""
    data: dict = field(default_factory=dict)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


EventHandler = Callable[[Event], Any]


class EventBus:
    """Delivers events to listeners and keeps a bounded history.

    Plain callables run inside ``emit``. Coroutine functions run as tasks on
    the current loop and are skipped when no loop is running. A listener
    that raises is logged and the others still get the event.
    """

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        self._by_type: dict[str, list[EventHandler]] = defaultdict(list)
        self._catch_all: list[EventHandler] = []
        self._history: deque[Event] = deque(maxlen=history_size)
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._by_type[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self._catch_all.append(handler)

    def emit(self, event: Event) -> None:
        self._history.append(event)
        for handler in [*self._catch_all, *self._by_type.get(event.event_type, ())]:
            if inspect.iscoroutinefunction(handler):
                self._schedule(handler, event)
            else:
                self._call(handler, event)

    def recent_events(self, limit: int = 50, *, job_id: str | None = None) -> list[Event]:
        """Newest ``limit`` events, oldest first, optionally for one job."""
        events = [e for e in self._history if job_id is None or e.job_id == job_id]
        return events[-limit:]

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d event listener task(s) still running after drain", len(pending))

    def _call(self, handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
        except Exception as e:
            logger.warning(
                "Listener %s failed for %s: %s",
                getattr(handler, "__name__", handler), event.event_type, e,
            )

    def _schedule(self, handler: EventHandler, event: Event) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(
                "No running loop; skipped listener %s for %s",
                getattr(handler, "__name__", handler), event.event_type,
            )
            return
        task = loop.create_task(handler(event))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Event listener task failed: %s", exc)
