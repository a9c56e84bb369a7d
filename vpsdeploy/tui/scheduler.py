"""
Task Scheduler

Runs dashboard work on background threads. Every task gets a handle that can
be inspected, cancelled and joined; tasks report only through the shared
message queue, and an exception in a task becomes that task's failure message.
"""

import itertools
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from vpsdeploy.tui.messages import FAILURE_MESSAGES

TaskTarget = Callable[[threading.Event], None]


@dataclass
class TaskHandle:
    """A running (or finished) background task."""

    name: str
    kind: str
    thread: threading.Thread
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def is_alive(self) -> bool:
        return self.thread.is_alive()

    def cancel(self) -> None:
        """Ask the task to stop; only tasks that watch their event honour it."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the task. Returns True if it has finished."""
        self.thread.join(timeout)
        return not self.thread.is_alive()


class TaskScheduler:
    """Spawns tasks and keeps their handles until they are reaped."""

    def __init__(self, outbox: "queue.Queue"):
        self.outbox = outbox
        self._handles: List[TaskHandle] = []
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def spawn(self, kind: str, target: TaskTarget) -> TaskHandle:
        """
        Start *target* on a daemon thread.

        Args:
            kind: "build", "deploy" or "monitor"
            target: Called with the task's cancel event

        Returns:
            TaskHandle for the new task
        """
        if kind not in FAILURE_MESSAGES:
            raise ValueError(f"Unknown task kind: {kind}")

        cancel_event = threading.Event()
        name = f"{kind}-{next(self._counter)}"
        thread = threading.Thread(
            target=self._run,
            args=(kind, target, cancel_event),
            name=name,
            daemon=True,
        )
        handle = TaskHandle(name=name, kind=kind, thread=thread, cancel_event=cancel_event)

        with self._lock:
            self._handles.append(handle)
        thread.start()
        return handle

    def _run(self, kind: str, target: TaskTarget, cancel_event: threading.Event) -> None:
        try:
            target(cancel_event)
        except Exception as e:
            self.outbox.put(FAILURE_MESSAGES[kind](str(e)))

    @property
    def handles(self) -> List[TaskHandle]:
        with self._lock:
            return list(self._handles)

    def running(self, kind: Optional[str] = None) -> List[TaskHandle]:
        return [h for h in self.handles if h.is_alive() and (kind is None or h.kind == kind)]

    def cancel(self, kind: str) -> None:
        for handle in self.running(kind):
            handle.cancel()

    def reap(self) -> None:
        """Forget handles of finished tasks."""
        with self._lock:
            self._handles = [h for h in self._handles if h.is_alive()]

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Cancel every task, then wait for all of them to finish."""
        for handle in self.handles:
            handle.cancel()
        for handle in self.handles:
            handle.join(timeout)
        self.reap()
