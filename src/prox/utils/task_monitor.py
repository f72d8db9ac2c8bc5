"""Waiting for Proxmox tasks to reach a terminal state."""

import contextlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Iterator, Optional

from rich.console import Console

from ..api_clients.errors import (
    ProxError,
    TaskCancelledError,
    TaskError,
    TaskFailedError,
    TaskTimeoutError,
)
from ..models import TaskHandle, TaskStatus

logger = logging.getLogger(__name__)

STATUS_ERROR_MESSAGE = "failed to get task status"


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Delay sequence between task status polls.

    Delays start at ``initial`` and grow by ``multiplier`` up to
    ``maximum``. A multiplier of 1 gives a fixed interval.
    """

    initial: float = 0.5
    multiplier: float = 2.0
    maximum: float = 5.0

    def __post_init__(self) -> None:
        if self.initial <= 0:
            raise ValueError("initial delay must be positive")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if self.maximum < self.initial:
            raise ValueError("maximum delay must not be below the initial delay")

    @classmethod
    def fixed(cls, interval: float) -> "BackoffPolicy":
        return cls(initial=interval, multiplier=1.0, maximum=interval)

    @classmethod
    def from_config(cls, config: Any) -> "BackoffPolicy":
        return cls(
            initial=float(config.get("tasks.initial_interval", 0.5)),
            multiplier=float(config.get("tasks.multiplier", 2.0)),
            maximum=float(config.get("tasks.max_interval", 5.0)),
        )

    def delays(self) -> Iterator[float]:
        """Yield the wait before each successive poll, forever."""
        delay = self.initial
        while True:
            yield min(delay, self.maximum)
            delay = min(delay * self.multiplier, self.maximum)


class TaskMonitor:
    """
    Polls a task until it stops.

    Only the calling thread blocks. Waits happen on a ``threading.Event`` so a
    caller holding that event can cancel at any point, including mid-wait.
    """

    def __init__(
        self,
        client: Any,
        policy: Optional[BackoffPolicy] = None,
        show_progress: bool = False,
        console: Optional[Console] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the task monitor.

        Args:
            client: ProxmoxClient providing ``get_task_status``
            policy: Poll delays; 0.5s doubling up to 5s by default
            show_progress: Show a spinner while waiting
            console: Console the spinner is drawn on
            clock: Monotonic time source for the overall timeout
        """
        self.client = client
        self.policy = policy or BackoffPolicy()
        self.show_progress = show_progress
        self.console = console or Console(stderr=True)
        self._clock = clock

    def _progress(self, description: str) -> ContextManager[Any]:
        if not self.show_progress:
            return contextlib.nullcontext()
        return self.console.status(f"[blue]{description}...[/blue]")

    def _poll(self, handle: TaskHandle) -> TaskStatus:
        try:
            return self.client.get_task_status(handle)
        except ProxError as e:
            raise TaskError(STATUS_ERROR_MESSAGE, handle.upid, e) from e

    def wait_for_task(
        self,
        handle: TaskHandle,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
        description: Optional[str] = None,
    ) -> TaskStatus:
        """
        Block until the task stops.

        Args:
            handle: Task to watch
            cancel_event: Setting this event aborts the wait
            timeout: Overall limit in seconds; None waits indefinitely
            description: Text for the progress spinner

        Returns:
            Final status of a task that stopped with ``OK``

        Raises:
            TaskFailedError: The task stopped with another exit status
            TaskCancelledError: ``cancel_event`` was set
            TaskTimeoutError: ``timeout`` elapsed first
            TaskError: A status lookup failed
        """
        event = cancel_event or threading.Event()
        deadline = None if timeout is None else self._clock() + timeout
        delays = self.policy.delays()
        polls = 0

        with self._progress(description or f"Waiting for task {handle.upid}"):
            while True:
                if event.is_set():
                    raise TaskCancelledError(handle.upid)

                status = self._poll(handle)
                polls += 1

                if status.is_stopped:
                    if status.succeeded:
                        logger.debug(f"Task {handle.upid} finished after {polls} polls")
                        return status
                    raise TaskFailedError(handle.upid, status.exit_status)

                delay = next(delays)
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        raise TaskTimeoutError(handle.upid, timeout)  # type: ignore[arg-type]
                    delay = min(delay, remaining)

                if event.wait(delay):
                    raise TaskCancelledError(handle.upid)
