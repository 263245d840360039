"""Run a command on a node and wait for its result by polling the task API.

The remote side only offers status and log endpoints, so a run is a small
state machine:

    SUBMITTED -> POLLING -> COMPLETED      status reported ``stopped``
                         -> UNOBSERVABLE   status/log could not be fetched
                         -> CANCELLED      caller set the cancel event
                         -> TIMED_OUT      budget exhausted (raises)

Log lines are read by offset, so each line is delivered exactly once and in
the order the task wrote it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from ..models.task import (
    SUCCESS_EXIT_STATUSES,
    TaskExecutionResult,
    TaskHandle,
    TaskState,
    TaskStatus,
)
from .base import ProxmoxBackend
from .exceptions import ApiError, TimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 300
DEFAULT_CANCEL_GRACE = 5.0
# Proxmox returns 50 log lines unless asked for more
LOG_PAGE_SIZE = 500

UNKNOWN_EXIT = "unknown"
CANCELLED_EXIT = "cancelled"


@dataclass
class TaskRun:
    """Mutable bookkeeping for one execution."""

    node: str
    upid: TaskHandle | None = None
    state: TaskState = TaskState.SUBMITTED
    offset: int = 0
    output: list[str] = field(default_factory=list)
    last_status: TaskStatus | None = None

    @property
    def exit_code(self) -> str:
        if self.state is TaskState.CANCELLED:
            return CANCELLED_EXIT
        if self.last_status is not None and self.last_status.exitstatus:
            return self.last_status.exitstatus
        return UNKNOWN_EXIT


class TaskExecutor:
    """Execute-and-wait over a backend's task endpoints."""

    def __init__(
        self,
        backend: ProxmoxBackend,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_grace: float = DEFAULT_CANCEL_GRACE,
        clock: Callable[[], float] | None = None,
        log_page_size: int = LOG_PAGE_SIZE,
    ) -> None:
        """Initialize task executor.

        Args:
            backend: Client used for submit/status/log/stop calls
            poll_interval: Fixed delay between polls in seconds
            cancel_grace: How long to wait for a stop request to land
            clock: Monotonic time source
            log_page_size: Log lines requested per fetch
        """
        self.backend = backend
        self.poll_interval = poll_interval
        self.cancel_grace = cancel_grace
        self.clock = clock or time.monotonic
        self.log_page_size = log_page_size
        self._background: set[asyncio.Task] = set()

    async def execute_and_await(
        self,
        node: str,
        command: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        username: str = "root",
        cancel_event: asyncio.Event | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> TaskExecutionResult:
        """Run a command on a node and wait for it to finish.

        Args:
            node: Node name
            command: Command line
            timeout_seconds: Budget measured from submission
            username: User the command runs as
            cancel_event: Set by the caller to cancel the run
            on_output: Called with every new log line, in order

        Returns:
            Execution result. A run whose status could not be observed
            returns ``state=UNOBSERVABLE`` instead of failing.

        Raises:
            TimeoutError: If the task is still running when the budget is spent
            ApiError: If submission fails
        """
        run = TaskRun(node=node)
        started = self.clock()
        run.upid = await self.backend.execute_command(
            node, command, timeout=timeout_seconds, username=username
        )
        run.state = TaskState.POLLING

        try:
            await self._poll(run, started, timeout_seconds, cancel_event, on_output)
        except asyncio.CancelledError:
            logger.info("Execution of %s interrupted, stopping remote task", run.upid)
            await self._request_stop(node, run.upid)
            raise

        duration = round(self.clock() - started)
        exit_code = run.exit_code
        logger.info("Task %s finished: state=%s exit=%s in %ss", run.upid, run.state.value, exit_code, duration)
        return TaskExecutionResult(
            exit_code=exit_code,
            output=list(run.output),
            duration_seconds=duration,
            success=run.state is not TaskState.CANCELLED and exit_code in SUCCESS_EXIT_STATUSES,
            state=run.state,
            upid=run.upid,
        )

    async def _poll(
        self,
        run: TaskRun,
        started: float,
        timeout_seconds: float,
        cancel_event: asyncio.Event | None,
        on_output: Callable[[str], None] | None,
    ) -> None:
        while True:
            elapsed = self.clock() - started
            if elapsed >= timeout_seconds:
                run.state = TaskState.TIMED_OUT
                await self._request_stop(run.node, run.upid)
                raise TimeoutError(f"Script execution timeout after {timeout_seconds} seconds")

            try:
                run.last_status = await self.backend.get_task_status(run.node, run.upid)
                await self._read_log(run, on_output, drain=run.last_status.is_finished)
            except ApiError as e:
                logger.warning("Lost track of task %s (%s), assuming it finished", run.upid, e)
                run.state = TaskState.UNOBSERVABLE
                return

            logger.debug("Task %s: status=%s offset=%s", run.upid, run.last_status.status, run.offset)

            if run.last_status.is_finished:
                run.state = TaskState.COMPLETED
                return

            if cancel_event is not None and cancel_event.is_set():
                await self._request_stop(run.node, run.upid)
                run.state = TaskState.CANCELLED
                return

            remaining = timeout_seconds - (self.clock() - started)
            await self._pause(cancel_event, min(self.poll_interval, max(remaining, 0)))

    async def _read_log(
        self, run: TaskRun, on_output: Callable[[str], None] | None, drain: bool
    ) -> None:
        """Fetch log lines after the current offset.

        A running task gets one page per poll. Once the task stopped, pages
        are fetched until one comes back empty, since the server may cap a
        page below ``log_page_size``.
        """
        while True:
            lines = await self.backend.get_task_log(
                run.node, run.upid, start=run.offset, limit=self.log_page_size
            )
            for line in lines:
                run.output.append(line.t)
                if on_output is not None:
                    on_output(line.t)
            run.offset += len(lines)
            if not drain or not lines:
                return

    async def _pause(self, cancel_event: asyncio.Event | None, delay: float) -> None:
        """Sleep between polls; returns early when the cancel event is set."""
        if delay <= 0:
            return
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _request_stop(self, node: str, upid: TaskHandle) -> None:
        """Ask the node to stop a task without letting the outcome block the caller."""
        if self.cancel_grace <= 0:
            task = asyncio.create_task(self._stop_quietly(node, upid))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            return
        try:
            await asyncio.wait_for(self._stop_quietly(node, upid), timeout=self.cancel_grace)
        except asyncio.TimeoutError:
            logger.warning("Stop request for task %s did not complete within %ss", upid, self.cancel_grace)

    async def _stop_quietly(self, node: str, upid: TaskHandle) -> None:
        try:
            await self.backend.stop_task(node, upid)
        except ApiError as e:
            # the task may already have stopped on its own
            logger.warning("Failed to stop task %s on %s: %s", upid, node, e)
