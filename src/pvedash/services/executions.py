"""Background execution of whitelisted scripts with tracked records."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from ..api.exceptions import (
    ApiError,
    ExecutionNotFoundError,
    ExecutionStateError,
    ScriptNotAllowedError,
)
from ..api.base import ProxmoxBackend
from ..api.registry import ClientRegistry
from ..api.tasks import TaskExecutor
from ..models.config import ExecutorConfig, ServerProfile
from ..models.execution import ScriptDefinition, ScriptExecution
from ..models.task import TaskExecutionResult, TaskState

logger = logging.getLogger(__name__)

SCRIPT_CATALOG: dict[str, ScriptDefinition] = {
    script.id: script
    for script in (
        ScriptDefinition(
            id="docker",
            name="Docker Installation",
            command="curl -fsSL https://get.docker.com | sh && systemctl enable docker && systemctl start docker",
            privileged=True,
        ),
        ScriptDefinition(
            id="nginx",
            name="Nginx Installation",
            command="apt update && apt install -y nginx && systemctl enable nginx && systemctl start nginx",
            privileged=True,
        ),
        ScriptDefinition(
            id="nodejs",
            name="Node.js Installation",
            command="curl -fsSL https://deb.nodesource.com/setup_lts.x | bash - && apt install -y nodejs",
            privileged=True,
        ),
        ScriptDefinition(
            id="system_update",
            name="System Update",
            command="apt update && apt upgrade -y && apt autoremove -y",
            privileged=True,
        ),
        ScriptDefinition(
            id="disk_usage",
            name="Check Disk Usage",
            command="df -h && du -sh /home/* /var/* 2>/dev/null | head -10",
        ),
        ScriptDefinition(
            id="memory_info",
            name="Memory Information",
            command="free -h && ps aux --sort=-%mem | head -10",
        ),
    )
}


def get_script(script_id: str) -> ScriptDefinition:
    """Look up a whitelisted script.

    Raises:
        ScriptNotAllowedError: If the id is not whitelisted
    """
    try:
        return SCRIPT_CATALOG[script_id]
    except KeyError:
        raise ScriptNotAllowedError(script_id, list(SCRIPT_CATALOG))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_exit_code(exit_code: str) -> int:
    """Integer exit code for the record; ``OK`` and other text map to 0."""
    try:
        return int(exit_code)
    except ValueError:
        return 0


class ExecutionStore(Protocol):
    """Persistence for execution records."""

    async def create(self, execution: ScriptExecution) -> ScriptExecution: ...

    async def get(self, execution_id: str) -> ScriptExecution | None: ...

    async def update(self, execution_id: str, **changes: Any) -> ScriptExecution | None: ...

    async def find(
        self,
        server_name: str | None = None,
        node_name: str | None = None,
        status: str | None = None,
        script_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ScriptExecution]: ...

    async def active(
        self, server_name: str | None = None, node_name: str | None = None
    ) -> list[ScriptExecution]: ...

    async def delete(self, execution_id: str) -> bool: ...


class InMemoryExecutionStore:
    """Process-local execution store, newest records first."""

    def __init__(self) -> None:
        self._records: dict[str, ScriptExecution] = {}

    async def create(self, execution: ScriptExecution) -> ScriptExecution:
        self._records[execution.id] = execution
        return execution

    async def get(self, execution_id: str) -> ScriptExecution | None:
        return self._records.get(execution_id)

    async def update(self, execution_id: str, **changes: Any) -> ScriptExecution | None:
        current = self._records.get(execution_id)
        if current is None:
            return None
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
        self._records[execution_id] = updated
        return updated

    async def find(
        self,
        server_name: str | None = None,
        node_name: str | None = None,
        status: str | None = None,
        script_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ScriptExecution]:
        records = sorted(self._records.values(), key=lambda e: e.created_at, reverse=True)
        if server_name:
            records = [e for e in records if e.server_name == server_name]
        if node_name:
            records = [e for e in records if e.node_name == node_name]
        if status:
            records = [e for e in records if e.status == status]
        if script_id:
            records = [e for e in records if e.script_id == script_id]
        return records[offset : offset + limit]

    async def active(
        self, server_name: str | None = None, node_name: str | None = None
    ) -> list[ScriptExecution]:
        records = await self.find(server_name=server_name, node_name=node_name, limit=len(self._records))
        return [e for e in records if e.is_active]

    async def delete(self, execution_id: str) -> bool:
        return self._records.pop(execution_id, None) is not None


class ScriptExecutionService:
    """Start whitelisted scripts in the background and track their records.

    A cancelled record stays cancelled: the background run's own terminal
    write is skipped once the record left the active states.
    """

    def __init__(
        self,
        registry: ClientRegistry,
        store: ExecutionStore | None = None,
        config: ExecutorConfig | None = None,
    ) -> None:
        """Initialize service.

        Args:
            registry: Client registry
            store: Execution store (in-memory when omitted)
            config: Executor settings
        """
        self.registry = registry
        self.store = store or InMemoryExecutionStore()
        self.config = config or ExecutorConfig()
        self._runs: dict[str, asyncio.Task] = {}
        self._cancel_events: dict[str, asyncio.Event] = {}

    async def start(
        self,
        profile: ServerProfile,
        script_id: str,
        node_name: str,
        timeout: float | None = None,
        created_by: str | None = None,
        force_mock: bool = False,
    ) -> ScriptExecution:
        """Create an execution record and run the script in the background.

        Args:
            profile: Target server
            script_id: Whitelisted script id
            node_name: Node to run on
            timeout: Budget in seconds (config default when None)
            created_by: Initiating user
            force_mock: Use the mock backend

        Returns:
            The pending execution record

        Raises:
            ScriptNotAllowedError: If the script is not whitelisted
        """
        script = get_script(script_id)
        timeout = timeout or self.config.timeout_seconds
        execution = await self.store.create(
            ScriptExecution(
                script_id=script.id,
                script_name=script.name,
                command=script.command,
                server_name=profile.name,
                node_name=node_name,
                created_by=created_by or "system",
                metadata={"timeout": timeout},
            )
        )
        client = await self.registry.get(profile, force_mock=force_mock)
        cancel_event = asyncio.Event()
        self._cancel_events[execution.id] = cancel_event
        task = asyncio.create_task(self._run(execution.id, client, script, node_name, timeout, cancel_event))
        self._runs[execution.id] = task
        task.add_done_callback(lambda _: self._forget(execution.id))
        logger.info("Started execution %s of %s on %s/%s", execution.id, script.id, profile.name, node_name)
        return execution

    def _forget(self, execution_id: str) -> None:
        self._runs.pop(execution_id, None)
        self._cancel_events.pop(execution_id, None)

    async def _run(
        self,
        execution_id: str,
        client: ProxmoxBackend,
        script: ScriptDefinition,
        node_name: str,
        timeout: float,
        cancel_event: asyncio.Event,
    ) -> None:
        started = _utcnow()
        # cancel() may have run before this task was scheduled
        if cancel_event.is_set():
            return
        if not await self._update_active(execution_id, status="running", start_time=started):
            logger.info("Execution %s left the active states before submission", execution_id)
            return
        executor = TaskExecutor(
            client, poll_interval=self.config.poll_interval, cancel_grace=self.config.cancel_grace
        )
        try:
            result = await executor.execute_and_await(
                node_name,
                script.command,
                timeout_seconds=timeout,
                username=self.config.username,
                cancel_event=cancel_event,
            )
        except asyncio.CancelledError:
            await self._update_active(execution_id, status="cancelled", end_time=_utcnow())
            raise
        except ApiError as e:
            logger.error("Execution %s failed: %s", execution_id, e)
            await self._update_active(
                execution_id,
                status="failed",
                end_time=_utcnow(),
                error_output=e.message,
                duration=round((_utcnow() - started).total_seconds()),
            )
            return
        await self._update_active(execution_id, state=result.state.value, **self._result_changes(result))

    def _result_changes(self, result: TaskExecutionResult) -> dict[str, Any]:
        if result.state is TaskState.CANCELLED:
            status = "cancelled"
        else:
            status = "completed" if result.success else "failed"
        return {
            "status": status,
            "end_time": _utcnow(),
            "output": "\n".join(result.output),
            "exit_code": _parse_exit_code(result.exit_code),
            "duration": result.duration_seconds,
            "upid": result.upid,
        }

    async def _update_active(self, execution_id: str, state: str | None = None, **changes: Any) -> bool:
        """Apply changes unless the record already left the active states."""
        current = await self.store.get(execution_id)
        if current is None or not current.is_active:
            return False
        if state is not None:
            changes["metadata"] = {**current.metadata, "state": state}
        await self.store.update(execution_id, **changes)
        return True

    async def get(self, execution_id: str) -> ScriptExecution:
        """Fetch an execution record.

        Raises:
            ExecutionNotFoundError: If no such record exists
        """
        execution = await self.store.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(execution_id)
        return execution

    async def cancel(self, execution_id: str) -> ScriptExecution:
        """Cancel a pending or running execution.

        The remote task is asked to stop; the record is marked cancelled
        immediately.

        Raises:
            ExecutionNotFoundError: If no such record exists
            ExecutionStateError: If the execution already finished
        """
        execution = await self.get(execution_id)
        if not execution.is_active:
            raise ExecutionStateError("Cannot cancel execution that is not running or pending")

        event = self._cancel_events.get(execution_id)
        if event is not None:
            event.set()
        end_time = _utcnow()
        updated = await self.store.update(
            execution_id,
            status="cancelled",
            end_time=end_time,
            duration=round((end_time - execution.start_time).total_seconds()),
        )
        logger.info("Cancelled execution %s", execution_id)
        return updated or execution

    async def wait(self, execution_id: str) -> ScriptExecution:
        """Wait for the background run of an execution to end."""
        task = self._runs.get(execution_id)
        if task is not None:
            await asyncio.shield(task)
        return await self.get(execution_id)

    async def history(self, **filters: Any) -> list[ScriptExecution]:
        return await self.store.find(**filters)

    async def active(self, server_name: str | None = None, node_name: str | None = None) -> list[ScriptExecution]:
        return await self.store.active(server_name, node_name)

    async def delete(self, execution_id: str) -> None:
        """Delete an execution record.

        Raises:
            ExecutionNotFoundError: If no such record exists
        """
        if not await self.store.delete(execution_id):
            raise ExecutionNotFoundError(execution_id)

    async def shutdown(self) -> None:
        """Cancel outstanding background runs."""
        tasks = list(self._runs.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
