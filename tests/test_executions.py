"""Tests for the background script execution service."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from pvedash.api.exceptions import ExecutionNotFoundError, ExecutionStateError, ScriptNotAllowedError
from pvedash.api.mock import MockProxmoxClient
from pvedash.api.registry import ClientRegistry
from pvedash.models.config import ExecutorConfig, ServerProfile
from pvedash.models.execution import ScriptExecution
from pvedash.models.task import TaskStatus
from pvedash.services.executions import (
    SCRIPT_CATALOG,
    InMemoryExecutionStore,
    ScriptExecutionService,
    get_script,
)

DEMO = ServerProfile(name="demo", hostname="demo")


class RunningBackend(MockProxmoxClient):
    """Mock backend whose tasks never finish on their own."""

    def __init__(self, profile: ServerProfile) -> None:
        super().__init__(profile)
        self.stop_calls = 0

    async def get_task_status(self, node, upid):
        return TaskStatus(status="running", upid=upid, node=node)

    async def stop_task(self, node, upid):
        self.stop_calls += 1
        return ""


@pytest.fixture
def service():
    return ScriptExecutionService(ClientRegistry(), config=ExecutorConfig(poll_interval=0.01))


@pytest.fixture
def running():
    backends = []

    def factory(profile, force_mock=False):
        backends.append(RunningBackend(profile))
        return backends[-1]

    svc = ScriptExecutionService(ClientRegistry(factory=factory), config=ExecutorConfig(poll_interval=0.01))
    svc.backends = backends
    return svc


def test_catalog_lookup():
    assert get_script("disk_usage").command.startswith("df -h")
    assert SCRIPT_CATALOG["docker"].privileged
    assert not SCRIPT_CATALOG["memory_info"].privileged


async def test_run_to_completion(service):
    execution = await service.start(DEMO, "disk_usage", "pve-node1", created_by="alice")

    assert execution.status == "pending"
    assert execution.metadata == {"timeout": 300}

    done = await service.wait(execution.id)

    assert done.status == "completed"
    assert done.exit_code == 0
    assert done.upid.startswith("UPID:pve-node1:")
    assert "Running on node: pve-node1" in done.output.split("\n")
    assert done.metadata["state"] == "completed"
    assert done.metadata["timeout"] == 300
    assert done.created_by == "alice"
    assert done.end_time is not None


async def test_unknown_script_is_rejected(service):
    with pytest.raises(ScriptNotAllowedError) as exc_info:
        await service.start(DEMO, "rm_rf", "pve-node1")

    assert "rm_rf" in str(exc_info.value)
    assert await service.history() == []


async def test_cancel_running_execution(running):
    execution = await running.start(DEMO, "system_update", "pve-node1", timeout=60)
    await asyncio.sleep(0.05)

    cancelled = await running.cancel(execution.id)
    assert cancelled.status == "cancelled"
    assert cancelled.duration is not None

    final = await asyncio.wait_for(running.wait(execution.id), timeout=5)
    assert final.status == "cancelled"
    assert running.backends[0].stop_calls == 1


async def test_cancel_pending_execution_never_submits(service):
    execution = await service.start(DEMO, "system_update", "pve-node1")

    cancelled = await service.cancel(execution.id)
    final = await asyncio.wait_for(service.wait(execution.id), timeout=5)

    backend = await service.registry.get(DEMO)
    assert cancelled.status == "cancelled"
    assert final.status == "cancelled"
    assert final.upid is None
    assert await backend.get_node_tasks("pve-node1") == []


async def test_record_cancelled_in_store_is_not_revived(running):
    execution = await running.start(DEMO, "disk_usage", "pve-node1")
    await running.store.update(execution.id, status="cancelled")

    final = await asyncio.wait_for(running.wait(execution.id), timeout=5)

    assert final.status == "cancelled"
    assert running.backends[0].stop_calls == 0
    assert await running.backends[0].get_node_tasks("pve-node1") == []


async def test_cancel_finished_execution_is_rejected(service):
    execution = await service.start(DEMO, "memory_info", "pve-node1")
    await service.wait(execution.id)

    with pytest.raises(ExecutionStateError):
        await service.cancel(execution.id)


async def test_missing_records(service):
    with pytest.raises(ExecutionNotFoundError):
        await service.get("nope")
    with pytest.raises(ExecutionNotFoundError):
        await service.cancel("nope")
    with pytest.raises(ExecutionNotFoundError):
        await service.delete("nope")


async def test_delete_record(service):
    execution = await service.start(DEMO, "disk_usage", "pve-node2")
    await service.wait(execution.id)

    await service.delete(execution.id)

    with pytest.raises(ExecutionNotFoundError):
        await service.get(execution.id)


async def test_active_and_shutdown(running):
    first = await running.start(DEMO, "disk_usage", "pve-node1")
    await running.start(DEMO, "disk_usage", "pve-node2")
    await asyncio.sleep(0.05)

    active = await running.active(node_name="pve-node1")
    assert [e.id for e in active] == [first.id]
    assert len(await running.active()) == 2

    await running.shutdown()

    assert await running.active() == []
    assert {e.status for e in await running.history()} == {"cancelled"}


def _record(script_id: str, node: str, status: str, minutes_ago: int) -> ScriptExecution:
    created = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    return ScriptExecution(
        script_id=script_id,
        script_name=script_id,
        command="true",
        server_name="demo",
        node_name=node,
        status=status,
        created_at=created,
    )


async def test_store_filters_and_orders_newest_first():
    store = InMemoryExecutionStore()
    old = await store.create(_record("disk_usage", "pve-node1", "completed", 30))
    mid = await store.create(_record("memory_info", "pve-node2", "failed", 20))
    new = await store.create(_record("disk_usage", "pve-node1", "running", 10))

    assert [e.id for e in await store.find()] == [new.id, mid.id, old.id]
    assert [e.id for e in await store.find(script_id="disk_usage")] == [new.id, old.id]
    assert [e.id for e in await store.find(status="failed")] == [mid.id]
    assert [e.id for e in await store.find(node_name="pve-node1", limit=1, offset=1)] == [old.id]
    assert [e.id for e in await store.active()] == [new.id]


async def test_store_update_touches_timestamp():
    store = InMemoryExecutionStore()
    record = await store.create(_record("disk_usage", "pve-node1", "pending", 5))

    updated = await store.update(record.id, status="running")

    assert updated.status == "running"
    assert updated.updated_at >= record.updated_at
    assert await store.update("missing", status="running") is None
    assert await store.delete(record.id)
    assert not await store.delete(record.id)
