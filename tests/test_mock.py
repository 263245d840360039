"""Tests for the synthetic backend and placeholder host detection."""

import httpx
import pytest

from pvedash.api.client import ProxmoxClient
from pvedash.api.exceptions import ResourceNotFoundError
from pvedash.api.mock import MOCK_NODES, MockProxmoxClient, is_mock_host
from pvedash.api.registry import open_client
from pvedash.models.config import ServerProfile


@pytest.mark.parametrize(
    "hostname",
    [None, "", "localhost", "127.0.0.1", "127.0.1.1", "::1", "[::1]", "demo", "mock", "example.com",
     "pve.example.com", "lab.test", "node1.invalid", "Example.ORG."],
)
def test_placeholder_hosts(hostname):
    assert is_mock_host(hostname)


@pytest.mark.parametrize("hostname", ["pve.lab.local", "192.168.1.10", "myexample.com", "proxmox", "10.0.0.1"])
def test_real_hosts(hostname):
    assert not is_mock_host(hostname)


@pytest.fixture
def recorder():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(500)

    handler.requests = requests
    return handler


async def test_mock_backend_makes_no_network_calls(recorder):
    profile = ServerProfile(name="demo", hostname="demo.example.com", password="x")
    backend = open_client(profile, transport=httpx.MockTransport(recorder))

    assert isinstance(backend, MockProxmoxClient)
    async with backend:
        await backend.authenticate()
        await backend.get_version()
        await backend.get_nodes()
        await backend.get_all_vms()
        await backend.get_all_containers()
        await backend.get_storage()
        await backend.get_cluster_resource_metrics()
        await backend.get_cluster_health()
        await backend.test_connection()

    assert recorder.requests == []


def test_force_mock_overrides_real_hostname(recorder):
    profile = ServerProfile(name="lab", hostname="pve.lab.local", password="secret")

    assert isinstance(open_client(profile, force_mock=True), MockProxmoxClient)
    assert isinstance(open_client(profile, transport=httpx.MockTransport(recorder)), ProxmoxClient)


async def test_mock_data_is_deterministic():
    first = MockProxmoxClient(ServerProfile(name="a", hostname="mock"))
    second = MockProxmoxClient(ServerProfile(name="b", hostname="demo"))

    assert await first.get_nodes() == await second.get_nodes()
    assert await first.get_all_vms() == await second.get_all_vms()
    assert await first.get_cluster_resource_metrics() == await second.get_cluster_resource_metrics()
    assert await first.get_cluster_health() == await second.get_cluster_health()
    assert [n.node for n in await first.get_nodes()] == [n["node"] for n in MOCK_NODES]


async def test_mock_metrics_values():
    backend = MockProxmoxClient(ServerProfile(name="demo", hostname="demo"))

    metrics = await backend.get_cluster_resource_metrics()
    health = await backend.get_cluster_health()
    version = await backend.get_version()

    assert metrics.nodes.total == 2
    assert metrics.memory.used == 30
    assert metrics.memory.total == 64
    assert metrics.storage.total == 2000
    assert metrics.storage.percentage == 22.5
    assert health.status == "healthy"
    assert health.quorum is True
    assert version.version == "8.0.4"


async def test_stopped_mock_vm_reports_no_usage():
    backend = MockProxmoxClient(ServerProfile(name="demo", hostname="demo"))

    vms = {vm.vmid: vm for vm in await backend.get_all_vms()}

    assert vms[100].running
    assert vms[101].cpu is None
    assert vms[101].mem is None


async def test_mock_power_action_returns_task():
    backend = MockProxmoxClient(ServerProfile(name="demo", hostname="demo"))

    upid = await backend.start_vm("pve-node1", 101)
    status = await backend.wait_for_task("pve-node1", upid)

    assert upid.startswith("UPID:pve-node1:")
    assert status.succeeded
    assert [t.upid for t in await backend.get_node_tasks("pve-node1")] == [upid]


async def test_mock_unknown_guest():
    backend = MockProxmoxClient(ServerProfile(name="demo", hostname="demo"))

    with pytest.raises(ResourceNotFoundError):
        await backend.get_vm_status("pve-node1", 999)
    with pytest.raises(ResourceNotFoundError):
        await backend.stop_container("pve-node2", 200)


async def test_mock_node_metrics_unknown_node():
    backend = MockProxmoxClient(ServerProfile(name="demo", hostname="demo"))

    with pytest.raises(ResourceNotFoundError):
        await backend.get_node_resource_metrics("pve-node9")
