"""Tests for the resource client against the fake server."""

import httpx
import pytest

from pvedash.api.client import ProxmoxClient
from pvedash.api.exceptions import ResourceNotFoundError

GIB = 1024**3

RESOURCES = {
    "vm": [
        {"id": "qemu/100", "type": "qemu", "vmid": 100, "name": "web", "node": "pve1", "status": "running",
         "cpu": 0.1, "maxcpu": 2, "mem": GIB, "maxmem": 2 * GIB, "uptime": 60, "netin": 1024**2,
         "netout": 2 * 1024**2, "template": 0},
        {"id": "qemu/101", "type": "qemu", "vmid": 101, "name": "db", "node": "pve2", "status": "stopped",
         "maxcpu": 4, "maxmem": 4 * GIB, "template": 1},
        {"id": "lxc/200", "type": "lxc", "vmid": 200, "name": "proxy", "node": "pve1", "status": "running",
         "cpu": 0.02, "maxcpu": 1, "mem": 256 * 1024**2, "maxmem": GIB, "netin": 3 * 1024**2, "netout": 0},
    ],
    "storage": [
        {"id": "storage/pve1/local", "type": "storage", "storage": "local", "node": "pve1", "plugintype": "dir",
         "disk": 10 * GIB, "maxdisk": 100 * GIB, "status": "available"},
        {"id": "storage/pve2/local", "type": "storage", "storage": "local", "node": "pve2", "plugintype": "dir",
         "disk": 30 * GIB, "maxdisk": 100 * GIB, "status": "available"},
    ],
}

NODES = [
    {"node": "pve1", "status": "online", "cpu": 0.5, "maxcpu": 4, "mem": 8 * GIB, "maxmem": 16 * GIB, "uptime": 100},
    {"node": "pve2", "status": "offline"},
]


def _resources(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"data": RESOURCES.get(request.url.params.get("type"), [])})


@pytest.fixture
def cluster(fake):
    fake.add("GET", "/nodes", NODES)
    fake.add("GET", "/cluster/resources", _resources)
    fake.add("GET", "/nodes/pve1/qemu", [{"vmid": 100, "name": "web", "status": "running", "netin": 1024**2,
                                         "netout": 2 * 1024**2}])
    fake.add("GET", "/nodes/pve1/lxc", [{"vmid": 200, "name": "proxy", "status": "running", "netin": 3 * 1024**2}])
    fake.add("GET", "/cluster/status", [
        {"type": "cluster", "name": "lab", "quorate": 1, "nodes": 2},
        {"type": "node", "name": "pve1", "online": 1},
        {"type": "node", "name": "pve2", "online": 0},
    ])
    return fake


async def test_vm_and_container_listing_split_by_type(client, cluster):
    vms = await client.get_all_vms()
    containers = await client.get_all_containers()

    assert [vm.vmid for vm in vms] == [100, 101]
    assert [ct.vmid for ct in containers] == [200]
    assert vms[1].cpu is None
    assert vms[1].template is True
    assert cluster.calls("GET", "/cluster/resources")[0].url.params["type"] == "vm"


async def test_node_listing_fills_in_node_and_type(client, cluster):
    vms = await client.get_node_vms("pve1")

    assert vms[0].node == "pve1"
    assert vms[0].type == "qemu"


async def test_storage_falls_back_to_disk_fields(client, cluster):
    pools = await client.get_storage()

    assert [p.capacity for p in pools] == [100 * GIB, 100 * GIB]
    assert [p.usage for p in pools] == [10 * GIB, 30 * GIB]


async def test_power_actions_post_to_status_endpoint(client, fake):
    fake.add("POST", "/nodes/pve1/lxc/200/status/shutdown", "UPID:pve1:shutdown")

    upid = await client.shutdown_container("pve1", 200)

    assert upid == "UPID:pve1:shutdown"


async def test_unsupported_power_action_is_rejected(client, fake):
    with pytest.raises(ValueError):
        await client.guest_power_action("qemu", "pve1", 100, "hibernate")
    assert fake.requests == []


async def test_task_log_and_stop_requests(client, fake):
    upid = "UPID:pve1:00001234:00000000:00000000:qmstart:100:root@pam:"
    fake.add("GET", f"/nodes/pve1/tasks/{upid}/log", [{"n": 5, "t": "line"}])
    fake.add("DELETE", f"/nodes/pve1/tasks/{upid}", "")

    lines = await client.get_task_log("pve1", upid, start=4, limit=50)
    await client.stop_task("pve1", upid)

    log_request = fake.calls("GET", f"/nodes/pve1/tasks/{upid}/log")[0]
    assert log_request.url.params["start"] == "4"
    assert log_request.url.params["limit"] == "50"
    assert lines[0].t == "line"
    assert len(fake.calls("DELETE", f"/nodes/pve1/tasks/{upid}")) == 1


async def test_node_task_filters(client, fake):
    fake.add("GET", "/nodes/pve1/tasks", [{"status": "stopped", "exitstatus": "OK", "upid": "UPID:pve1:1"}])

    tasks = await client.get_node_tasks("pve1", running=False, limit=10, task_type="qmstart", user="root@pam")

    params = fake.calls("GET", "/nodes/pve1/tasks")[0].url.params
    assert params["running"] == "0"
    assert params["typefilter"] == "qmstart"
    assert params["userfilter"] == "root@pam"
    assert tasks[0].succeeded


async def test_cluster_metrics(client, cluster):
    metrics = await client.get_cluster_resource_metrics()

    assert metrics.cpu.total == 4
    assert metrics.cpu.used == 2
    assert metrics.memory.percentage == 50
    assert metrics.storage.used == 40
    assert metrics.storage.total == 200
    assert metrics.storage.percentage == 20
    assert metrics.network.inbound == 4
    assert metrics.network.outbound == 2
    assert metrics.nodes.online == 1
    assert metrics.nodes.offline == 1


async def test_node_metrics(client, cluster):
    metrics = await client.get_node_resource_metrics("pve1")

    assert metrics.status == "online"
    assert metrics.cpu.percentage == 50
    assert metrics.memory.used == 8
    assert metrics.storage.total == 100
    assert metrics.network.inbound == 4


async def test_unknown_node_metrics(client, cluster):
    with pytest.raises(ResourceNotFoundError):
        await client.get_node_resource_metrics("pve9")


async def test_cluster_health(client, cluster):
    health = await client.get_cluster_health()

    assert health.status == "warning"
    assert health.quorum is True
    assert health.summary.online_nodes == 1


async def test_connection_test_reports_version(client, fake):
    fake.add("GET", "/version", {"version": "8.1.4", "release": "8.1", "repoid": "ec5affc9"})

    result = await client.test_connection()

    assert result.success
    assert result.version == "8.1.4"


async def test_connection_test_never_raises(profile, fake):
    client = ProxmoxClient(profile.model_copy(update={"password": "wrong"}), transport=httpx.MockTransport(fake))

    result = await client.test_connection()

    assert not result.success
    assert result.kind == "authentication_failed"
    await client.aclose()


async def test_client_closes_transport(profile, fake):
    fake.add("GET", "/nodes", [])
    async with ProxmoxClient(profile, transport=httpx.MockTransport(fake)) as client:
        await client.get_nodes()
        assert not client.transport.closed
    assert client.transport.closed
