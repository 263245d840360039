"""Synthetic backend used when no real cluster is configured."""

import ipaddress
import logging
import time
from typing import Any

from ..models.config import ServerProfile
from ..models.guest import Container, GuestStatus, VirtualMachine
from ..models.node import Node
from ..models.session import AuthSession
from ..models.storage import ClusterStatusEntry, StoragePool, VersionInfo
from ..models.task import TaskHandle, TaskLogLine, TaskStatus
from .base import ProxmoxBackend
from .exceptions import ResourceNotFoundError

logger = logging.getLogger(__name__)

GIB = 1024**3

MOCK_HOSTNAMES = frozenset(
    {"", "localhost", "127.0.0.1", "::1", "0.0.0.0", "demo", "mock", "example",
     "example.com", "example.org", "example.net"}
)
MOCK_SUFFIXES = (
    ".example", ".test", ".invalid", ".localhost", ".example.com", ".example.org", ".example.net"
)

MOCK_VERSION: dict[str, Any] = {"release": "8.0", "version": "8.0.4", "repoid": "e4fd3260"}

MOCK_NODES: list[dict[str, Any]] = [
    {
        "node": "pve-node1",
        "status": "online",
        "uptime": 2592000,
        "cpu": 0.255,
        "maxcpu": 4,
        "mem": 16 * GIB,
        "maxmem": 32 * GIB,
        "disk": 200 * GIB,
        "maxdisk": 1000 * GIB,
        "level": "",
        "type": "node",
    },
    {
        "node": "pve-node2",
        "status": "online",
        "uptime": 1814400,
        "cpu": 0.158,
        "maxcpu": 4,
        "mem": 14 * GIB,
        "maxmem": 32 * GIB,
        "disk": 250 * GIB,
        "maxdisk": 1000 * GIB,
        "level": "",
        "type": "node",
    },
]

MOCK_VMS: list[dict[str, Any]] = [
    {
        "vmid": 100,
        "name": "web-server",
        "status": "running",
        "node": "pve-node1",
        "type": "qemu",
        "cpu": 0.25,
        "maxcpu": 2,
        "mem": 2 * GIB,
        "maxmem": 4 * GIB,
        "uptime": 86400,
        "netin": 524288000,
        "netout": 262144000,
        "template": 0,
    },
    {
        "vmid": 101,
        "name": "database-server",
        "status": "stopped",
        "node": "pve-node1",
        "type": "qemu",
        "maxcpu": 4,
        "maxmem": 8 * GIB,
        "template": 0,
    },
]

MOCK_CONTAINERS: list[dict[str, Any]] = [
    {
        "vmid": 200,
        "name": "app-container",
        "status": "running",
        "node": "pve-node1",
        "type": "lxc",
        "cpu": 0.15,
        "maxcpu": 2,
        "mem": 1 * GIB,
        "maxmem": 2 * GIB,
        "uptime": 43200,
        "netin": 104857600,
        "netout": 52428800,
        "template": 0,
    },
    {
        "vmid": 201,
        "name": "nginx-proxy",
        "status": "running",
        "node": "pve-node1",
        "type": "lxc",
        "cpu": 0.05,
        "maxcpu": 1,
        "mem": 512 * 1024**2,
        "maxmem": 1 * GIB,
        "uptime": 86400,
        "netin": 629145600,
        "netout": 524288000,
        "template": 0,
    },
]

MOCK_STORAGE: list[dict[str, Any]] = [
    {
        "storage": "local",
        "type": "dir",
        "node": "pve-node1",
        "content": "backup,iso,vztmpl",
        "shared": False,
        "enabled": True,
        "used": 200 * GIB,
        "avail": 800 * GIB,
        "total": 1000 * GIB,
        "used_fraction": 0.2,
    },
    {
        "storage": "local-lvm",
        "type": "lvm",
        "node": "pve-node1",
        "content": "images,rootdir",
        "shared": False,
        "enabled": True,
        "used": 250 * GIB,
        "avail": 750 * GIB,
        "total": 1000 * GIB,
        "used_fraction": 0.25,
    },
]

MOCK_CLUSTER_STATUS: list[dict[str, Any]] = [
    {"type": "cluster", "name": "mock-cluster", "id": "cluster", "quorate": 1, "nodes": 2, "version": 2},
    {"type": "node", "name": "pve-node1", "id": "node/pve-node1", "online": 1, "nodeid": 1},
    {"type": "node", "name": "pve-node2", "id": "node/pve-node2", "online": 1, "nodeid": 2},
]


def is_mock_host(hostname: str | None) -> bool:
    """Check whether a hostname is a placeholder rather than a real server.

    Args:
        hostname: Configured hostname

    Returns:
        True for missing, loopback and reserved example names
    """
    if hostname is None:
        return True
    host = hostname.strip().lower().rstrip(".")
    if host in MOCK_HOSTNAMES:
        return True
    if host.endswith(MOCK_SUFFIXES):
        return True
    try:
        return ipaddress.ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def mock_output(command: str, node: str) -> list[str]:
    return [
        "Starting script execution...",
        f"Executing command: {command}",
        f"Running on node: {node}",
        "Processing...",
        "Script execution completed",
    ]


class MockProxmoxClient(ProxmoxBackend):
    """Backend returning fixed sample data and making no network calls.

    Submitted commands finish immediately with ``OK`` and replay a fixed
    log, so the task executor works unchanged against this backend.
    """

    mock = True

    def __init__(self, profile: ServerProfile) -> None:
        super().__init__(profile)
        self._session: AuthSession | None = None
        self._tasks: dict[str, list[str]] = {}
        self._task_seq = 0
        logger.info("Mock mode enabled for server %s", profile.hostname or "<unset>")

    async def authenticate(self) -> AuthSession:
        if self._session is None:
            now = time.time()
            self._session = AuthSession(
                ticket="mock-ticket",
                csrf_token="mock-csrf-token",
                username=self.profile.userid,
                issued_at=now,
                expires_at=now + 3600,
            )
        return self._session

    def clear_auth(self) -> None:
        self._session = None

    async def aclose(self) -> None:
        return None

    async def get_version(self) -> VersionInfo:
        return VersionInfo.model_validate(MOCK_VERSION)

    async def get_nodes(self) -> list[Node]:
        return [Node.model_validate(n) for n in MOCK_NODES]

    async def get_cluster_status(self) -> list[ClusterStatusEntry]:
        return [ClusterStatusEntry.model_validate(e) for e in MOCK_CLUSTER_STATUS]

    async def get_all_vms(self) -> list[VirtualMachine]:
        return [VirtualMachine.model_validate(vm) for vm in MOCK_VMS]

    async def get_all_containers(self) -> list[Container]:
        return [Container.model_validate(ct) for ct in MOCK_CONTAINERS]

    async def get_node_vms(self, node: str) -> list[VirtualMachine]:
        return [vm for vm in await self.get_all_vms() if vm.node == node]

    async def get_node_containers(self, node: str) -> list[Container]:
        return [ct for ct in await self.get_all_containers() if ct.node == node]

    async def get_storage(self) -> list[StoragePool]:
        return [StoragePool.model_validate(s) for s in MOCK_STORAGE]

    def _find_guest(self, source: list[dict[str, Any]], node: str, vmid: int, label: str) -> dict[str, Any]:
        for guest in source:
            if guest["vmid"] == vmid and guest["node"] == node:
                return guest
        raise ResourceNotFoundError(label, str(vmid))

    async def get_vm_status(self, node: str, vmid: int) -> GuestStatus:
        vm = self._find_guest(MOCK_VMS, node, vmid, "vm")
        return GuestStatus.model_validate({**vm, "cpus": vm.get("maxcpu"), "qmpstatus": vm["status"]})

    async def get_vm_config(self, node: str, vmid: int) -> dict[str, Any]:
        vm = self._find_guest(MOCK_VMS, node, vmid, "vm")
        return {"name": vm["name"], "cores": vm["maxcpu"], "memory": vm["maxmem"] // 1024**2, "ostype": "l26"}

    async def get_container_status(self, node: str, vmid: int) -> GuestStatus:
        ct = self._find_guest(MOCK_CONTAINERS, node, vmid, "container")
        return GuestStatus.model_validate({**ct, "cpus": ct.get("maxcpu")})

    async def get_container_config(self, node: str, vmid: int) -> dict[str, Any]:
        ct = self._find_guest(MOCK_CONTAINERS, node, vmid, "container")
        return {"hostname": ct["name"], "cores": ct["maxcpu"], "memory": ct["maxmem"] // 1024**2, "ostype": "debian"}

    def _next_upid(self, node: str, task_type: str, task_id: str = "") -> str:
        self._task_seq += 1
        return f"UPID:{node}:{self._task_seq:08X}:00000000:00000000:{task_type}:{task_id}:{self.profile.userid}:"

    async def guest_power_action(self, kind: str, node: str, vmid: int, action: str) -> TaskHandle:
        source = MOCK_VMS if kind == "qemu" else MOCK_CONTAINERS
        self._find_guest(source, node, vmid, "vm" if kind == "qemu" else "container")
        upid = self._next_upid(node, f"{kind}{action}", str(vmid))
        self._tasks[upid] = [f"{action} {kind} {vmid}", "TASK OK"]
        return upid

    async def execute_command(
        self, node: str, command: str, timeout: float = 300, username: str = "root"
    ) -> TaskHandle:
        upid = self._next_upid(node, "execute")
        self._tasks[upid] = mock_output(command, node)
        return upid

    async def get_task_status(self, node: str, upid: TaskHandle) -> TaskStatus:
        if upid not in self._tasks:
            raise ResourceNotFoundError("task", upid)
        return TaskStatus(status="stopped", exitstatus="OK", upid=upid, node=node, user=self.profile.userid)

    async def get_task_log(
        self, node: str, upid: TaskHandle, start: int | None = None, limit: int | None = None
    ) -> list[TaskLogLine]:
        if upid not in self._tasks:
            raise ResourceNotFoundError("task", upid)
        lines = self._tasks[upid]
        first = start or 0
        last = len(lines) if limit is None else first + limit
        return [TaskLogLine(n=i + 1, t=lines[i]) for i in range(first, min(last, len(lines)))]

    async def stop_task(self, node: str, upid: TaskHandle) -> str:
        return ""

    async def get_node_tasks(
        self,
        node: str,
        running: bool | None = None,
        start: int | None = None,
        limit: int | None = None,
        task_type: str | None = None,
        user: str | None = None,
    ) -> list[TaskStatus]:
        if running:
            return []
        tasks = [
            TaskStatus(status="stopped", exitstatus="OK", upid=upid, node=node, user=self.profile.userid)
            for upid in self._tasks
            if upid.startswith(f"UPID:{node}:")
        ]
        first = start or 0
        return tasks[first : first + limit] if limit is not None else tasks[first:]
