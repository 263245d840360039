"""Proxmox VE API client."""

import logging
from typing import Any, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..models.config import ServerProfile
from ..models.guest import Container, GuestStatus, VirtualMachine
from ..models.node import Node
from ..models.session import AuthSession
from ..models.storage import ClusterStatusEntry, StoragePool, VersionInfo
from ..models.task import TaskHandle, TaskLogLine, TaskStatus
from .auth import DEFAULT_TICKET_LIFETIME, SessionManager
from .base import ProxmoxBackend
from .exceptions import InvalidResponseError, ResourceNotFoundError
from .pipeline import RequestPipeline
from .transport import Transport

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

POWER_ACTIONS = ("start", "stop", "shutdown", "reboot")


def _parse_list(model: type[ModelT], data: Any, what: str) -> list[ModelT]:
    if not isinstance(data, list):
        raise InvalidResponseError(f"Invalid {what} response format")
    try:
        return [model.model_validate(item) for item in data]
    except ValidationError as e:
        raise InvalidResponseError(f"Invalid {what} response format: {e.error_count()} field errors")


def _parse_one(model: type[ModelT], data: Any, what: str) -> ModelT:
    if not isinstance(data, dict):
        raise InvalidResponseError(f"Invalid {what} response format")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(f"Invalid {what} response format: {e.error_count()} field errors")


class ProxmoxClient(ProxmoxBackend):
    """Async client for Proxmox VE API."""

    def __init__(
        self,
        profile: ServerProfile,
        transport: httpx.AsyncBaseTransport | None = None,
        ticket_lifetime: int = DEFAULT_TICKET_LIFETIME,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize Proxmox client.

        Args:
            profile: Server profile
            transport: Optional httpx transport (used by tests)
            ticket_lifetime: Lifetime of a Proxmox ticket in seconds
            clock: Time source for ticket expiry (epoch seconds)
        """
        super().__init__(profile)
        self.transport = Transport(profile, transport=transport)
        self.sessions = SessionManager(
            profile, self.transport, ticket_lifetime=ticket_lifetime, clock=clock
        )
        self.api = RequestPipeline(self.transport, self.sessions)

    async def authenticate(self) -> AuthSession:
        return await self.sessions.ensure_authenticated()

    def clear_auth(self) -> None:
        self.sessions.invalidate()

    async def aclose(self) -> None:
        """Close the client connection."""
        await self.transport.aclose()

    async def get_version(self) -> VersionInfo:
        """Get Proxmox VE version info."""
        return _parse_one(VersionInfo, await self.api.get("/version"), "version")

    async def get_nodes(self) -> list[Node]:
        """Get list of cluster nodes."""
        return _parse_list(Node, await self.api.get("/nodes"), "nodes")

    async def get_cluster_status(self) -> list[ClusterStatusEntry]:
        """Get cluster status entries.

        Returns:
            Status entries, empty on a standalone node without cluster API
        """
        try:
            data = await self.api.get("/cluster/status")
        except ResourceNotFoundError:
            return []
        return _parse_list(ClusterStatusEntry, data or [], "cluster status")

    async def get_cluster_resources(self, resource_type: str | None = None) -> list[dict[str, Any]]:
        """Get raw cluster resources.

        Args:
            resource_type: Filter by type (vm, storage, node)

        Returns:
            List of resources
        """
        params = {"type": resource_type} if resource_type else None
        data = await self.api.get("/cluster/resources", params=params)
        if not isinstance(data, list):
            raise InvalidResponseError("Invalid cluster resources response format")
        return data

    # VM (QEMU) and container (LXC) methods

    async def get_all_vms(self) -> list[VirtualMachine]:
        """Get all VMs across all nodes."""
        resources = await self.get_cluster_resources("vm")
        return _parse_list(
            VirtualMachine, [r for r in resources if r.get("type") == "qemu"], "VMs"
        )

    async def get_all_containers(self) -> list[Container]:
        """Get all containers across all nodes."""
        resources = await self.get_cluster_resources("vm")
        return _parse_list(
            Container, [r for r in resources if r.get("type") == "lxc"], "containers"
        )

    async def get_node_vms(self, node: str) -> list[VirtualMachine]:
        """Get VMs for a specific node."""
        data = await self.api.get(f"/nodes/{node}/qemu")
        vms = _parse_list(VirtualMachine, data, "node VMs")
        return [vm.model_copy(update={"node": vm.node or node, "type": "qemu"}) for vm in vms]

    async def get_node_containers(self, node: str) -> list[Container]:
        """Get containers for a specific node."""
        data = await self.api.get(f"/nodes/{node}/lxc")
        containers = _parse_list(Container, data, "node containers")
        return [ct.model_copy(update={"node": ct.node or node, "type": "lxc"}) for ct in containers]

    async def get_storage(self) -> list[StoragePool]:
        """Get storage information for every node."""
        resources = await self.get_cluster_resources("storage")
        return _parse_list(StoragePool, resources, "storage")

    async def get_vm_status(self, node: str, vmid: int) -> GuestStatus:
        data = await self.api.get(f"/nodes/{node}/qemu/{vmid}/status/current")
        return _parse_one(GuestStatus, data, "VM status")

    async def get_vm_config(self, node: str, vmid: int) -> dict[str, Any]:
        return await self.api.get(f"/nodes/{node}/qemu/{vmid}/config") or {}

    async def get_container_status(self, node: str, vmid: int) -> GuestStatus:
        data = await self.api.get(f"/nodes/{node}/lxc/{vmid}/status/current")
        return _parse_one(GuestStatus, data, "container status")

    async def get_container_config(self, node: str, vmid: int) -> dict[str, Any]:
        return await self.api.get(f"/nodes/{node}/lxc/{vmid}/config") or {}

    async def guest_power_action(self, kind: str, node: str, vmid: int, action: str) -> TaskHandle:
        if kind not in ("qemu", "lxc") or action not in POWER_ACTIONS:
            raise ValueError(f"Unsupported power action {kind}/{action}")
        upid = await self.api.post(f"/nodes/{node}/{kind}/{vmid}/status/{action}")
        logger.info("Submitted %s for %s %s on %s", action, kind, vmid, node)
        return upid or ""

    # Task methods

    async def execute_command(
        self, node: str, command: str, timeout: float = 300, username: str = "root"
    ) -> TaskHandle:
        """Start a command on a node.

        Args:
            node: Node name
            command: Command line to run
            timeout: Remote command timeout in seconds
            username: User the command runs as

        Returns:
            Task UPID

        Raises:
            InvalidResponseError: If no task handle is returned
        """
        upid = await self.api.post(
            f"/nodes/{node}/execute",
            data={"commands": command, "cmd-timeout": int(timeout), "username": username},
        )
        if not upid or not isinstance(upid, str):
            raise InvalidResponseError("Execute request returned no task handle")
        logger.info("Submitted command on %s as task %s", node, upid)
        return upid

    async def get_task_status(self, node: str, upid: TaskHandle) -> TaskStatus:
        """Get status of a task.

        Args:
            node: Node name
            upid: Task UPID

        Returns:
            Task status
        """
        data = await self.api.get(f"/nodes/{node}/tasks/{upid}/status")
        return _parse_one(TaskStatus, data, "task status")

    async def get_task_log(
        self, node: str, upid: TaskHandle, start: int | None = None, limit: int | None = None
    ) -> list[TaskLogLine]:
        """Get task log lines.

        Args:
            node: Node name
            upid: Task UPID
            start: Number of lines already read
            limit: Maximum lines to return

        Returns:
            Log lines in the order the task wrote them
        """
        params: dict[str, Any] = {}
        if start is not None:
            params["start"] = start
        if limit is not None:
            params["limit"] = limit
        data = await self.api.get(f"/nodes/{node}/tasks/{upid}/log", params=params or None)
        return _parse_list(TaskLogLine, data or [], "task log")

    async def stop_task(self, node: str, upid: TaskHandle) -> str:
        """Stop a running task.

        Args:
            node: Node name
            upid: Task UPID
        """
        return await self.api.delete(f"/nodes/{node}/tasks/{upid}") or ""

    async def get_node_tasks(
        self,
        node: str,
        running: bool | None = None,
        start: int | None = None,
        limit: int | None = None,
        task_type: str | None = None,
        user: str | None = None,
    ) -> list[TaskStatus]:
        """List tasks of a node.

        Args:
            node: Node name
            running: Only running (True) or finished (False) tasks
            start: Offset into the list
            limit: Maximum number of tasks
            task_type: Filter by task type
            user: Filter by user

        Returns:
            Task list
        """
        params: dict[str, Any] = {}
        if running is not None:
            params["running"] = 1 if running else 0
        if start is not None:
            params["start"] = start
        if limit is not None:
            params["limit"] = limit
        if task_type:
            params["typefilter"] = task_type
        if user:
            params["userfilter"] = user
        data = await self.api.get(f"/nodes/{node}/tasks", params=params or None)
        return _parse_list(TaskStatus, data or [], "node tasks")
