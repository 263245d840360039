"""Backend interface shared by the real and the mock Proxmox clients."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from ..models.config import ServerProfile
from ..models.guest import Container, GuestStatus, VirtualMachine
from ..models.metrics import ClusterHealth, ClusterMetrics, ConnectionTestResult, NodeMetrics
from ..models.node import Node
from ..models.session import AuthSession
from ..models.storage import ClusterStatusEntry, StoragePool, VersionInfo
from ..models.task import TaskHandle, TaskLogLine, TaskStatus
from . import metrics
from .exceptions import ApiError, ResourceNotFoundError, TimeoutError

logger = logging.getLogger(__name__)


class ProxmoxBackend(ABC):
    """Typed operations over one Proxmox VE server.

    Implemented by ``ProxmoxClient`` (network) and ``MockProxmoxClient``
    (synthetic data). The aggregate operations below are written once in
    terms of the inventory calls.
    """

    mock: bool = False

    def __init__(self, profile: ServerProfile) -> None:
        self.profile = profile

    async def __aenter__(self) -> "ProxmoxBackend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    # Session

    @abstractmethod
    async def authenticate(self) -> AuthSession:
        """Ensure a valid ticket is held and return it."""

    @abstractmethod
    def clear_auth(self) -> None:
        """Forget the held ticket (logout)."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources."""

    # Inventory

    @abstractmethod
    async def get_version(self) -> VersionInfo: ...

    @abstractmethod
    async def get_nodes(self) -> list[Node]: ...

    @abstractmethod
    async def get_cluster_status(self) -> list[ClusterStatusEntry]: ...

    @abstractmethod
    async def get_all_vms(self) -> list[VirtualMachine]: ...

    @abstractmethod
    async def get_all_containers(self) -> list[Container]: ...

    @abstractmethod
    async def get_node_vms(self, node: str) -> list[VirtualMachine]: ...

    @abstractmethod
    async def get_node_containers(self, node: str) -> list[Container]: ...

    @abstractmethod
    async def get_storage(self) -> list[StoragePool]: ...

    @abstractmethod
    async def get_vm_status(self, node: str, vmid: int) -> GuestStatus: ...

    @abstractmethod
    async def get_vm_config(self, node: str, vmid: int) -> dict[str, Any]: ...

    @abstractmethod
    async def get_container_status(self, node: str, vmid: int) -> GuestStatus: ...

    @abstractmethod
    async def get_container_config(self, node: str, vmid: int) -> dict[str, Any]: ...

    # Power state; each returns the UPID of the task without waiting for it

    @abstractmethod
    async def guest_power_action(self, kind: str, node: str, vmid: int, action: str) -> TaskHandle:
        """Submit a power state change.

        Args:
            kind: ``qemu`` or ``lxc``
            node: Node name
            vmid: Guest ID
            action: ``start``, ``stop``, ``shutdown`` or ``reboot``

        Returns:
            Task UPID
        """

    async def start_vm(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("qemu", node, vmid, "start")

    async def stop_vm(self, node: str, vmid: int) -> TaskHandle:
        """Force stop a VM."""
        return await self.guest_power_action("qemu", node, vmid, "stop")

    async def shutdown_vm(self, node: str, vmid: int) -> TaskHandle:
        """Gracefully shut down a VM."""
        return await self.guest_power_action("qemu", node, vmid, "shutdown")

    async def restart_vm(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("qemu", node, vmid, "reboot")

    async def start_container(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("lxc", node, vmid, "start")

    async def stop_container(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("lxc", node, vmid, "stop")

    async def shutdown_container(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("lxc", node, vmid, "shutdown")

    async def restart_container(self, node: str, vmid: int) -> TaskHandle:
        return await self.guest_power_action("lxc", node, vmid, "reboot")

    # Tasks

    @abstractmethod
    async def execute_command(
        self, node: str, command: str, timeout: float = 300, username: str = "root"
    ) -> TaskHandle:
        """Start a command on a node and return the task handle."""

    @abstractmethod
    async def get_task_status(self, node: str, upid: TaskHandle) -> TaskStatus: ...

    @abstractmethod
    async def get_task_log(
        self, node: str, upid: TaskHandle, start: int | None = None, limit: int | None = None
    ) -> list[TaskLogLine]: ...

    @abstractmethod
    async def stop_task(self, node: str, upid: TaskHandle) -> str: ...

    @abstractmethod
    async def get_node_tasks(
        self,
        node: str,
        running: bool | None = None,
        start: int | None = None,
        limit: int | None = None,
        task_type: str | None = None,
        user: str | None = None,
    ) -> list[TaskStatus]: ...

    async def wait_for_task(
        self, node: str, upid: TaskHandle, timeout: float = 300, poll_interval: float = 2.0
    ) -> TaskStatus:
        """Poll a task until it stops.

        Args:
            node: Node name
            upid: Task UPID
            timeout: Maximum wait time in seconds
            poll_interval: Polling interval in seconds

        Returns:
            Final task status (check ``succeeded``)

        Raises:
            TimeoutError: If task doesn't complete within timeout
        """
        start_time = time.monotonic()
        while True:
            status = await self.get_task_status(node, upid)
            if status.is_finished:
                return status
            if time.monotonic() - start_time > timeout:
                raise TimeoutError(f"Task {upid} did not complete within {timeout} seconds")
            await asyncio.sleep(poll_interval)

    # Aggregates

    async def test_connection(self) -> ConnectionTestResult:
        """Authenticate and fetch the version; never raises.

        Returns:
            Connection test result
        """
        try:
            await self.authenticate()
            version = await self.get_version()
        except ApiError as e:
            logger.info("Connection test to %s failed: %s", self.profile.hostname, e)
            return ConnectionTestResult(success=False, error=e.message, kind=e.kind.value)
        except Exception as e:
            logger.exception("Unexpected error testing connection to %s", self.profile.hostname)
            return ConnectionTestResult(success=False, error=f"Connection test failed: {e}", kind="unknown")
        return ConnectionTestResult(success=True, version=version.version, release=version.release)

    async def get_cluster_resource_metrics(self) -> ClusterMetrics:
        """Aggregate CPU, memory, storage and traffic over the cluster."""
        nodes = await self.get_nodes()
        storage = await self.get_storage()
        vms, containers = await asyncio.gather(self.get_all_vms(), self.get_all_containers())
        return metrics.summarize_cluster(nodes, storage, [*vms, *containers])

    async def get_node_resource_metrics(self, node_name: str) -> NodeMetrics:
        """Usage summary for one node.

        Raises:
            ResourceNotFoundError: If the node is not part of the cluster
        """
        nodes = await self.get_nodes()
        node = next((n for n in nodes if n.node == node_name), None)
        if node is None:
            raise ResourceNotFoundError("node", node_name)

        storage = [s for s in await self.get_storage() if s.node == node_name]
        vms, containers = await asyncio.gather(
            self.get_node_vms(node_name), self.get_node_containers(node_name)
        )
        return metrics.summarize_node(node, storage, [*vms, *containers])

    async def get_cluster_health(self) -> ClusterHealth:
        """Classify cluster health from node state and quorum."""
        nodes, cluster_status = await asyncio.gather(self.get_nodes(), self.get_cluster_status())
        return metrics.assess_health(nodes, cluster_status)
