"""Fold inventory snapshots into usage summaries and a health verdict."""

from typing import Iterable, Sequence

from ..models.guest import GuestResource
from ..models.metrics import (
    ClusterHealth,
    ClusterMetrics,
    HealthSummary,
    HealthStatus,
    NetworkUsage,
    NodeCounts,
    NodeHealth,
    NodeMetrics,
    ResourceUsage,
)
from ..models.node import Node
from ..models.storage import ClusterStatusEntry, StoragePool

GIB = 1024**3
MIB = 1024**2

CPU_WARNING_THRESHOLD = 80.0
MEMORY_WARNING_THRESHOLD = 90.0


def percentage(used: float, total: float) -> float:
    """``used / total * 100`` rounded to two places; 0 for an empty total."""
    if not total:
        return 0
    return round(used / total * 100, 2)


def to_gib(value: float) -> float:
    return round(value / GIB, 2)


def to_mib(value: float) -> float:
    return round(value / MIB, 2)


def _network(guests: Iterable[GuestResource]) -> NetworkUsage:
    inbound = 0
    outbound = 0
    for guest in guests:
        inbound += guest.netin or 0
        outbound += guest.netout or 0
    return NetworkUsage(inbound=to_mib(inbound), outbound=to_mib(outbound))


def _storage(pools: Iterable[StoragePool]) -> ResourceUsage:
    total = 0
    used = 0
    for pool in pools:
        total += pool.capacity
        used += pool.usage
    return ResourceUsage(used=to_gib(used), total=to_gib(total), percentage=percentage(used, total))


def summarize_cluster(
    nodes: Sequence[Node],
    storage: Sequence[StoragePool],
    guests: Iterable[GuestResource],
) -> ClusterMetrics:
    """Aggregate cluster-wide CPU, memory, storage and traffic.

    Args:
        nodes: Node listing
        storage: Storage listing
        guests: VMs and containers (for traffic totals)

    Returns:
        Cluster metrics
    """
    total_cpu = sum(node.maxcpu or 0 for node in nodes)
    used_cpu = sum((node.cpu or 0) * (node.maxcpu or 0) for node in nodes)
    total_mem = sum(node.maxmem or 0 for node in nodes)
    used_mem = sum(node.mem or 0 for node in nodes)
    online = sum(1 for node in nodes if node.online)

    return ClusterMetrics(
        cpu=ResourceUsage(
            used=round(used_cpu, 2), total=total_cpu, percentage=percentage(used_cpu, total_cpu)
        ),
        memory=ResourceUsage(
            used=to_gib(used_mem), total=to_gib(total_mem), percentage=percentage(used_mem, total_mem)
        ),
        storage=_storage(storage),
        network=_network(guests),
        nodes=NodeCounts(total=len(nodes), online=online, offline=len(nodes) - online),
    )


def summarize_node(
    node: Node,
    storage: Sequence[StoragePool],
    guests: Iterable[GuestResource],
) -> NodeMetrics:
    """Usage summary for one node.

    Args:
        node: The node
        storage: Storage pools that belong to the node
        guests: The node's VMs and containers

    Returns:
        Node metrics
    """
    cpu = node.cpu or 0
    maxcpu = node.maxcpu or 0
    mem = node.mem or 0
    maxmem = node.maxmem or 0
    return NodeMetrics(
        cpu=ResourceUsage(used=round(cpu * maxcpu, 2), total=maxcpu, percentage=round(cpu * 100, 2)),
        memory=ResourceUsage(used=to_gib(mem), total=to_gib(maxmem), percentage=percentage(mem, maxmem)),
        storage=_storage(storage),
        network=_network(guests),
        uptime=node.uptime or 0,
        status=node.status,
    )


def is_quorate(cluster_status: Sequence[ClusterStatusEntry]) -> bool:
    """Quorum flag of the ``cluster`` entry; a standalone node counts as quorate."""
    for entry in cluster_status:
        if entry.type == "cluster":
            return bool(entry.quorate) if entry.quorate is not None else True
    return True


def classify_health(
    quorum: bool, online: int, total: int, avg_cpu: float, avg_memory: float
) -> HealthStatus:
    """Decide the cluster health status.

    Args:
        quorum: Whether the cluster is quorate
        online: Number of online nodes
        total: Number of nodes
        avg_cpu: Average CPU usage in percent
        avg_memory: Average memory usage in percent

    Returns:
        ``critical``, ``warning`` or ``healthy``
    """
    if not quorum or online == 0:
        return "critical"
    if online < total or avg_cpu > CPU_WARNING_THRESHOLD or avg_memory > MEMORY_WARNING_THRESHOLD:
        return "warning"
    return "healthy"


def assess_health(nodes: Sequence[Node], cluster_status: Sequence[ClusterStatusEntry]) -> ClusterHealth:
    """Build the cluster health report.

    Args:
        nodes: Node listing
        cluster_status: ``/cluster/status`` entries

    Returns:
        Cluster health
    """
    details = [
        NodeHealth(
            name=node.node,
            status=node.status,
            online=node.online,
            cpu_usage=round((node.cpu or 0) * 100, 2),
            memory_usage=percentage(node.mem or 0, node.maxmem or 0),
            uptime=node.uptime or 0,
        )
        for node in nodes
    ]
    online = sum(1 for detail in details if detail.online)
    avg_cpu = round(sum(d.cpu_usage for d in details) / len(details), 2) if details else 0
    avg_memory = round(sum(d.memory_usage for d in details) / len(details), 2) if details else 0
    quorum = is_quorate(cluster_status)

    return ClusterHealth(
        status=classify_health(quorum, online, len(details), avg_cpu, avg_memory),
        quorum=quorum,
        nodes=details,
        summary=HealthSummary(
            total_nodes=len(details),
            online_nodes=online,
            offline_nodes=len(details) - online,
            avg_cpu_usage=avg_cpu,
            avg_memory_usage=avg_memory,
        ),
    )
