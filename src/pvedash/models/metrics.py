"""Aggregated metrics and health models."""

from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "warning", "critical"]


class ResourceUsage(BaseModel):
    """Used/total pair with the derived percentage."""

    used: float = 0
    total: float = 0
    percentage: float = 0


class NetworkUsage(BaseModel):
    """Traffic totals in MiB."""

    inbound: float = 0
    outbound: float = 0


class NodeCounts(BaseModel):
    total: int = 0
    online: int = 0
    offline: int = 0


class ClusterMetrics(BaseModel):
    """Cluster-wide usage summary.

    CPU is in cores, memory and storage in GiB.
    """

    cpu: ResourceUsage = Field(default_factory=ResourceUsage)
    memory: ResourceUsage = Field(default_factory=ResourceUsage)
    storage: ResourceUsage = Field(default_factory=ResourceUsage)
    network: NetworkUsage = Field(default_factory=NetworkUsage)
    nodes: NodeCounts = Field(default_factory=NodeCounts)


class NodeMetrics(BaseModel):
    """Usage summary for one node."""

    cpu: ResourceUsage = Field(default_factory=ResourceUsage)
    memory: ResourceUsage = Field(default_factory=ResourceUsage)
    storage: ResourceUsage = Field(default_factory=ResourceUsage)
    network: NetworkUsage = Field(default_factory=NetworkUsage)
    uptime: int = 0
    status: str = "unknown"


class NodeHealth(BaseModel):
    name: str
    status: str
    online: bool
    cpu_usage: float = 0
    memory_usage: float = 0
    uptime: int = 0


class HealthSummary(BaseModel):
    total_nodes: int = 0
    online_nodes: int = 0
    offline_nodes: int = 0
    avg_cpu_usage: float = 0
    avg_memory_usage: float = 0


class ClusterHealth(BaseModel):
    """Cluster health classification."""

    status: HealthStatus
    quorum: bool
    nodes: list[NodeHealth] = Field(default_factory=list)
    summary: HealthSummary = Field(default_factory=HealthSummary)


class ConnectionTestResult(BaseModel):
    """Outcome of a connection test; never raised, always returned."""

    success: bool
    version: str | None = None
    release: str | None = None
    error: str | None = None
    kind: str | None = None
