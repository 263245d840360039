"""Data models."""

from .config import ExecutorConfig, OutputConfig, ServerProfile, SessionConfig
from .execution import ScriptDefinition, ScriptExecution
from .guest import Container, GuestResource, GuestStatus, VirtualMachine
from .metrics import (
    ClusterHealth,
    ClusterMetrics,
    ConnectionTestResult,
    HealthSummary,
    NetworkUsage,
    NodeCounts,
    NodeHealth,
    NodeMetrics,
    ResourceUsage,
)
from .node import Node
from .session import AuthSession
from .storage import ClusterStatusEntry, StoragePool, VersionInfo
from .task import (
    TaskExecutionResult,
    TaskHandle,
    TaskLogLine,
    TaskState,
    TaskStatus,
)

__all__ = [
    "AuthSession",
    "ClusterHealth",
    "ClusterMetrics",
    "ClusterStatusEntry",
    "ConnectionTestResult",
    "Container",
    "ExecutorConfig",
    "GuestResource",
    "GuestStatus",
    "HealthSummary",
    "NetworkUsage",
    "Node",
    "NodeCounts",
    "NodeHealth",
    "NodeMetrics",
    "OutputConfig",
    "ResourceUsage",
    "ScriptDefinition",
    "ScriptExecution",
    "ServerProfile",
    "SessionConfig",
    "StoragePool",
    "TaskExecutionResult",
    "TaskHandle",
    "TaskLogLine",
    "TaskState",
    "TaskStatus",
    "VersionInfo",
    "VirtualMachine",
]
