"""Services built on top of the API client."""

from .executions import (
    SCRIPT_CATALOG,
    ExecutionStore,
    InMemoryExecutionStore,
    ScriptExecutionService,
    get_script,
)

__all__ = [
    "SCRIPT_CATALOG",
    "ExecutionStore",
    "InMemoryExecutionStore",
    "ScriptExecutionService",
    "get_script",
]
