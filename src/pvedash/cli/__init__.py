"""CLI commands."""

from . import cluster, ct, main, node, script, server, storage, vm

__all__ = ["cluster", "ct", "main", "node", "script", "server", "storage", "vm"]
