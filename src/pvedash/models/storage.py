"""Storage and cluster models."""

from pydantic import BaseModel


class StoragePool(BaseModel):
    """Storage pool as listed by ``/cluster/resources?type=storage``.

    The cluster listing reports ``maxdisk``/``disk``; the per-node listing
    reports ``total``/``used``. Both are accepted, ``total``/``used`` win.
    """

    model_config = {"extra": "allow"}

    storage: str
    node: str | None = None
    type: str | None = None
    plugintype: str | None = None
    content: str | None = None
    shared: bool | None = None
    enabled: bool | None = None
    status: str | None = None
    total: int | None = None
    used: int | None = None
    avail: int | None = None
    maxdisk: int | None = None
    disk: int | None = None
    used_fraction: float | None = None

    @property
    def capacity(self) -> int:
        """Total bytes, 0 when not reported."""
        if self.total is not None:
            return self.total
        return self.maxdisk or 0

    @property
    def usage(self) -> int:
        """Used bytes, 0 when not reported."""
        if self.used is not None:
            return self.used
        return self.disk or 0


class ClusterStatusEntry(BaseModel):
    """One entry of ``/cluster/status`` (a ``cluster`` or a ``node`` item)."""

    model_config = {"extra": "allow"}

    type: str
    name: str | None = None
    id: str | None = None
    quorate: int | None = None
    nodes: int | None = None
    version: int | None = None
    online: int | None = None
    ip: str | None = None
    local: int | None = None
    nodeid: int | None = None


class VersionInfo(BaseModel):
    """Proxmox VE version information."""

    model_config = {"extra": "allow"}

    version: str
    release: str | None = None
    repoid: str | None = None
