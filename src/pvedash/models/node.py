"""Node models."""

from pydantic import BaseModel


class Node(BaseModel):
    """Cluster node as listed by ``/nodes``.

    Usage fields are absent for offline nodes; ``None`` means "not
    reported", not zero.
    """

    model_config = {"extra": "allow"}

    node: str
    status: str = "unknown"
    uptime: int | None = None
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    level: str | None = None
    type: str = "node"
    id: str | None = None

    @property
    def online(self) -> bool:
        return self.status == "online"
