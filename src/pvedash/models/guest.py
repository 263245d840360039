"""VM (QEMU) and container (LXC) models."""

from typing import Any

from pydantic import BaseModel, field_validator


class GuestResource(BaseModel):
    """Fields shared by VMs and containers in inventory listings.

    A stopped guest reports no ``cpu``/``mem``/``uptime``/``netin``/``netout``;
    those stay ``None`` ("not applicable") rather than being defaulted to 0.
    """

    model_config = {"extra": "allow"}

    vmid: int
    name: str | None = None
    node: str | None = None
    status: str = "unknown"
    type: str | None = None
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None
    netin: int | None = None
    netout: int | None = None
    diskread: int | None = None
    diskwrite: int | None = None
    template: bool = False
    tags: str | None = None
    lock: str | None = None

    @field_validator("template", mode="before")
    @classmethod
    def coerce_template(cls, v: Any) -> bool:
        """The API reports ``template`` as 0/1."""
        return bool(v)

    @property
    def running(self) -> bool:
        return self.status == "running"


class VirtualMachine(GuestResource):
    """QEMU virtual machine."""

    qmpstatus: str | None = None
    pid: int | None = None


class Container(GuestResource):
    """LXC container."""

    swap: int | None = None
    maxswap: int | None = None


class GuestStatus(BaseModel):
    """Detailed status of a single VM or container (``status/current``)."""

    model_config = {"extra": "allow"}

    status: str
    vmid: int
    name: str | None = None
    qmpstatus: str | None = None
    cpus: int | None = None
    cpu: float | None = None
    maxmem: int | None = None
    mem: int | None = None
    maxdisk: int | None = None
    disk: int | None = None
    uptime: int | None = None
    netin: int | None = None
    netout: int | None = None
    ha: dict[str, Any] | None = None
