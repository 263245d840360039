"""Virtual machine commands."""

from ._shared import build_guest_app

app = build_guest_app("qemu", "VM")
