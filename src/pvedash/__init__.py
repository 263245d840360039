"""pvedash - Proxmox VE dashboard client, session and task layer."""

__version__ = "0.3.0"
