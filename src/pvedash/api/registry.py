"""Cache of open clients, one per distinct set of connection settings."""

import asyncio
import logging
from typing import Callable

import httpx

from ..models.config import ServerProfile
from .auth import DEFAULT_TICKET_LIFETIME
from .base import ProxmoxBackend
from .client import ProxmoxClient
from .mock import MockProxmoxClient, is_mock_host

logger = logging.getLogger(__name__)


def open_client(
    profile: ServerProfile,
    *,
    force_mock: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
    ticket_lifetime: int = DEFAULT_TICKET_LIFETIME,
    clock: Callable[[], float] | None = None,
) -> ProxmoxBackend:
    """Create the backend for a profile.

    The mock backend is chosen once, here, when ``force_mock`` is set or the
    hostname is a placeholder.

    Args:
        profile: Server profile
        force_mock: Always use synthetic data
        transport: Optional httpx transport (used by tests)
        ticket_lifetime: Lifetime of a Proxmox ticket in seconds
        clock: Time source for ticket expiry

    Returns:
        Backend instance
    """
    if force_mock or is_mock_host(profile.hostname):
        return MockProxmoxClient(profile)
    return ProxmoxClient(profile, transport=transport, ticket_lifetime=ticket_lifetime, clock=clock)


class ClientRegistry:
    """Reuse clients (and their tickets) across requests.

    Owned by the caller and passed to whatever needs clients. Entries are
    keyed by the profile's connection settings, so editing a profile yields
    a new client; ``invalidate`` drops stale ones.
    """

    def __init__(
        self,
        factory: Callable[..., ProxmoxBackend] = open_client,
        force_mock: bool = False,
    ) -> None:
        """Initialize registry.

        Args:
            factory: Callable building a backend from a profile
            force_mock: Build every client in mock mode
        """
        self.factory = factory
        self.force_mock = force_mock
        self._clients: dict[str, ProxmoxBackend] = {}
        self._names: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    def _key(self, profile: ServerProfile, force_mock: bool) -> str:
        return f"{profile.connection_key}:{'mock' if force_mock else 'live'}"

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, profile: ServerProfile) -> bool:
        return any(key.startswith(profile.connection_key + ":") for key in self._clients)

    async def get(self, profile: ServerProfile, force_mock: bool = False) -> ProxmoxBackend:
        """Return the cached client for a profile, creating it on first use.

        Args:
            profile: Server profile
            force_mock: Use the mock backend for this profile

        Returns:
            Backend instance
        """
        force_mock = force_mock or self.force_mock
        key = self._key(profile, force_mock)
        async with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self.factory(profile, force_mock=force_mock)
                self._clients[key] = client
                self._names.setdefault(profile.name, set()).add(key)
                logger.info("Created %s client for %s", "mock" if client.mock else "live", profile.hostname)
            return client

    async def invalidate(self, profile: ServerProfile | str | None = None) -> int:
        """Close and forget cached clients.

        Args:
            profile: Profile (or profile name) whose clients to drop; all
                clients when None

        Returns:
            Number of clients dropped
        """
        async with self._lock:
            if profile is None:
                keys = list(self._clients)
                self._names.clear()
            else:
                name = profile if isinstance(profile, str) else profile.name
                keys = list(self._names.pop(name, set()))
                if isinstance(profile, ServerProfile):
                    keys += [k for k in self._clients if k.startswith(profile.connection_key + ":")]
            dropped = [self._clients.pop(k) for k in dict.fromkeys(keys) if k in self._clients]

        for client in dropped:
            await client.aclose()
        if dropped:
            logger.debug("Dropped %d cached client(s)", len(dropped))
        return len(dropped)

    async def aclose(self) -> None:
        """Close every cached client."""
        await self.invalidate()
