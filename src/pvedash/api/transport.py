"""HTTP transport for one Proxmox VE server."""

import logging
from typing import Any

import httpx

from .. import __version__
from ..models.config import ServerProfile

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": f"pvedash/{__version__}",
}


class Transport:
    """Thin wrapper around ``httpx.AsyncClient`` bound to one profile.

    TLS verification is configured on this client only, so skipping
    certificate checks for one server never affects other connections.
    """

    def __init__(
        self,
        profile: ServerProfile,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            profile: Server profile
            transport: Optional httpx transport (used by tests)
        """
        self.profile = profile
        self.base_url = profile.base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                verify=self.profile.verify_tls,
                timeout=self.profile.timeout,
                headers=DEFAULT_HEADERS,
                transport=self._transport,
            )
        return self._client

    async def send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request without any interpretation of the response.

        Args:
            method: HTTP method
            path: API path (without /api2/json prefix)
            params: Query parameters
            data: Form body
            headers: Extra headers for this request

        Returns:
            Raw response

        Raises:
            httpx.TransportError: On transport failures
        """
        client = self._ensure_client()
        return await client.request(
            method, "/" + path.lstrip("/"), params=params, data=data, headers=headers
        )

    @property
    def closed(self) -> bool:
        return self._client is None

    async def aclose(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
