"""Ticket authentication for Proxmox VE API."""

import asyncio
import logging
import time
from typing import Callable

import httpx

from ..models.config import ServerProfile
from ..models.session import AuthSession
from .errors import classify_response_error, classify_transport_error, unwrap_payload
from .exceptions import AuthenticationError, InvalidResponseError
from .transport import Transport

logger = logging.getLogger(__name__)

LOGIN_PATH = "/access/ticket"
DEFAULT_TICKET_LIFETIME = 7200


class SessionManager:
    """Own the authentication ticket for one server profile.

    A ticket is reused until half of its real lifetime has elapsed, so that
    clock skew and in-flight requests never see an expired ticket.
    """

    def __init__(
        self,
        profile: ServerProfile,
        transport: Transport,
        ticket_lifetime: int = DEFAULT_TICKET_LIFETIME,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize session manager.

        Args:
            profile: Server profile holding the credentials
            transport: Transport used for the login exchange
            ticket_lifetime: Lifetime of a Proxmox ticket in seconds
            clock: Time source returning epoch seconds
        """
        self.profile = profile
        self.transport = transport
        self.ticket_lifetime = ticket_lifetime
        self.clock = clock or time.time
        self.login_count = 0
        self._session: AuthSession | None = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> AuthSession | None:
        """Currently held session, valid or not."""
        return self._session

    def has_valid_session(self) -> bool:
        """Check whether the held session can be attached to requests.

        Returns:
            True if a session is held and not past its refresh deadline
        """
        return self._session is not None and self._session.is_valid(self.clock())

    async def ensure_authenticated(self, stale: AuthSession | None = None) -> AuthSession:
        """Return a usable session, logging in only when needed.

        Args:
            stale: Session the server just rejected. It is never returned
                again, even if it has not reached its local deadline.

        Returns:
            Valid session

        Raises:
            AuthenticationError: If the credentials are rejected
            ApiError: On transport failures during login
        """
        current = self._session
        if current is not None and current is not stale and current.is_valid(self.clock()):
            return current

        async with self._lock:
            # Another caller may have refreshed while we waited.
            current = self._session
            if current is not None and current is not stale and current.is_valid(self.clock()):
                return current
            self._session = await self._login()
            return self._session

    def invalidate(self) -> None:
        """Drop the held session. Safe to call repeatedly."""
        if self._session is not None:
            logger.debug("Invalidating session for %s", self.profile.userid)
        self._session = None

    async def _login(self) -> AuthSession:
        if not self.profile.password:
            raise AuthenticationError("Password required for ticket authentication", status_code=None)

        logger.debug("Requesting ticket for %s at %s", self.profile.userid, self.transport.base_url)
        self.login_count += 1
        try:
            response = await self.transport.send(
                "POST",
                LOGIN_PATH,
                data={"username": self.profile.userid, "password": self.profile.password},
            )
        except httpx.TransportError as e:
            raise classify_transport_error(e)

        if response.status_code in (401, 403):
            raise AuthenticationError(
                "Authentication failed: invalid username or password",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise classify_response_error(response)

        data = unwrap_payload(response)
        # Proxmox answers a bad login on some versions with 200 and data: null
        if data is None:
            raise AuthenticationError("Authentication failed: invalid username or password")
        try:
            ticket = data["ticket"]
            csrf_token = data["CSRFPreventionToken"]
        except (KeyError, TypeError):
            raise InvalidResponseError("Invalid authentication response format")

        issued_at = self.clock()
        logger.info("Authenticated to %s as %s", self.profile.hostname, self.profile.userid)
        return AuthSession(
            ticket=ticket,
            csrf_token=csrf_token,
            username=data.get("username", self.profile.userid),
            issued_at=issued_at,
            expires_at=issued_at + self.ticket_lifetime / 2,
        )
