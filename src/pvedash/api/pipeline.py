"""Authenticated request pipeline."""

import logging
from typing import Any

import httpx

from ..models.session import AuthSession
from .auth import LOGIN_PATH, SessionManager
from .errors import (
    classify_response_error,
    classify_transport_error,
    decode_json,
    extract_error_messages,
    unwrap_payload,
)
from .exceptions import AuthenticationError, ResourceNotFoundError
from .transport import Transport

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class RequestPipeline:
    """Execute API calls with credentials, one re-auth retry, and error mapping.

    The sequence is explicit: attach credentials, send, classify. A 401 on a
    regular call invalidates the ticket, logs in again and resends exactly
    once; a second 401 is final.
    """

    def __init__(self, transport: Transport, sessions: SessionManager) -> None:
        """Initialize pipeline.

        Args:
            transport: HTTP transport
            sessions: Session manager supplying tickets
        """
        self.transport = transport
        self.sessions = sessions

    async def execute(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated API request.

        Args:
            method: HTTP method
            endpoint: API endpoint (without /api2/json prefix)
            params: Query parameters
            data: Request body data

        Returns:
            The ``data`` member of the response envelope

        Raises:
            ApiError: Classified failure (see exceptions module)
        """
        method = method.upper()
        if endpoint.rstrip("/").endswith(LOGIN_PATH):
            raise AuthenticationError("Login requests are handled by the session manager", None)

        session = await self.sessions.ensure_authenticated()
        response = await self._send(method, endpoint, session, params, data)

        if response.status_code == 401:
            logger.warning("%s %s rejected with 401, re-authenticating once", method, endpoint)
            self.sessions.invalidate()
            session = await self.sessions.ensure_authenticated(stale=session)
            response = await self._send(method, endpoint, session, params, data)
            if response.status_code == 401:
                raise AuthenticationError("Authentication retry failed")

        if response.status_code >= 400:
            messages = extract_error_messages(decode_json(response))
            if response.status_code == 404 and not messages:
                raise ResourceNotFoundError("resource", endpoint)
            raise classify_response_error(response, messages)

        return unwrap_payload(response)

    async def _send(
        self,
        method: str,
        endpoint: str,
        session: AuthSession,
        params: dict[str, Any] | None,
        data: dict[str, Any] | None,
    ) -> httpx.Response:
        headers = session.auth_headers(include_csrf=method not in SAFE_METHODS)
        try:
            response = await self.transport.send(
                method, endpoint, params=params, data=data, headers=headers
            )
        except httpx.TransportError as e:
            error = classify_transport_error(e)
            logger.debug("%s %s failed: %s", method, endpoint, error.kind.value)
            raise error
        logger.debug("%s %s -> %s", method, endpoint, response.status_code)
        return response

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a GET request."""
        return await self.execute("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a POST request."""
        return await self.execute("POST", endpoint, params=params, data=data)

    async def put(
        self,
        endpoint: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a PUT request."""
        return await self.execute("PUT", endpoint, params=params, data=data)

    async def delete(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a DELETE request."""
        return await self.execute("DELETE", endpoint, params=params)

