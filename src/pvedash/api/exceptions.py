"""Custom exceptions for pvedash API interactions."""

from enum import Enum
from typing import Any


class PVEDashError(Exception):
    """Base exception for pvedash."""

    pass


class ConfigError(PVEDashError):
    """Configuration related errors."""

    pass


class ApiErrorKind(str, Enum):
    """Discriminator for every failure surfaced by the API layer."""

    CONNECTION_REFUSED = "connection_refused"
    CERTIFICATE = "certificate_error"
    DNS = "dns_failure"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication_failed"
    REMOTE = "remote_api_error"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


class ApiError(PVEDashError):
    """General API error.

    Every failure crossing the request pipeline is raised as exactly one
    subclass of this type. The ``kind`` attribute discriminates the variant
    so callers can branch without ``isinstance`` chains.
    """

    kind: ApiErrorKind = ApiErrorKind.UNKNOWN
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        messages: list[str] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code if applicable
            messages: Error messages reported by the remote API, verbatim
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.messages = list(messages) if messages else []

    @property
    def http_status(self) -> int:
        """Status code the web layer should answer with."""
        return self.default_http_status

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a JSON error response.

        Returns:
            Dict with kind, error message, status code and remote messages
        """
        return {
            "kind": self.kind.value,
            "error": self.message,
            "status_code": self.status_code,
            "messages": self.messages,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code!r})"


class ConnectionRefusedError(ApiError):
    """The remote host refused the TCP connection."""

    kind = ApiErrorKind.CONNECTION_REFUSED
    default_http_status = 503

    def __init__(
        self, message: str = "Connection refused: unable to connect to Proxmox server"
    ) -> None:
        super().__init__(message)


class CertificateError(ApiError):
    """TLS certificate verification failed."""

    kind = ApiErrorKind.CERTIFICATE
    default_http_status = 502

    def __init__(
        self, message: str = "SSL certificate error: enable 'ignore certificate' for this server"
    ) -> None:
        super().__init__(message)


class DnsError(ApiError):
    """Hostname could not be resolved."""

    kind = ApiErrorKind.DNS
    default_http_status = 502

    def __init__(self, message: str = "DNS resolution failed: check hostname/IP address") -> None:
        super().__init__(message)


class TimeoutError(ApiError):
    """Request or task timeout errors."""

    kind = ApiErrorKind.TIMEOUT
    default_http_status = 504

    def __init__(self, message: str = "Connection timeout: server did not respond in time") -> None:
        super().__init__(message)


class AuthenticationError(ApiError):
    """Authentication failures."""

    kind = ApiErrorKind.AUTHENTICATION
    default_http_status = 401

    def __init__(
        self, message: str = "Authentication failed", status_code: int | None = 401
    ) -> None:
        super().__init__(message, status_code=status_code)


class RemoteApiError(ApiError):
    """The API answered with a structured error payload."""

    kind = ApiErrorKind.REMOTE

    def __init__(self, messages: list[str], status_code: int | None = None) -> None:
        """Initialize remote API error.

        Args:
            messages: Error messages exactly as the API reported them
            status_code: HTTP status code
        """
        super().__init__(", ".join(messages), status_code=status_code, messages=messages)

    @property
    def http_status(self) -> int:
        return self.status_code or 502


class ResourceNotFoundError(RemoteApiError):
    """Resource not found (404)."""

    def __init__(self, resource: str, identifier: str) -> None:
        """Initialize resource not found error.

        Args:
            resource: Type of resource (vm, node, etc.)
            identifier: Resource identifier
        """
        super().__init__([f"{resource} '{identifier}' not found"], status_code=404)
        self.resource = resource
        self.identifier = identifier


class InvalidResponseError(ApiError):
    """A successful response did not have the expected shape."""

    kind = ApiErrorKind.INVALID_RESPONSE
    default_http_status = 502

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)


class UnknownApiError(ApiError):
    """Failure that fits no other category."""

    kind = ApiErrorKind.UNKNOWN

    @property
    def http_status(self) -> int:
        if self.status_code and self.status_code >= 400:
            return self.status_code
        return 500


class ScriptNotAllowedError(PVEDashError):
    """Requested script is not in the whitelist."""

    def __init__(self, script_id: str, allowed: list[str]) -> None:
        super().__init__(
            f"Script '{script_id}' is not in the allowed scripts whitelist. "
            f"Available scripts: {', '.join(allowed)}"
        )
        self.script_id = script_id
        self.allowed = allowed


class ExecutionNotFoundError(PVEDashError):
    """Script execution record does not exist."""

    def __init__(self, execution_id: str) -> None:
        super().__init__(f"Execution '{execution_id}' not found")
        self.execution_id = execution_id


class ExecutionStateError(PVEDashError):
    """Operation not allowed in the execution's current state."""

    pass
