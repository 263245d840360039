"""API client, session handling and task execution."""

from .auth import SessionManager
from .base import ProxmoxBackend
from .client import ProxmoxClient
from .exceptions import (
    ApiError,
    ApiErrorKind,
    AuthenticationError,
    CertificateError,
    ConfigError,
    ConnectionRefusedError,
    DnsError,
    InvalidResponseError,
    PVEDashError,
    RemoteApiError,
    ResourceNotFoundError,
    TimeoutError,
    UnknownApiError,
)
from .mock import MockProxmoxClient, is_mock_host
from .pipeline import RequestPipeline
from .registry import ClientRegistry, open_client
from .tasks import TaskExecutor
from .transport import Transport

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "AuthenticationError",
    "CertificateError",
    "ClientRegistry",
    "ConfigError",
    "ConnectionRefusedError",
    "DnsError",
    "InvalidResponseError",
    "MockProxmoxClient",
    "ProxmoxBackend",
    "ProxmoxClient",
    "PVEDashError",
    "RemoteApiError",
    "RequestPipeline",
    "ResourceNotFoundError",
    "SessionManager",
    "TaskExecutor",
    "TimeoutError",
    "Transport",
    "UnknownApiError",
    "is_mock_host",
    "open_client",
]
