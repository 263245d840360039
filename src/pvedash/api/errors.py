"""Classification of transport and API failures into the ApiError taxonomy."""

import builtins
import socket
import ssl
from typing import Any, Iterator

import httpx

from .exceptions import (
    ApiError,
    CertificateError,
    ConnectionRefusedError,
    DnsError,
    InvalidResponseError,
    RemoteApiError,
    TimeoutError,
    UnknownApiError,
)

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)
_CERT_MARKERS = ("certificate_verify_failed", "certificate verify failed", "certificate has expired")


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_transport_error(exc: Exception) -> ApiError:
    """Map an httpx transport exception to an ApiError.

    httpx wraps the OS-level error, so the cause chain is walked to find
    the concrete reason.

    Args:
        exc: Exception raised while sending a request

    Returns:
        The matching ApiError (not raised)
    """
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return TimeoutError()

    for err in _exception_chain(exc):
        if isinstance(err, ssl.SSLCertVerificationError):
            return CertificateError()
        if isinstance(err, socket.gaierror):
            return DnsError()
        if isinstance(err, builtins.ConnectionRefusedError):
            return ConnectionRefusedError()
        if isinstance(err, builtins.TimeoutError):
            return TimeoutError()

    text = str(exc).lower()
    if any(marker in text for marker in _CERT_MARKERS):
        return CertificateError()
    if any(marker in text for marker in _DNS_MARKERS):
        return DnsError()
    if "connection refused" in text or "errno 111" in text:
        return ConnectionRefusedError()
    if isinstance(exc, httpx.ConnectError):
        return UnknownApiError(f"Connection failed: {exc}")
    return UnknownApiError(f"Request failed: {exc}" if str(exc) else "Unknown error occurred")


def extract_error_messages(payload: object) -> list[str]:
    """Pull the ``errors`` entries out of an API error body.

    Proxmox reports parameter errors as ``{"errors": {"field": "message"}}``;
    other services use a plain list.

    Args:
        payload: Decoded JSON body

    Returns:
        Error messages, empty when the body carries none
    """
    if not isinstance(payload, dict):
        return []
    errors = payload.get("errors")
    if isinstance(errors, dict):
        return [f"{field}: {str(msg).strip()}" for field, msg in errors.items()]
    if isinstance(errors, list):
        return [str(msg) for msg in errors]
    if isinstance(errors, str) and errors:
        return [errors]
    return []


def decode_json(response: httpx.Response) -> Any:
    """Decoded JSON body, or None when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def classify_response_error(response: httpx.Response, messages: list[str] | None = None) -> ApiError:
    """Build the ApiError for a non-2xx, non-401 response.

    Args:
        response: HTTP response
        messages: Error messages already extracted from the body; the body
            is decoded here when omitted

    Returns:
        RemoteApiError when the body lists errors, otherwise UnknownApiError
    """
    if messages is None:
        messages = extract_error_messages(decode_json(response))
    if messages:
        return RemoteApiError(messages, status_code=response.status_code)

    message = response.reason_phrase or response.text or f"HTTP {response.status_code}"
    return UnknownApiError(message, status_code=response.status_code)


def unwrap_payload(response: httpx.Response) -> object:
    """Return the ``data`` member of a successful API envelope.

    Args:
        response: 2xx HTTP response

    Returns:
        Payload (may be None when the API returns ``{"data": null}``)

    Raises:
        InvalidResponseError: If the body is not a JSON envelope
    """
    try:
        body = response.json()
    except ValueError:
        raise InvalidResponseError(
            f"Invalid JSON response from {response.request.url.path}",
            status_code=response.status_code,
        )
    if not isinstance(body, dict) or "data" not in body:
        raise InvalidResponseError(
            f"Response from {response.request.url.path} has no data member",
            status_code=response.status_code,
        )
    return body["data"]
