"""
Error taxonomy shared by the remote service clients and the summarizer.

Callers dispatch on `ServiceError.kind` instead of matching message text.
Message matching survives only inside `is_network_error`, as a last resort
for exceptions raised below the HTTP layer that carry no usable code.
"""

import asyncio
import errno
import socket
from enum import Enum
from typing import Iterator, Optional

import httpx


class ErrorKind(str, Enum):
    TRANSIENT = "transient"
    CREDENTIAL_REJECTED = "credential_rejected"
    MALFORMED = "malformed"
    SCHEMA_INVALID = "schema_invalid"
    FATAL = "fatal"


class ServiceError(Exception):
    """A terminal failure from a remote service call."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        service: str = "remote",
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.service = service
        self.status_code = status_code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class CredentialsExhaustedError(ServiceError):
    """Every credential in the pool was rejected (or none was configured)."""

    def __init__(self, message: str, service: str = "remote", cause: Optional[BaseException] = None):
        status_code = getattr(cause, "status_code", None)
        super().__init__(
            message,
            kind=ErrorKind.CREDENTIAL_REJECTED,
            service=service,
            status_code=status_code,
            cause=cause,
        )


NETWORK_ERRNOS = {
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.ECONNABORTED,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
    errno.ETIMEDOUT,
    errno.EPIPE,
}

NETWORK_MESSAGE_HINTS = (
    "fetch failed",
    "timeout",
    "timed out",
    "temporarily",
    "name or service not known",
    "getaddrinfo",
    "socket",
)


def iter_causes(exc: Optional[BaseException]) -> Iterator[BaseException]:
    """Yield `exc` and every exception chained beneath it, once each."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def is_retryable_transport_error(exc: BaseException) -> bool:
    """True for low-level failures worth retrying with the same credential."""
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    for cause in iter_causes(exc):
        if isinstance(cause, (socket.gaierror, TimeoutError, asyncio.TimeoutError, ConnectionError)):
            return True
        if isinstance(cause, OSError) and cause.errno in NETWORK_ERRNOS:
            return True
    return False


def is_network_error(exc: BaseException) -> bool:
    """
    Decide whether a failure means the service was unreachable.

    Credential exhaustion and malformed answers are never network-class:
    the service was reached and answered, just not usefully.
    """
    if isinstance(exc, ServiceError) and exc.kind is not ErrorKind.TRANSIENT:
        return False

    for cause in iter_causes(exc):
        if isinstance(cause, ServiceError) and cause.kind is ErrorKind.TRANSIENT:
            return True
        if is_retryable_transport_error(cause):
            return True

    # Best effort for errors that only describe themselves in text
    message = " ".join(str(c) for c in iter_causes(exc)).lower()
    return any(hint in message for hint in NETWORK_MESSAGE_HINTS)


def mask_credential(value: Optional[str]) -> str:
    if not value:
        return "(empty)"
    if len(value) <= 8:
        return f"{value[:2]}***{value[-2:]}"
    return f"{value[:4]}...{value[-4:]}"
