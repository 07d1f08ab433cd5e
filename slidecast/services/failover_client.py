"""
Failover HTTP Client

Issues a request with the current credential from a CredentialPool and
classifies every failure:

- transient (timeouts including the whole-request deadline, dropped
  connections, 408/409/425/429 and every 5xx):
  retried with linear backoff up to `max_attempts`, then terminal
- credential rejection (401/403 or a service-specific signal):
  the credential is removed and the attempt budget restarts with the next one
- anything else (other 4xx, unreadable body after retries): terminal

At most len(pool) * max_attempts requests are made per call.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from slidecast.services.credential_pool import CredentialPool
from slidecast.services.errors import (
    CredentialsExhaustedError,
    ErrorKind,
    ServiceError,
    is_retryable_transport_error,
    mask_credential,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.3
RETRYABLE_STATUS_CODES = {408, 409, 425, 429}
REJECTION_STATUS_CODES = {401, 403}


def is_retryable_status(status_code: int) -> bool:
    """Every 5xx (including edge-gateway 52x codes) plus a few throttling 4xx."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


def parse_json_body(response: httpx.Response) -> Any:
    return response.json()


def bearer_auth(credential: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {credential}"}


def default_rejection(response: httpx.Response) -> bool:
    return response.status_code in REJECTION_STATUS_CODES


def describe_transport_error(error: BaseException) -> str:
    parts = [str(error) or error.__class__.__name__]
    cause = error.__cause__ or error.__context__
    if cause is not None:
        code = getattr(cause, "errno", None)
        if code is not None:
            parts.append(f"code={code}")
        if str(cause) and str(cause) != str(error):
            parts.append(str(cause))
    return " | ".join(parts)


class FailoverClient:
    """HTTP client that rotates through a credential pool on rejection."""

    def __init__(
        self,
        pool: CredentialPool,
        base_url: str,
        service_name: str = "remote",
        auth_headers: Callable[[str], Dict[str, str]] = bearer_auth,
        is_credential_rejection: Callable[[httpx.Response], bool] = default_rejection,
        timeout: float = 90.0,
        connect_timeout: Optional[float] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pool = pool
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.auth_headers = auth_headers
        self.is_credential_rejection = is_credential_rejection
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout or timeout)
        # httpx limits each phase separately; this caps the whole request
        self.request_deadline = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.proxy = proxy or None
        self.transport = transport
        self._sleep = sleep

    def _backoff(self, attempt: int) -> float:
        return self.backoff_seconds * attempt

    def _build_client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"base_url": self.base_url, "timeout": self.timeout}
        if self.transport is not None:
            kwargs["transport"] = self.transport
        elif self.proxy:
            kwargs["proxy"] = self.proxy
        return httpx.AsyncClient(**kwargs)

    def _request_failed_prefix(self) -> str:
        if self.proxy:
            return f"{self.service_name} request failed (check proxy settings)"
        return f"{self.service_name} request failed"

    async def post(
        self,
        path: str,
        payload: Any,
        parse: Callable[[httpx.Response], Any] = parse_json_body,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        POST `payload` as JSON to `path` and return `parse(response)`.

        Raises:
            CredentialsExhaustedError: the pool is empty or every credential was rejected
            ServiceError: any other terminal failure, chained to the last concrete error
        """
        last_error: Optional[BaseException] = None

        async with self._build_client() as client:
            while True:
                credential = self.pool.current()
                if credential is None:
                    if last_error is not None:
                        raise CredentialsExhaustedError(
                            f"{self.service_name} request failed after exhausting all API keys: {last_error}",
                            service=self.service_name,
                            cause=last_error,
                        )
                    raise CredentialsExhaustedError(
                        f"{self.service_name} request failed: no API keys available",
                        service=self.service_name,
                    )

                request_headers = {"Content-Type": "application/json"}
                request_headers.update(headers or {})
                request_headers.update(self.auth_headers(credential))

                for attempt in range(1, self.max_attempts + 1):
                    final_attempt = attempt == self.max_attempts
                    try:
                        response = await asyncio.wait_for(
                            client.post(path, json=payload, headers=request_headers, params=params),
                            self.request_deadline,
                        )
                    except (httpx.TransportError, asyncio.TimeoutError) as e:
                        last_error = e
                        if not is_retryable_transport_error(e):
                            raise ServiceError(
                                f"{self._request_failed_prefix()}: {describe_transport_error(e)}",
                                kind=ErrorKind.FATAL,
                                service=self.service_name,
                                cause=e,
                            ) from e
                        if final_attempt:
                            raise ServiceError(
                                f"{self._request_failed_prefix()}: {describe_transport_error(e)}",
                                kind=ErrorKind.TRANSIENT,
                                service=self.service_name,
                                cause=e,
                            ) from e
                        delay = self._backoff(attempt)
                        logger.info(
                            f"[{self.service_name}] transport error on attempt {attempt}/{self.max_attempts} "
                            f"({e.__class__.__name__}); retrying in {delay:.1f}s"
                        )
                        await self._sleep(delay)
                        continue

                    if response.is_error:
                        detail = response.text[:200] if response.text else "no details"
                        error = ServiceError(
                            f"{self.service_name} request failed ({response.status_code}): {detail}",
                            kind=ErrorKind.FATAL,
                            service=self.service_name,
                            status_code=response.status_code,
                        )

                        if self.is_credential_rejection(response):
                            error.kind = ErrorKind.CREDENTIAL_REJECTED
                            last_error = error
                            logger.warning(
                                f"[{self.service_name}] API key rejected ({mask_credential(credential)}): "
                                f"{detail[:120]}"
                            )
                            next_credential = self.pool.mark_invalid(credential)
                            if next_credential is None:
                                raise CredentialsExhaustedError(
                                    f"All {self.service_name} API keys were rejected by the server",
                                    service=self.service_name,
                                    cause=error,
                                ) from error
                            break

                        if not is_retryable_status(response.status_code):
                            raise error

                        error.kind = ErrorKind.TRANSIENT
                        last_error = error
                        if final_attempt:
                            raise error
                        delay = self._backoff(attempt)
                        logger.info(
                            f"[{self.service_name}] HTTP {response.status_code} on attempt "
                            f"{attempt}/{self.max_attempts}; retrying in {delay:.1f}s"
                        )
                        await self._sleep(delay)
                        continue

                    try:
                        return parse(response)
                    except (ValueError, KeyError, TypeError) as e:
                        last_error = e
                        if final_attempt:
                            raise ServiceError(
                                f"{self.service_name} returned an unreadable response body",
                                kind=ErrorKind.MALFORMED,
                                service=self.service_name,
                                status_code=response.status_code,
                                cause=e,
                            ) from e
                        await self._sleep(self._backoff(attempt))
                # Only reached through a rotation; restart with the new credential
