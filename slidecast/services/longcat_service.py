"""
LongCat Completion Service

Thin wrapper around the OpenAI-compatible chat completions endpoint.
Every call builds a fresh CredentialPool from the keys resolved at
construction time, so a key rejected during one request is retried again
on the next one.
"""

import logging
from typing import Iterable, List, Optional

import httpx

from slidecast.config import Settings
from slidecast.services.credential_pool import CredentialPool
from slidecast.services.errors import ErrorKind, ServiceError
from slidecast.services.failover_client import DEFAULT_MAX_ATTEMPTS, FailoverClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.longcat.chat"
OPENAI_STYLE_PATH = "/openai/v1/chat/completions"
DEFAULT_MODEL = "LongCat-Flash-Chat"


class CompletionService:
    """Service for structured JSON completions from LongCat."""

    SERVICE_NAME = "Longcat"

    def __init__(
        self,
        api_keys: Iterable[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 90.0,
        connect_timeout: Optional[float] = 15.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_seconds: float = 0.3,
    ):
        self.api_keys: List[str] = list(api_keys)
        self.base_url = base_url or DEFAULT_BASE_URL
        self.model = model or DEFAULT_MODEL
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.max_attempts = max_attempts
        self.proxy = proxy
        self.transport = transport
        self.backoff_seconds = backoff_seconds

        if not self.api_keys:
            logger.warning("No LongCat API keys configured - completions will fail")

    @classmethod
    def from_settings(cls, settings: Settings, api_keys: Optional[Iterable[str]] = None) -> "CompletionService":
        return cls(
            api_keys=settings.longcat_keys(api_keys),
            base_url=settings.LONGCAT_API_BASE,
            model=settings.LONGCAT_MODEL,
            timeout=settings.LONGCAT_TIMEOUT,
            connect_timeout=settings.LONGCAT_CONNECT_TIMEOUT,
            max_attempts=settings.LONGCAT_MAX_ATTEMPTS,
            proxy=settings.LONGCAT_PROXY or None,
        )

    def is_configured(self) -> bool:
        return bool(self.api_keys)

    def _client(self) -> FailoverClient:
        return FailoverClient(
            CredentialPool(self.api_keys),
            self.base_url,
            service_name=self.SERVICE_NAME,
            timeout=self.timeout,
            connect_timeout=self.connect_timeout,
            max_attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            proxy=self.proxy,
            transport=self.transport,
        )

    async def complete(
        self,
        system: Optional[str],
        user: str,
        schema: Optional[dict] = None,
        temperature: float = 0.3,
        max_tokens: int = 1800,
    ) -> str:
        """
        Run one chat completion and return the message content.

        Args:
            system: Optional system prompt
            user: User prompt
            schema: JSON schema passed as a strict structured-output hint
            temperature: Sampling temperature
            max_tokens: Completion token cap

        Raises:
            ServiceError: transport, HTTP, credential or empty-content failure
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if schema:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "StructuredResponse",
                    "schema": schema,
                    "strict": True,
                },
            }

        logger.info(f"Sending completion request ({len(user)} chars) to {self.model}...")
        data = await self._client().post(
            OPENAI_STYLE_PATH, payload, headers={"Accept": "application/json"}
        )

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not content or not isinstance(content, str):
            raise ServiceError(
                f"{self.SERVICE_NAME} returned no content",
                kind=ErrorKind.MALFORMED,
                service=self.SERVICE_NAME,
            )

        logger.info(f"Received completion ({len(content)} chars)")
        return content
