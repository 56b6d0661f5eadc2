"""Abstract base for LLM providers.

A provider knows three things about its backend: how to build the
request (URL, auth headers, payload), how to send it, and how to pull
plain text out of a successful response. Status classification is
uniform across providers and lives here.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from dictation_ai.config.settings import get_settings
from dictation_ai.errors import (
    ApiKeyInvalid,
    CustomError,
    EnhancementFailed,
    NetworkError,
    RateLimitExceeded,
    ServerError,
)
from dictation_ai.session.models import ActiveSession

ERROR_BODY_LIMIT = 500


@dataclass
class ProviderRequest:
    url: str
    headers: dict[str, str]
    body: bytes


@dataclass
class ProviderResponse:
    status_code: int
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self):
        """Decoded JSON body, or None when the body is not JSON."""
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            return None


def raise_for_status(response: ProviderResponse) -> None:
    """Map a non-200 status onto the pipeline error taxonomy."""
    status = response.status_code
    if status == 200:
        return
    if status == 429:
        raise RateLimitExceeded()
    if status in (401, 403):
        raise ApiKeyInvalid()
    if 500 <= status <= 599:
        raise ServerError(f"Provider returned HTTP {status}")
    raise CustomError(f"HTTP {status}: {response.text[:ERROR_BODY_LIMIT]}")


def encode_json(payload: dict) -> bytes:
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


class LLMProvider(ABC):
    """Base class for provider implementations."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            settings = get_settings()
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)
            )
        return self._client

    @abstractmethod
    def build_request(
        self,
        session: ActiveSession,
        system_message: str | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> ProviderRequest:
        """Build the provider-specific request for one exchange.

        Args:
            session: Resolved session; its auth variant must match the provider.
            system_message: System instruction, or None to send the user message alone.
            user_message: The user turn (transcript or probe text).
            max_tokens: Output budget override; provider default when None.

        Raises:
            NotConfigured: the session cannot drive this provider.
        """
        ...

    @abstractmethod
    def parse_response(self, body: bytes) -> str | None:
        """Extract the reply text from a 200 response body, or None."""
        ...

    async def send(
        self,
        session: ActiveSession,
        system_message: str | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> ProviderResponse:
        """Dispatch one request. Transport failures become NetworkError."""
        request = self.build_request(session, system_message, user_message, max_tokens)
        client = await self._get_client()
        try:
            response = await client.post(request.url, content=request.body, headers=request.headers)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timed out: {e}") from e
        except httpx.NetworkError as e:
            raise NetworkError(f"Cannot reach provider: {e}") from e
        except httpx.HTTPError as e:
            raise CustomError(f"Upstream error: {e}") from e
        return ProviderResponse(status_code=response.status_code, body=response.content)

    async def complete(self, session: ActiveSession, system_message: str | None, user_message: str) -> str:
        """Send, classify status, and parse. Returns the raw reply text."""
        response = await self.send(session, system_message, user_message)
        raise_for_status(response)
        text = self.parse_response(response.body)
        if text is None:
            raise EnhancementFailed()
        return text

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
