"""
HTTP client for OpenAI-compatible chat-completion endpoints.

This module sends one ``/chat/completions`` request per attempt, classifies
every failure into the ``ErrorKind`` taxonomy, and retries transient
failures with bounded exponential backoff.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from .exceptions import (
    ErrorKind,
    LLMConnectionError,
    LLMResponseError,
    LLMTimeoutError,
    api_error,
)
from .retry import RetryPolicy, DEFAULT_RETRY_POLICY, with_retry
from ...config.models import LLMConfig
from ...utils.logging import get_logger, truncate

logger = get_logger(__name__)

_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "no such host",
    "getaddrinfo",
    "name resolution",
)


class ChatMessage(BaseModel):
    """One role/content pair of a conversation."""
    role: str
    content: Optional[str] = None


class ChatCompletionRequest(BaseModel):
    """Body of a ``POST /chat/completions`` call."""
    model: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False
    response_format: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Choice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Chat-completion envelope; only ``choices`` is required."""
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[Choice] = Field(default_factory=list)
    usage: Optional[Usage] = None

    @property
    def content(self) -> str:
        """Message content of the first choice."""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class ChatCompletionClient:
    """
    Async HTTP client for a chat-completion API.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        config: LLMConfig,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            config: Endpoint, credentials and timeout settings
            retry_policy: Attempt budget and backoff limits
            transport: Optional httpx transport (used by tests)
            sleep: Backoff wait, replaceable in tests
        """
        self.config = config
        self.retry_policy = retry_policy
        self._sleep = sleep

        headers = {"Accept": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout),
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/chat/completions"

    async def do_request(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """
        Send a chat-completion request, retrying transient failures.

        Raises:
            LLMClientError: the last failure once retries are exhausted, or
                the first non-retryable failure
        """
        return await with_retry(lambda: self._send(request), self.retry_policy, self._sleep)

    async def _send(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Single attempt: send, classify the status, then decode."""
        api_url = self.config.api_url

        try:
            response = await self.client.post(self.endpoint, json=request.to_payload())
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(
                f"request timeout: API at {api_url} is not responding - check your connection"
            ) from e
        except httpx.ConnectError as e:
            reason = str(e).lower()
            if any(marker in reason for marker in _DNS_FAILURE_MARKERS):
                raise LLMConnectionError(
                    f"cannot resolve host: {api_url} - check your API URL"
                ) from e
            raise LLMConnectionError(
                f"connection refused: cannot reach API at {api_url} - check if the service is running"
            ) from e
        except httpx.TransportError as e:
            raise LLMConnectionError(f"network error: {e} - check your API URL ({api_url})") from e

        body = response.text
        if response.status_code != 200:
            logger.debug(f"API returned {response.status_code}: {truncate(body, 200)}")
            raise api_error(response.status_code, body)

        try:
            envelope = ChatCompletionResponse.model_validate(json.loads(body))
        except (ValueError, ValidationError) as e:
            raise LLMResponseError(
                f"invalid JSON response: {e}", ErrorKind.INVALID_JSON, status_code=200, body=body
            ) from e

        if not envelope.choices:
            raise LLMResponseError("no response from API", ErrorKind.NO_RESPONSE, status_code=200, body=body)

        logger.debug(f"Received response: {len(envelope.content)} characters")
        return envelope
