"""HTTP client for OpenAI-compatible chat-completion APIs."""

from .client import (
    ChatCompletionClient,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
)
from .exceptions import (
    ErrorKind,
    LLMClientError,
    LLMConnectionError,
    LLMTimeoutError,
    LLMServerError,
    LLMResponseError,
    api_error,
    is_retryable,
)
from .retry import RetryPolicy, RetryState, with_retry

__all__ = [
    "ChatCompletionClient",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "ErrorKind",
    "LLMClientError",
    "LLMConnectionError",
    "LLMTimeoutError",
    "LLMServerError",
    "LLMResponseError",
    "api_error",
    "is_retryable",
    "RetryPolicy",
    "RetryState",
    "with_retry",
]
