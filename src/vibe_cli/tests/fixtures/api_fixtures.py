"""
Test fixtures for chat-completion API testing.

Requests never leave the process: ``ScriptedAPI`` plays the server behind an
``httpx.MockTransport`` and records every payload it receives.
"""

import json
from typing import Any, Dict, List

import httpx
import pytest


def chat_envelope(content: str, **extra: Any) -> Dict[str, Any]:
    """Build a minimal successful chat-completion body."""
    body = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "test-model",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }
    body.update(extra)
    return body


def ok(content: str) -> httpx.Response:
    return httpx.Response(200, json=chat_envelope(content))


def status(code: int, body: str = "") -> httpx.Response:
    return httpx.Response(code, text=body)


class ScriptedAPI:
    """
    Fake chat-completion server.

    Responses are served in order; the last one repeats once the script runs
    out. An entry may be an ``httpx.Response``, an exception to raise from the
    transport, or a callable taking the request.
    """

    def __init__(self, *script):
        self.script: List[Any] = list(script)
        self.requests: List[httpx.Request] = []
        self.payloads: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.payloads.append(json.loads(request.content))

        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that returns at once and logs delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep():
    """Provide a no-wait backoff sleep."""
    return RecordingSleep()


@pytest.fixture
def test_config(tmp_path):
    """Provide a configuration isolated from the user's environment."""
    from ...config.models import VibeConfig, AppConfig, LLMConfig, CacheConfig

    return VibeConfig(
        app=AppConfig(os_name="Linux", shell="bash"),
        llm=LLMConfig(
            api_url="http://llm.test/v1",
            api_key="sk-test-key",
            model="test-model",
            temperature=0.4,
        ),
        cache=CacheConfig(directory=str(tmp_path / "cache")),
    )
