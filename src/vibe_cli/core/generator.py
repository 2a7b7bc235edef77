"""
Command generation pipeline.

``CommandGenerator`` turns a natural-language query into a validated
``CommandResponse`` by walking a fixed sequence of states, each tried only
after the previous one produced nothing:

1. cache lookup
2. structured output (JSON-schema constrained request, strict decode)
3. enhanced parsing (unconstrained requests, tolerant decode)
4. explicit JSON re-prompt (stricter instructions, half temperature)
5. emergency fallback (synthesised failure response, never raises)

Failures inside a state advance the pipeline; only task cancellation
escapes ``generate``.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from .cache import ResponseCache
from .llm_client import (
    ChatCompletionClient,
    ChatCompletionRequest,
    ChatMessage,
    LLMClientError,
)
from .prompts import build_system_prompt, build_messages
from .response import (
    CommandResponse,
    SCHEMA_NAME,
    get_json_schema,
    normalize_response,
    parse_enhanced,
    parse_structured,
    parse_text_response,
    validate_response,
)
from ..config.models import VibeConfig
from ..utils.error_handling import (
    CacheError,
    ResponseParseError,
    ResponseValidationError,
    best_effort,
)
from ..utils.logging import PipelineLogger, get_logger, log_performance

logger = get_logger(__name__)

FALLBACK_WARNING = "Command generation failed - no command was produced"
MAX_TEMPERATURE = 2.0


class PipelineState(Enum):
    """Pipeline states in fallback order."""
    CACHE_LOOKUP = "cache_lookup"
    STRUCTURED_OUTPUT = "structured_output"
    ENHANCED_PARSING = "enhanced_parsing"
    EXPLICIT_JSON = "explicit_json"
    EMERGENCY_FALLBACK = "emergency_fallback"


PIPELINE_ORDER = (
    PipelineState.CACHE_LOOKUP,
    PipelineState.STRUCTURED_OUTPUT,
    PipelineState.ENHANCED_PARSING,
    PipelineState.EXPLICIT_JSON,
    PipelineState.EMERGENCY_FALLBACK,
)


@dataclass
class PipelineAttempt:
    """One failed attempt, kept only for reporting."""
    layer: PipelineState
    attempt: int
    error: BaseException
    raw_response: str = ""


@dataclass
class PipelineRun:
    """Per-query state threaded through the pipeline states."""
    query: str
    attempts: List[PipelineAttempt] = field(default_factory=list)
    requests_sent: Dict[PipelineState, int] = field(default_factory=dict)

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.attempts[-1].error if self.attempts else None


Decoder = Callable[[str], CommandResponse]


class CommandGenerator:
    """
    Generates shell commands through the layered fallback pipeline.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        config: VibeConfig,
        client: Optional[ChatCompletionClient] = None,
        cache: Optional[ResponseCache] = None,
        observer: Optional[PipelineLogger] = None,
    ):
        """
        Initialize the generator.

        Args:
            config: Full application configuration
            client: Chat-completion client; built from ``config.llm`` if omitted
            cache: Response cache; built from ``config.cache`` if omitted and
                caching is enabled. Generation works without one.
            observer: Pipeline event sink; defaults to one enabled by
                ``config.app.debug_logs``
        """
        self.config = config
        self.client = client or ChatCompletionClient(config.llm)
        self.observer = observer or PipelineLogger(enabled=config.app.debug_logs)
        self.cache = cache if config.cache.enabled else None

        if self.cache is None and config.cache.enabled:
            try:
                self.cache = ResponseCache(config.cache.directory, config.cache.ttl)
            except CacheError as e:
                logger.warning(f"Response cache disabled: {e}")

        self.system_prompt = build_system_prompt(config.app.os_name, config.app.shell)

        self._handlers: Dict[PipelineState, Callable[[PipelineRun], Awaitable[Optional[CommandResponse]]]] = {
            PipelineState.CACHE_LOOKUP: self._lookup_cache,
            PipelineState.STRUCTURED_OUTPUT: self._try_structured_output,
            PipelineState.ENHANCED_PARSING: self._try_enhanced_parsing,
            PipelineState.EXPLICIT_JSON: self._try_explicit_json,
            PipelineState.EMERGENCY_FALLBACK: self._emergency_fallback,
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.close()

    async def generate(self, query: str) -> CommandResponse:
        """
        Produce a command for ``query``.

        Always returns a response. When every strategy fails the response
        has an empty command and a warning (see ``CommandResponse.is_fallback``).

        Raises:
            asyncio.CancelledError: if the calling task is cancelled
        """
        run = PipelineRun(query=query)

        with log_performance("command generation"):
            for state in PIPELINE_ORDER[:-1]:
                result = await self.run_state(state, run)
                if result is not None:
                    return result

            return await self.run_state(PipelineState.EMERGENCY_FALLBACK, run)

    def generate_sync(self, query: str) -> CommandResponse:
        """Run ``generate`` on a fresh event loop, closing the generator afterwards."""
        async def _run() -> CommandResponse:
            async with self:
                return await self.generate(query)

        return asyncio.run(_run())

    async def run_state(self, state: PipelineState, run: PipelineRun) -> Optional[CommandResponse]:
        """Execute a single pipeline state; ``None`` means fall through."""
        return await self._handlers[state](run)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _lookup_cache(self, run: PipelineRun) -> Optional[CommandResponse]:
        if self.cache is None:
            return None

        cached, found = self.cache.get(run.query)
        if not found:
            return None

        try:
            validate_response(cached)
        except ResponseValidationError as e:
            self.observer.debug(f"Ignoring invalid cached response: {e}")
            return None

        self.observer.log_layer_success(PipelineState.CACHE_LOOKUP.value, 1)
        return cached

    async def _try_structured_output(self, run: PipelineRun) -> Optional[CommandResponse]:
        if not self.config.llm.use_structured_output:
            self.observer.debug("Structured output disabled, skipping layer")
            return None

        return await self._attempt(
            run,
            PipelineState.STRUCTURED_OUTPUT,
            attempt=1,
            messages=build_messages(run.query, self.system_prompt),
            temperature=self.config.llm.temperature,
            decode=parse_structured,
            structured=True,
        )

    async def _try_enhanced_parsing(self, run: PipelineRun) -> Optional[CommandResponse]:
        messages = build_messages(run.query, self.system_prompt)
        if self.config.llm.enable_json_extraction:
            decode = self._parse_enhanced
        else:
            decode = parse_text_response

        for index in range(self.config.llm.max_retries):
            result = await self._attempt(
                run,
                PipelineState.ENHANCED_PARSING,
                attempt=index + 1,
                messages=messages,
                temperature=self.enhanced_temperature(index),
                decode=decode,
            )
            if result is not None:
                return result

        return None

    async def _try_explicit_json(self, run: PipelineRun) -> Optional[CommandResponse]:
        if self.config.llm.enable_json_extraction:
            decode = self._parse_enhanced
        else:
            decode = parse_structured

        return await self._attempt(
            run,
            PipelineState.EXPLICIT_JSON,
            attempt=1,
            messages=build_messages(run.query, self.system_prompt, explicit_json=True),
            temperature=self.config.llm.temperature / 2,
            decode=decode,
        )

    async def _emergency_fallback(self, run: PipelineRun) -> CommandResponse:
        explanation = ["All command generation strategies failed to produce a valid command."]
        if run.last_error is not None:
            explanation.append(f"Last error: {run.last_error}")
        explanation.append("Check the API URL, API key and model settings, or rephrase the request.")

        self.observer.debug(
            f"Emergency fallback after {len(run.attempts)} failed attempts"
        )
        return CommandResponse(
            command="",
            explanation=explanation,
            warning=FALLBACK_WARNING,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def enhanced_temperature(self, index: int) -> float:
        """Temperature for the ``index``-th (0-based) enhanced parsing attempt."""
        llm = self.config.llm
        return min(llm.temperature + index * llm.retry_temperature_step, MAX_TEMPERATURE)

    def _parse_enhanced(self, content: str) -> CommandResponse:
        return parse_enhanced(content, self.observer)

    def _build_request(self, messages, temperature: float, structured: bool) -> ChatCompletionRequest:
        llm = self.config.llm
        response_format = None
        if structured:
            response_format = {
                "type": "json_schema",
                "json_schema": {
                    "name": SCHEMA_NAME,
                    "strict": True,
                    "schema": get_json_schema(),
                },
            }

        return ChatCompletionRequest(
            model=llm.model,
            messages=[ChatMessage(**message) for message in messages],
            temperature=temperature,
            max_tokens=llm.max_tokens,
            stream=False,
            response_format=response_format,
        )

    async def _attempt(
        self,
        run: PipelineRun,
        layer: PipelineState,
        attempt: int,
        messages,
        temperature: float,
        decode: Decoder,
        structured: bool = False,
    ) -> Optional[CommandResponse]:
        """One request/decode/validate cycle; ``None`` on any failure."""
        request = self._build_request(messages, temperature, structured)
        run.requests_sent[layer] = run.requests_sent.get(layer, 0) + 1

        try:
            envelope = await self.client.do_request(request)
        except LLMClientError as e:
            self._record_failure(run, layer, attempt, e, e.body or "")
            return None

        raw = envelope.content
        try:
            response = self._accept(decode(raw))
        except (ResponseParseError, ResponseValidationError) as e:
            self._record_failure(run, layer, attempt, e, raw)
            return None

        self.observer.log_layer_success(layer.value, attempt)
        self._store(run.query, response)
        return response

    def _accept(self, candidate: CommandResponse) -> CommandResponse:
        if not self.config.llm.strict_validation:
            candidate = normalize_response(candidate)
        validate_response(candidate)
        return candidate

    def _record_failure(
        self,
        run: PipelineRun,
        layer: PipelineState,
        attempt: int,
        error: BaseException,
        raw_response: str,
    ) -> None:
        run.attempts.append(PipelineAttempt(layer, attempt, error, raw_response))
        self.observer.log_parsing_failure(layer.value, attempt, raw_response, error)

    @best_effort("cache_write")
    def _store(self, query: str, response: CommandResponse) -> None:
        if self.cache is not None:
            self.cache.set(query, response)
