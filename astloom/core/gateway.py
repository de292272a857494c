"""LLM Gateway: retry and usage accounting around any LlamaIndex LLM.

Translation workers share one gateway, so every counter is updated under
a lock. Each call carries a purpose tag (``translate`` unless the caller
says otherwise); failed calls are counted under ``<purpose>_error``.
Provider rate-limit, timeout and connection errors are retried with
exponential backoff.
"""

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Generator, Optional, Sequence, Tuple

import backoff
from llama_index.core.base.llms.types import (
    ChatMessage,
    ChatResponse,
    CompletionResponse,
    LLMMetadata,
)
from llama_index.core.llms import CustomLLM

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRIES = 3
DEFAULT_MAX_TIME = 60
DEFAULT_PURPOSE = "translate"

# USD per 1M tokens (input, output), matched on the longest model-name prefix.
_PRICING = (
    ("gpt-4.1-mini", (0.40, 1.60)),
    ("gpt-4.1", (2.00, 8.00)),
    ("gpt-4o-mini", (0.15, 0.60)),
    ("gpt-4o", (2.50, 10.00)),
    ("claude-3-haiku", (0.25, 1.25)),
    ("claude-3-5-sonnet", (3.00, 15.00)),
    ("claude-sonnet-4", (3.00, 15.00)),
)


def price_for(model: str) -> Tuple[float, float]:
    """(input, output) price per 1M tokens; local models are free."""
    best = (0.0, 0.0)
    best_len = 0
    for prefix, price in _PRICING:
        if model.startswith(prefix) and len(prefix) > best_len:
            best, best_len = price, len(prefix)
    return best


def _retryable_exceptions() -> tuple:
    exceptions = [TimeoutError, ConnectionError]
    try:
        from openai import APIConnectionError, APITimeoutError, RateLimitError
        exceptions.extend([RateLimitError, APITimeoutError, APIConnectionError])
    except ImportError:
        pass
    try:
        from anthropic import RateLimitError as AnthropicRateLimit
        exceptions.append(AnthropicRateLimit)
    except ImportError:
        pass
    return tuple(exceptions)


def _usage_counts(raw: Any) -> Tuple[Optional[int], Optional[int]]:
    usage = raw.get("usage") if isinstance(raw, dict) else getattr(raw, "usage", None)
    if not usage:
        return None, None
    return getattr(usage, "prompt_tokens", None), getattr(usage, "completion_tokens", None)


# ── Usage ──────────────────────────────────────────────────────────────


@dataclass
class GatewayUsage:
    calls: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    latency_ms: float = 0.0
    errors: int = 0
    retries: int = 0
    cost_usd: float = 0.0
    calls_by_purpose: dict = field(default_factory=lambda: defaultdict(int))
    tokens_by_purpose: dict = field(default_factory=lambda: defaultdict(int))
    errors_by_type: dict = field(default_factory=lambda: defaultdict(int))

    def to_dict(self) -> dict:
        return {
            "total_calls": self.calls,
            "total_tokens_in": self.tokens_in,
            "total_tokens_out": self.tokens_out,
            "total_latency_ms": round(self.latency_ms, 1),
            "avg_latency_ms": round(self.latency_ms / max(self.calls, 1), 1),
            "errors": self.errors,
            "retries": self.retries,
            "calls_by_purpose": dict(self.calls_by_purpose),
            "tokens_by_purpose": dict(self.tokens_by_purpose),
            "errors_by_type": dict(self.errors_by_type),
            "estimated_cost_usd": round(self.cost_usd, 4),
        }


# ── Gateway ────────────────────────────────────────────────────────────


class LLMGateway(CustomLLM):
    """LLM proxy used by every translation callback.

    Args:
        llm: the provider LLM to wrap
        max_tries: attempts per call on retryable provider errors
        max_time: overall retry budget in seconds
        token_counter: object with ``count(text)``; used when the provider
            reports no usage. Without one, token counts are estimated from
            whitespace-separated words.
    """

    # CustomLLM is a Pydantic model; private state goes through object.__setattr__.
    _llm: Any = None
    _usage: GatewayUsage = None
    _lock: threading.Lock = None
    _retry_on: tuple = None
    _max_tries: int = DEFAULT_MAX_TRIES
    _max_time: int = DEFAULT_MAX_TIME
    _token_counter: Any = None

    def __init__(
        self,
        llm: Any,
        max_tries: int = DEFAULT_MAX_TRIES,
        max_time: int = DEFAULT_MAX_TIME,
        token_counter: Any = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        object.__setattr__(self, "_llm", llm)
        object.__setattr__(self, "_usage", GatewayUsage())
        object.__setattr__(self, "_lock", threading.Lock())
        object.__setattr__(self, "_retry_on", _retryable_exceptions())
        object.__setattr__(self, "_max_tries", max(1, max_tries))
        object.__setattr__(self, "_max_time", max_time)
        object.__setattr__(self, "_token_counter", token_counter)
        logger.info(f"LLMGateway wrapping {type(llm).__name__} (model={self.model}, max_tries={self._max_tries})")

    @property
    def metadata(self) -> LLMMetadata:
        return self._llm.metadata

    @property
    def model(self) -> str:
        return getattr(self._llm, "model", "unknown")

    # ── LLM interface ─────────────────────────────────────────────────

    def chat(self, messages: Sequence[ChatMessage], **kwargs: Any) -> ChatResponse:
        purpose = kwargs.pop("gateway_purpose", DEFAULT_PURPOSE)
        prompt = "\n".join(m.content or "" for m in messages)

        def answer(response: ChatResponse) -> str:
            if response is None or response.message is None:
                return ""
            return response.message.content or ""

        return self._invoke(purpose, prompt, answer, self._llm.chat, messages, **kwargs)

    def complete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponse:
        purpose = kwargs.pop("gateway_purpose", DEFAULT_PURPOSE)
        return self._invoke(
            purpose, prompt, lambda r: r.text or "",
            self._llm.complete, prompt, formatted=formatted, **kwargs,
        )

    def stream_complete(
        self, prompt: str, formatted: bool = False, **kwargs: Any
    ) -> Generator[CompletionResponse, None, None]:
        """Streaming passthrough without retry; usage is recorded when the stream ends."""
        purpose = kwargs.pop("gateway_purpose", DEFAULT_PURPOSE)
        started = time.monotonic()
        parts = []
        try:
            for chunk in self._llm.stream_complete(prompt, formatted=formatted, **kwargs):
                parts.append(chunk.delta or "")
                yield chunk
        except Exception as e:
            self._record_error(purpose, e)
            raise
        self._record(purpose, prompt, "".join(parts), None, started)

    # ── Internals ─────────────────────────────────────────────────────

    def _invoke(self, purpose: str, prompt: str, answer: Callable[[Any], str], fn, *args, **kwargs):
        started = time.monotonic()

        @backoff.on_exception(
            backoff.expo,
            self._retry_on,
            max_tries=self._max_tries,
            max_time=self._max_time,
            on_backoff=self._on_backoff,
        )
        def call():
            return fn(*args, **kwargs)

        try:
            response = call()
        except Exception as e:
            self._record_error(purpose, e)
            raise
        self._record(purpose, prompt, answer(response), getattr(response, "raw", None), started)
        return response

    def _on_backoff(self, details: dict) -> None:
        with self._lock:
            self._usage.retries += 1
        logger.warning(
            "LLM call retry %d/%d in %.1fs (%s)",
            details["tries"], self._max_tries, details["wait"],
            type(details.get("exception")).__name__,
        )

    def _count(self, text: str) -> int:
        if self._token_counter is not None:
            return self._token_counter.count(text)
        return int(len(text.split()) * 1.3)

    def _record(self, purpose: str, prompt: str, text: str, raw: Any, started: float) -> None:
        latency_ms = (time.monotonic() - started) * 1000
        reported_in, reported_out = _usage_counts(raw)
        tokens_in = reported_in or self._count(prompt)
        tokens_out = reported_out or self._count(text)
        price_in, price_out = price_for(self.model)

        with self._lock:
            u = self._usage
            u.calls += 1
            u.tokens_in += tokens_in
            u.tokens_out += tokens_out
            u.latency_ms += latency_ms
            u.cost_usd += (tokens_in * price_in + tokens_out * price_out) / 1_000_000
            u.calls_by_purpose[purpose] += 1
            u.tokens_by_purpose[purpose] += tokens_in + tokens_out

        logger.debug(
            f"LLM call {purpose}: in={tokens_in} out={tokens_out} "
            f"{latency_ms:.0f}ms model={self.model}"
        )

    def _record_error(self, purpose: str, exc: BaseException) -> None:
        with self._lock:
            self._usage.errors += 1
            self._usage.calls_by_purpose[f"{purpose}_error"] += 1
            self._usage.errors_by_type[type(exc).__name__] += 1
        logger.error(f"LLM call {purpose} failed on {self.model}: {type(exc).__name__}: {exc}")

    # ── Usage API ─────────────────────────────────────────────────────

    def get_metrics(self) -> dict:
        with self._lock:
            result = self._usage.to_dict()
        result["model"] = self.model
        return result

    def reset_metrics(self) -> None:
        with self._lock:
            object.__setattr__(self, "_usage", GatewayUsage())

    @classmethod
    def class_name(cls) -> str:
        return "LLMGateway"
