"""Test helpers (small, reusable doubles).

Fake SDK clients that record what adapters send and return scripted
results, so adapter tests never touch the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from castor.config import Config

# =============================================================================
# Anthropic
# =============================================================================


def anthropic_message(
    *blocks: Any,
    stop_reason: str | None = "end_turn",
    usage: tuple[int, int] | None = (10, 5),
) -> SimpleNamespace:
    """Build an object shaped like an Anthropic ``Message``."""
    return SimpleNamespace(
        content=list(blocks),
        stop_reason=stop_reason,
        usage=(
            SimpleNamespace(input_tokens=usage[0], output_tokens=usage[1])
            if usage is not None
            else None
        ),
    )


def text_block(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="text", text=text)


def tool_use_block(call_id: str, name: str, args: dict[str, Any]) -> SimpleNamespace:
    return SimpleNamespace(type="tool_use", id=call_id, name=name, input=args)


@dataclass
class _FakeMessages:
    script: list[Any]
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        item = self.script.pop(0) if self.script else anthropic_message(text_block("ok"))
        if isinstance(item, BaseException):
            raise item
        return item


class FakeAnthropicClient:
    """Stands in for ``AsyncAnthropic``; records ``messages.create`` kwargs."""

    def __init__(self, *script: Any) -> None:
        self.messages = _FakeMessages(list(script))
        self.closed = 0

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.messages.calls

    async def close(self) -> None:
        self.closed += 1


# =============================================================================
# google-genai
# =============================================================================


def gemini_response(
    *parts: Any,
    finish_reason: Any = "STOP",
    usage: tuple[int, int, int] | None = (4, 6, 10),
) -> SimpleNamespace:
    """Build an object shaped like a ``GenerateContentResponse``."""
    return SimpleNamespace(
        candidates=[
            SimpleNamespace(
                content=SimpleNamespace(role="model", parts=list(parts)),
                finish_reason=finish_reason,
            )
        ],
        usage_metadata=(
            SimpleNamespace(
                prompt_token_count=usage[0],
                candidates_token_count=usage[1],
                total_token_count=usage[2],
            )
            if usage is not None
            else None
        ),
    )


def gemini_text(text: str) -> SimpleNamespace:
    return SimpleNamespace(text=text, function_call=None, function_response=None)


def gemini_call(name: str, args: dict[str, Any], call_id: str | None = None) -> Any:
    return SimpleNamespace(
        text=None,
        function_call=SimpleNamespace(name=name, args=args, id=call_id),
        function_response=None,
    )


class FakeStream:
    """Async iterator over chunks that counts how often it is opened and closed."""

    def __init__(self, chunks: list[Any], transport: FakeTransport) -> None:
        self._chunks = list(chunks)
        self._transport = transport
        transport.opened += 1

    def __aiter__(self) -> FakeStream:
        return self

    async def __anext__(self) -> Any:
        if not self._chunks:
            raise StopAsyncIteration
        item = self._chunks.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self._transport.closed += 1


@dataclass
class FakeTransport:
    opened: int = 0
    closed: int = 0


@dataclass
class _FakeModels:
    responses: list[Any]
    chunks: list[Any]
    transport: FakeTransport
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    total_tokens: int = 7
    error: BaseException | None = None

    async def generate_content(self, **kwargs: Any) -> Any:
        self.calls.append(("generate_content", kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)

    async def generate_content_stream(self, **kwargs: Any) -> FakeStream:
        self.calls.append(("generate_content_stream", kwargs))
        if self.error is not None:
            raise self.error
        return FakeStream(self.chunks, self.transport)

    async def count_tokens(self, **kwargs: Any) -> Any:
        self.calls.append(("count_tokens", kwargs))
        return SimpleNamespace(total_tokens=self.total_tokens)

    async def embed_content(self, **kwargs: Any) -> Any:
        self.calls.append(("embed_content", kwargs))
        return SimpleNamespace(
            embeddings=[
                SimpleNamespace(values=[float(len(text)), 1.0])
                for text in kwargs["contents"]
            ]
        )


class FakeGenaiClient:
    """Stands in for ``genai.Client``; only the ``aio`` surface is faked."""

    def __init__(
        self, responses: list[Any] | None = None, chunks: list[Any] | None = None
    ) -> None:
        self.transport = FakeTransport()
        self.models = _FakeModels(list(responses or []), list(chunks or []), self.transport)
        self.aio = SimpleNamespace(models=self.models, aclose=self._aclose)
        self.closed = 0

    async def _aclose(self) -> None:
        self.closed += 1


# =============================================================================
# Config
# =============================================================================


def claude_config(**overrides: Any) -> Config:
    values: dict[str, Any] = {
        "model": "claude-sonnet-4-20250514",
        "auth_method": "claude-api-key",
        "api_key": "test-key",
    }
    values.update(overrides)
    return Config(**values)


def gemini_config(**overrides: Any) -> Config:
    values: dict[str, Any] = {
        "model": "gemini-2.5-pro",
        "auth_method": "gemini-api-key",
        "api_key": "test-key",
    }
    values.update(overrides)
    return Config(**values)
