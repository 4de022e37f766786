"""Mock adapter for testing without API calls."""

from __future__ import annotations

from typing import TYPE_CHECKING

from castor.errors import UnsupportedOperationError
from castor.providers.base import AdapterCapabilities
from castor.translation.flatten import flatten_conversation
from castor.translation.streaming import single_shot_stream
from castor.translation.tokens import estimate_tokens
from castor.types import FinishReason, Text, UnifiedResponse, Usage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from castor.config import Config
    from castor.types import EmbedRequest, EmbedResponse, UnifiedRequest


class MockAdapter:
    """Deterministic adapter: echoes the last user text, needs no credential."""

    name = "mock"

    def __init__(self, config: Config | None = None) -> None:
        """Accept a config for factory symmetry; nothing is read from it."""
        _ = config

    @property
    def capabilities(self) -> AdapterCapabilities:
        """Return supported feature flags."""
        return AdapterCapabilities(
            embeddings=False,
            native_tokenizer=False,
            incremental_streaming=False,
        )

    async def generate(self, request: UnifiedRequest) -> UnifiedResponse:
        """Return a deterministic echo of the latest user text."""
        text = ""
        for turn in reversed(request.turns):
            if turn.role != "user":
                continue
            text = "".join(p.text for p in turn.parts if isinstance(p, Text))
            if text:
                break
        prompt_tokens = estimate_tokens(flatten_conversation(request.turns))
        reply = f"echo: {text[:100]}"
        output_tokens = estimate_tokens(reply)
        return UnifiedResponse(
            parts=(Text(reply),),
            finish_reason=FinishReason.STOP,
            usage=Usage(
                prompt_token_count=prompt_tokens,
                candidates_token_count=output_tokens,
                total_token_count=prompt_tokens + output_tokens,
            ),
        )

    def generate_stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        """Serve the echo as a single increment."""
        return single_shot_stream(lambda: self.generate(request))

    async def count_tokens(self, request: UnifiedRequest) -> int:
        """Estimate tokens from the flattened conversation."""
        return estimate_tokens(flatten_conversation(request.turns))

    async def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Raise because the mock has no embedding model."""
        _ = request
        raise UnsupportedOperationError("Embeddings not supported by the mock adapter")

    async def aclose(self) -> None:
        """Nothing to release."""
