"""Adapter protocol: the one contract every backend satisfies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from castor.types import EmbedRequest, EmbedResponse, UnifiedRequest, UnifiedResponse


@dataclass(frozen=True)
class AdapterCapabilities:
    """Feature flags exposed by adapters."""

    embeddings: bool
    native_tokenizer: bool
    incremental_streaming: bool
    #: Reached through a foreign SDK whose shapes need translation.
    bridged: bool = False


@runtime_checkable
class ProviderAdapter(Protocol):
    """Capability set: generate, generate_stream, count_tokens, embed.

    Adapters never execute tools and keep no per-request state; one instance
    may serve many concurrent requests.
    """

    name: str

    @property
    def capabilities(self) -> AdapterCapabilities:
        """Feature flags for this backend."""
        ...

    async def generate(self, request: UnifiedRequest) -> UnifiedResponse:
        """Run one generation call."""
        ...

    def generate_stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        """Return a lazy, single-use stream of response increments."""
        ...

    async def count_tokens(self, request: UnifiedRequest) -> int:
        """Count (or estimate) prompt tokens for the request."""
        ...

    async def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Embed texts, or raise UnsupportedOperationError."""
        ...

    async def aclose(self) -> None:
        """Release the underlying SDK client."""
        ...
