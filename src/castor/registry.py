"""Adapter bindings: which adapter answers for the active model and auth method.

Bindings change only at configuration points (selecting an auth method,
switching models). Every request captures its adapter once, under the lock,
when it is dispatched; a later configuration change never reaches a request
that is already in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import replace
import logging
import threading
from typing import TYPE_CHECKING

from castor.config import (
    CLAUDE_SONNET_4,
    DEFAULT_GEMINI_MODEL,
    AuthMethod,
    Config,
    is_claude_model,
)
from castor.errors import ConfigurationError
from castor.providers.anthropic import AnthropicAdapter
from castor.providers.gemini import GeminiAdapter
from castor.providers.mock import MockAdapter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from castor.providers.base import ProviderAdapter
    from castor.types import EmbedRequest, EmbedResponse, UnifiedRequest, UnifiedResponse

log = logging.getLogger(__name__)

AdapterFactory = Callable[[Config], "ProviderAdapter"]

DEFAULT_BINDINGS: Mapping[str, AdapterFactory] = {
    "gemini-api-key": GeminiAdapter,
    "vertex-ai": GeminiAdapter,
    "claude-api-key": AnthropicAdapter,
}


class AdapterRegistry:
    """Mapping from auth method to the adapter factory that serves it."""

    def __init__(self, bindings: Mapping[str, AdapterFactory] | None = None) -> None:
        self._lock = threading.Lock()
        self._factories: dict[str, AdapterFactory] = dict(
            DEFAULT_BINDINGS if bindings is None else bindings
        )

    def bind(self, auth_method: str, factory: AdapterFactory) -> None:
        """Bind *auth_method* to *factory*, replacing any previous binding."""
        with self._lock:
            self._factories[auth_method] = factory

    def unbind(self, auth_method: str) -> None:
        """Remove the binding for *auth_method* if present."""
        with self._lock:
            self._factories.pop(auth_method, None)

    def list_bindings(self) -> list[str]:
        """List bound auth methods, sorted."""
        with self._lock:
            return sorted(self._factories)

    def resolve(self, auth_method: str) -> AdapterFactory:
        """Return the factory bound to *auth_method*."""
        with self._lock:
            factory = self._factories.get(auth_method)
        if factory is None:
            raise ConfigurationError(
                f"No adapter bound for auth method {auth_method!r}",
                hint="Register one with AdapterRegistry.bind().",
            )
        return factory

    def create(self, config: Config) -> ProviderAdapter:
        """Build the adapter bound to ``config.auth_method``.

        Mock mode always yields a MockAdapter. Construction errors, such as a
        missing credential, propagate as ConfigurationError.
        """
        if config.use_mock:
            return MockAdapter(config)
        return self.resolve(config.auth_method)(config)


def model_for_auth(current_model: str, auth_method: AuthMethod) -> str:
    """Pick the model to use after switching to *auth_method*.

    Claude auth always moves to Claude Sonnet 4. A Google auth method moves
    a Claude model back to the default Gemini model and keeps any other.
    """
    if auth_method == "claude-api-key":
        return CLAUDE_SONNET_4
    if is_claude_model(current_model):
        return DEFAULT_GEMINI_MODEL
    return current_model


class Session:
    """Holds the active configuration and the adapter bound to it.

    Each request holds a lease on the adapter it captured. When a request
    finishes, replaced adapters with no remaining lease are closed;
    ``aclose()`` closes the rest. A stream that is created but never
    iterated keeps its lease until ``aclose()``.
    """

    def __init__(self, config: Config, registry: AdapterRegistry | None = None) -> None:
        """Bind eagerly so credential problems surface at configuration time."""
        self._registry = registry or AdapterRegistry()
        self._lock = threading.Lock()
        self._config = config
        self._adapter = self._registry.create(config)
        self._retired: list[ProviderAdapter] = []
        # In-flight request count per adapter, keyed by id().
        self._leases: dict[int, int] = {}

    @property
    def config(self) -> Config:
        """The active configuration."""
        with self._lock:
            return self._config

    def dispatch(self) -> ProviderAdapter:
        """Capture the adapter for one request."""
        with self._lock:
            return self._adapter

    @property
    def adapter(self) -> ProviderAdapter:
        """The currently bound adapter."""
        return self.dispatch()

    def _rebind(self, config: Config) -> None:
        adapter = self._registry.create(config)
        with self._lock:
            self._retired.append(self._adapter)
            self._adapter = adapter
            self._config = config
        log.info("Bound %s adapter for model %s", adapter.name, config.model)

    def select_auth(self, auth_method: AuthMethod) -> Config:
        """Switch auth method, adjusting the model the way the CLI expects.

        The credential is re-resolved for the new method. If the new adapter
        cannot be built, the previous binding stays active.
        """
        current = self.config
        model = model_for_auth(current.model, auth_method)
        if model != current.model:
            log.info("Switched model to %s for %s authentication", model, auth_method)
        config = replace(current, auth_method=auth_method, model=model, api_key=None)
        self._rebind(config)
        return config

    def switch_model(self, model: str) -> Config:
        """Change the active model, keeping the auth method and credential."""
        config = replace(self.config, model=model)
        self._rebind(config)
        return config

    # ------------------------------------------------------------------
    # Request leases
    # ------------------------------------------------------------------

    def _acquire(self) -> ProviderAdapter:
        with self._lock:
            adapter = self._adapter
            self._leases[id(adapter)] = self._leases.get(id(adapter), 0) + 1
            return adapter

    async def _release(self, adapter: ProviderAdapter) -> None:
        with self._lock:
            remaining = self._leases.pop(id(adapter)) - 1
            if remaining:
                self._leases[id(adapter)] = remaining
            idle = [a for a in self._retired if id(a) not in self._leases]
            self._retired = [a for a in self._retired if id(a) in self._leases]
        await _close_all(idle)

    async def generate(self, request: UnifiedRequest) -> UnifiedResponse:
        """Generate with the adapter bound at dispatch time."""
        adapter = self._acquire()
        try:
            return await adapter.generate(request)
        finally:
            await self._release(adapter)

    def generate_stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        """Stream with the adapter bound at dispatch time.

        The adapter is held until the stream is exhausted or closed.
        """
        adapter = self._acquire()
        return self._leased_stream(adapter, request)

    async def _leased_stream(
        self, adapter: ProviderAdapter, request: UnifiedRequest
    ) -> AsyncIterator[UnifiedResponse]:
        increments = adapter.generate_stream(request)
        try:
            async for increment in increments:
                yield increment
        finally:
            aclose = getattr(increments, "aclose", None)
            try:
                if callable(aclose):
                    await aclose()
            finally:
                await self._release(adapter)

    async def count_tokens(self, request: UnifiedRequest) -> int:
        """Count tokens with the adapter bound at dispatch time."""
        adapter = self._acquire()
        try:
            return await adapter.count_tokens(request)
        finally:
            await self._release(adapter)

    async def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Embed with the adapter bound at dispatch time."""
        adapter = self._acquire()
        try:
            return await adapter.embed(request)
        finally:
            await self._release(adapter)

    async def aclose(self) -> None:
        """Close the active adapter and every retired one still open."""
        with self._lock:
            adapters = [*self._retired, self._adapter]
            self._retired = []
        await _close_all(adapters)


async def _close_all(adapters: list[ProviderAdapter]) -> None:
    for adapter in adapters:
        try:
            await adapter.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.warning("Adapter cleanup failed for %s: %s", adapter.name, exc)
