"""Adapter implementations."""

from .anthropic import BRIDGED_STEP_LIMIT, AnthropicAdapter
from .base import AdapterCapabilities, ProviderAdapter
from .gemini import GeminiAdapter
from .mock import MockAdapter

__all__ = [
    "BRIDGED_STEP_LIMIT",
    "AdapterCapabilities",
    "AnthropicAdapter",
    "GeminiAdapter",
    "MockAdapter",
    "ProviderAdapter",
]
