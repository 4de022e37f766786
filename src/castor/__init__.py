"""Castor: one request/response contract over several LLM backends.

Public API:
    - Session: active configuration plus the adapter bound to it
    - Config: model, auth method, credential
    - UnifiedRequest / UnifiedResponse and their parts
    - GeminiAdapter (native) and AnthropicAdapter (bridged)
"""

from __future__ import annotations

import logging

from castor.config import Config
from castor.errors import (
    CastorError,
    ConfigurationError,
    InternalError,
    ProviderError,
    RateLimitError,
    SchemaTranslationError,
    UnsupportedOperationError,
)
from castor.providers import (
    BRIDGED_STEP_LIMIT,
    AdapterCapabilities,
    AnthropicAdapter,
    GeminiAdapter,
    MockAdapter,
    ProviderAdapter,
)
from castor.registry import AdapterRegistry, Session
from castor.types import (
    PENDING_STATUS,
    ContentPart,
    ConversationTurn,
    EmbedRequest,
    EmbedResponse,
    FinishReason,
    FunctionCall,
    FunctionResponse,
    GenerationConfig,
    Text,
    ToolDeclaration,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
    is_pending,
    pending_calls,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-bridge")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())

__all__ = [
    "BRIDGED_STEP_LIMIT",
    "PENDING_STATUS",
    "AdapterCapabilities",
    "AdapterRegistry",
    "AnthropicAdapter",
    "CastorError",
    "Config",
    "ConfigurationError",
    "ContentPart",
    "ConversationTurn",
    "EmbedRequest",
    "EmbedResponse",
    "FinishReason",
    "FunctionCall",
    "FunctionResponse",
    "GeminiAdapter",
    "GenerationConfig",
    "InternalError",
    "MockAdapter",
    "ProviderAdapter",
    "ProviderError",
    "RateLimitError",
    "SchemaTranslationError",
    "Session",
    "Text",
    "ToolDeclaration",
    "UnifiedRequest",
    "UnifiedResponse",
    "UnsupportedOperationError",
    "Usage",
    "is_pending",
    "pending_calls",
]
