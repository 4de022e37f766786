"""Translation between the unified model and provider-native shapes."""

from castor.translation.flatten import DEFAULT_PROMPT, flatten_conversation
from castor.translation.normalize import (
    normalize_finish_reason,
    normalize_result,
    normalize_usage,
)
from castor.translation.schema import TranslatedTool, translate_schema, translate_tools
from castor.translation.streaming import forward_chunks, single_shot_stream
from castor.translation.tokens import estimate_tokens

__all__ = [
    "DEFAULT_PROMPT",
    "TranslatedTool",
    "estimate_tokens",
    "flatten_conversation",
    "forward_chunks",
    "normalize_finish_reason",
    "normalize_result",
    "normalize_usage",
    "single_shot_stream",
    "translate_schema",
    "translate_tools",
]
