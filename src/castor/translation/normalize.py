"""Bridged SDK results → UnifiedResponse.

Part order is fixed: the text part (if any), then one FunctionCall per
requested call, then one FunctionResponse per tool result, both in the
order the SDK emitted them.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING, Any

from castor.types import (
    ContentPart,
    FinishReason,
    FunctionCall,
    FunctionResponse,
    Text,
    UnifiedResponse,
    Usage,
)

if TYPE_CHECKING:
    from castor.providers.models import StepResult

log = logging.getLogger(__name__)

# Provider-specific reasons fold into the normalized set here. Add entries as
# providers surface new reasons; anything unmapped becomes UNKNOWN.
_FINISH_REASONS: dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "tool_use": FinishReason.STOP,
    "tool_calls": FinishReason.STOP,
    "pause_turn": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "max_tokens": FinishReason.MAX_TOKENS,
    "refusal": FinishReason.SAFETY,
    "safety": FinishReason.SAFETY,
    "content_filter": FinishReason.SAFETY,
}

_USAGE_KEYS = {
    "prompt_token_count": ("prompt_tokens", "promptTokens", "input_tokens"),
    "candidates_token_count": (
        "completion_tokens",
        "completionTokens",
        "output_tokens",
    ),
    "total_token_count": ("total_tokens", "totalTokens"),
}


def normalize_finish_reason(raw: Any) -> FinishReason:
    """Map a provider stop reason onto ``FinishReason``."""
    if raw is None:
        return FinishReason.UNKNOWN
    if isinstance(raw, FinishReason):
        return raw
    name = getattr(raw, "value", raw)
    reason = _FINISH_REASONS.get(str(name).lower())
    if reason is None:
        log.debug("Unmapped finish reason %r", raw)
        return FinishReason.UNKNOWN
    return reason


def normalize_usage(raw: Mapping[str, Any] | None) -> Usage | None:
    """Build ``Usage`` from SDK counters; missing counters default to 0."""
    if raw is None:
        return None
    counts: dict[str, Any] = {}
    for target, sources in _USAGE_KEYS.items():
        counts[target] = next((raw[k] for k in sources if raw.get(k) is not None), 0)
    return Usage(**counts)


def normalize_result(result: StepResult) -> UnifiedResponse:
    """Convert one bridged step result into a UnifiedResponse."""
    parts: list[ContentPart] = []
    if result.text:
        parts.append(Text(result.text))
    for call in result.tool_calls:
        parts.append(FunctionCall(name=call.name, args=dict(call.args), id=call.id))
    for tool_result in result.tool_results:
        parts.append(
            FunctionResponse(
                name=tool_result.name or tool_result.call_id,
                result=tool_result.result,
                id=tool_result.call_id,
            )
        )
    return UnifiedResponse(
        parts=tuple(parts),
        finish_reason=normalize_finish_reason(result.finish_reason),
        usage=normalize_usage(result.usage),
    )
