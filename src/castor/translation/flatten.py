"""Structured conversation → flat transcript prompt.

Bridged SDKs take a single prompt string. Each turn becomes up to three
kinds of lines, joined by blank lines:

    User: <text>
    Assistant called tool: <name> with args: <json>
    Tool <name> returned: <json>

Within a turn the text line comes first, then calls, then results, each in
part order. A turn that yields no line is dropped.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from castor.types import FunctionCall, FunctionResponse, Text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from castor.types import ConversationTurn, Role

#: Prompt sent when the transcript is empty.
# TODO: revisit once callers stop sending turns made only of unsupported parts;
# the fallback hides those bugs.
DEFAULT_PROMPT = "Hello"

TURN_SEPARATOR = "\n\n"

_ROLE_LABELS: dict[Role, str] = {
    "user": "User",
    "model": "Assistant",
}


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _turn_lines(turn: ConversationTurn) -> list[str]:
    label = _ROLE_LABELS.get(turn.role, "User")
    texts: list[str] = []
    calls: list[str] = []
    results: list[str] = []
    for part in turn.parts:
        if isinstance(part, Text):
            if part.text:
                texts.append(part.text)
        elif isinstance(part, FunctionCall):
            calls.append(
                f"{label} called tool: {part.name} with args: {_to_json(dict(part.args))}"
            )
        elif isinstance(part, FunctionResponse):
            results.append(f"Tool {part.name} returned: {_to_json(part.result)}")

    lines: list[str] = []
    if texts:
        lines.append(f"{label}: {''.join(texts)}")
    lines.extend(calls)
    lines.extend(results)
    return lines


def flatten_conversation(turns: Iterable[ConversationTurn]) -> str:
    """Render turns as a transcript; never returns an empty string."""
    lines: list[str] = []
    for turn in turns:
        lines.extend(_turn_lines(turn))
    return TURN_SEPARATOR.join(lines) or DEFAULT_PROMPT
