"""Domain models for the bridged SDK transport layer."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

ToolExecutor = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class BridgedTool:
    """One entry of the tool map handed to a bridged generation call."""

    description: str
    parameters: type[BaseModel]
    executor: ToolExecutor


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """What an executor returned for a tool call."""

    call_id: str
    name: str
    result: Any = None


@dataclass
class StepResult:
    """Outcome of a bridged generation call.

    ``usage`` keeps the SDK's own counter names (``prompt_tokens``,
    ``completion_tokens``, ``total_tokens``); it is ``None`` when the SDK
    reported no usage at all.
    """

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    usage: dict[str, int] | None = None
    finish_reason: str | None = "stop"
    steps: int = 0
