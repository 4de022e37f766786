"""Provider-agnostic data model shared by every adapter.

Requests and responses are frozen dataclasses so a single request can be
read by concurrent tasks without copying. Content parts and schema nodes are
closed tagged unions: consumers dispatch with ``isinstance`` over a known set
of variants and never probe attributes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Literal, Union

from castor.errors import InternalError

log = logging.getLogger(__name__)

Role = Literal["user", "model"]

#: Status carried by the placeholder result of a tool call the caller must run.
PENDING_STATUS = "pending"


# =============================================================================
# Content parts
# =============================================================================


@dataclass(frozen=True)
class Text:
    """Plain generated or user-authored text."""

    text: str


@dataclass(frozen=True)
class FunctionCall:
    """A request from the model to invoke a tool."""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class FunctionResponse:
    """The result of a tool invocation."""

    name: str
    result: Any = None
    id: str | None = None


ContentPart = Union[Text, FunctionCall, FunctionResponse]


def is_pending(part: ContentPart) -> bool:
    """Whether *part* is a placeholder result the caller still has to execute."""
    if not isinstance(part, FunctionResponse):
        return False
    result = part.result
    return isinstance(result, Mapping) and result.get("status") == PENDING_STATUS


@dataclass(frozen=True)
class ConversationTurn:
    """One turn of a conversation: a role and its ordered parts."""

    role: Role
    parts: tuple[ContentPart, ...] = ()

    @classmethod
    def user(cls, text: str) -> ConversationTurn:
        """Build a single-text user turn."""
        return cls(role="user", parts=(Text(text),))

    @classmethod
    def model(cls, text: str) -> ConversationTurn:
        """Build a single-text model turn."""
        return cls(role="model", parts=(Text(text),))


# =============================================================================
# Tool schemas
# =============================================================================


@dataclass(frozen=True)
class StringSchema:
    description: str | None = None


@dataclass(frozen=True)
class NumberSchema:
    description: str | None = None


@dataclass(frozen=True)
class BooleanSchema:
    description: str | None = None


@dataclass(frozen=True)
class UnconstrainedSchema:
    description: str | None = None


@dataclass(frozen=True)
class ArraySchema:
    """Array node; ``items`` is kept for fidelity but translation widens it."""

    items: SchemaNode = field(default_factory=UnconstrainedSchema)
    description: str | None = None


@dataclass(frozen=True)
class ObjectSchema:
    """Object node with named properties and the set of required names."""

    properties: Mapping[str, SchemaNode] = field(default_factory=dict)
    required: frozenset[str] = frozenset()
    description: str | None = None


SchemaNode = Union[
    ObjectSchema,
    StringSchema,
    NumberSchema,
    BooleanSchema,
    ArraySchema,
    UnconstrainedSchema,
]

_PRIMITIVES: dict[str, type[StringSchema | NumberSchema | BooleanSchema]] = {
    "string": StringSchema,
    "number": NumberSchema,
    "integer": NumberSchema,
    "boolean": BooleanSchema,
}


def schema_from_json(node: Any) -> SchemaNode:
    """Build a schema tree from a JSON-Schema-style mapping.

    Type names are matched case-insensitively so both ``"object"`` and the
    Gemini ``"OBJECT"`` spelling are accepted. ``"integer"`` is widened to
    ``NumberSchema``, so integer parameters are advertised (and rendered back)
    as ``"number"``; integral values still validate. Anything unrecognized
    becomes ``UnconstrainedSchema``; a malformed property never aborts its
    siblings.
    """
    if not isinstance(node, Mapping):
        return UnconstrainedSchema()

    description = node.get("description")
    if not isinstance(description, str):
        description = None

    raw_type = node.get("type")
    kind = raw_type.lower() if isinstance(raw_type, str) else None

    if kind == "object":
        properties: dict[str, SchemaNode] = {}
        raw_props = node.get("properties")
        if isinstance(raw_props, Mapping):
            for name, prop in raw_props.items():
                if not isinstance(name, str):
                    log.warning("Skipping schema property with non-string name %r", name)
                    continue
                properties[name] = schema_from_json(prop)
        raw_required = node.get("required")
        required: frozenset[str] = frozenset()
        if isinstance(raw_required, (list, tuple, set, frozenset)):
            required = frozenset(r for r in raw_required if isinstance(r, str))
        return ObjectSchema(
            properties=properties, required=required, description=description
        )
    if kind == "array":
        return ArraySchema(
            items=schema_from_json(node.get("items")), description=description
        )
    if kind in _PRIMITIVES:
        return _PRIMITIVES[kind](description=description)
    return UnconstrainedSchema(description=description)


def schema_to_json(node: SchemaNode) -> dict[str, Any]:
    """Render a schema tree back to a JSON-Schema mapping."""
    out: dict[str, Any]
    if isinstance(node, ObjectSchema):
        out = {
            "type": "object",
            "properties": {k: schema_to_json(v) for k, v in node.properties.items()},
        }
        required = [name for name in node.properties if name in node.required]
        if required:
            out["required"] = required
    elif isinstance(node, ArraySchema):
        out = {"type": "array", "items": schema_to_json(node.items)}
    elif isinstance(node, StringSchema):
        out = {"type": "string"}
    elif isinstance(node, NumberSchema):
        out = {"type": "number"}
    elif isinstance(node, BooleanSchema):
        out = {"type": "boolean"}
    elif isinstance(node, UnconstrainedSchema):
        out = {}
    else:
        raise InternalError(f"Unknown schema node: {type(node).__name__}")
    if node.description is not None:
        out["description"] = node.description
    return out


@dataclass(frozen=True)
class ToolDeclaration:
    """A tool the model may call; the adapter never executes it."""

    name: str
    description: str = ""
    parameters: SchemaNode = field(default_factory=ObjectSchema)

    @classmethod
    def from_json(
        cls, name: str, description: str = "", parameters: Any = None
    ) -> ToolDeclaration:
        """Build a declaration from a JSON-Schema parameter mapping."""
        return cls(
            name=name,
            description=description,
            parameters=(
                schema_from_json(parameters)
                if parameters is not None
                else ObjectSchema()
            ),
        )


# =============================================================================
# Requests and responses
# =============================================================================


@dataclass(frozen=True)
class GenerationConfig:
    """Model id plus sampling parameters for one call."""

    model: str = ""
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    max_output_tokens: int | None = None
    system_instruction: str | None = None


@dataclass(frozen=True)
class UnifiedRequest:
    """A provider-agnostic generation request."""

    turns: tuple[ConversationTurn, ...] = ()
    tools: tuple[ToolDeclaration, ...] = ()
    config: GenerationConfig = field(default_factory=GenerationConfig)
    stream: bool = False


class FinishReason(str, Enum):
    """Normalized reason a generation ended."""

    STOP = "stop"
    MAX_TOKENS = "max_tokens"
    SAFETY = "safety"
    #: Reserved for adapters that surface tool use as a distinct reason.
    TOOL_CALLS = "tool_calls"
    UNKNOWN = "unknown"


def _non_negative(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))


@dataclass(frozen=True)
class Usage:
    """Token counters; each defaults to 0 and is never negative."""

    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0

    def __post_init__(self) -> None:
        """Coerce counters to non-negative ints."""
        object.__setattr__(
            self, "prompt_token_count", _non_negative(self.prompt_token_count)
        )
        object.__setattr__(
            self, "candidates_token_count", _non_negative(self.candidates_token_count)
        )
        object.__setattr__(
            self, "total_token_count", _non_negative(self.total_token_count)
        )


@dataclass(frozen=True)
class UnifiedResponse:
    """A provider-agnostic generation result (or one stream increment)."""

    parts: tuple[ContentPart, ...] = ()
    finish_reason: FinishReason = FinishReason.UNKNOWN
    usage: Usage | None = None
    error: str | None = None

    @property
    def text(self) -> str:
        """Concatenated text of all Text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, Text))

    @property
    def function_calls(self) -> list[FunctionCall]:
        return [p for p in self.parts if isinstance(p, FunctionCall)]

    @property
    def function_responses(self) -> list[FunctionResponse]:
        return [p for p in self.parts if isinstance(p, FunctionResponse)]


def pending_calls(response: UnifiedResponse) -> list[FunctionCall]:
    """Return the tool calls the caller must execute and resubmit.

    Adapters never execute tools, so every call is pending unless the
    response carries a non-placeholder result with the same call id.
    """
    settled = {
        p.id for p in response.function_responses if p.id and not is_pending(p)
    }
    return [c for c in response.function_calls if c.id is None or c.id not in settled]


@dataclass(frozen=True)
class EmbedRequest:
    """Texts to embed with a given model."""

    model: str
    contents: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmbedResponse:
    """One embedding vector per input text, in input order."""

    embeddings: tuple[tuple[float, ...], ...] = ()
