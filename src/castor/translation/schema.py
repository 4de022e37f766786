"""Tool parameter schemas → Pydantic models for bridged SDK calls.

Mapping rules:
- object → a generated ``BaseModel`` with one field per declared property
- string / number / boolean → ``str`` / ``float`` / ``bool``, validated strictly
  (an int is still a valid number)
- array → ``list[Any]``; element types are intentionally widened
- unconstrained → ``Any``
- a property missing from ``required`` becomes ``Optional`` with a ``None`` default
- descriptions are copied verbatim

Fields are stored under positional names (``p0``, ``p1``, ...) and exposed
through aliases, so property names that are not Python identifiers or that
collide with ``BaseModel`` attributes still round-trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, create_model

from castor.types import (
    ArraySchema,
    BooleanSchema,
    NumberSchema,
    ObjectSchema,
    SchemaNode,
    StringSchema,
    ToolDeclaration,
    UnconstrainedSchema,
)

log = logging.getLogger(__name__)

# Fields are populated by alias only; positional names are never input keys.
_MODEL_CONFIG = ConfigDict(extra="allow")

_STRICT_NODES = (StringSchema, NumberSchema, BooleanSchema, ArraySchema)


@dataclass(frozen=True)
class TranslatedTool:
    """A tool declaration rendered for the bridged SDK."""

    name: str
    description: str
    parameters: type[BaseModel]

    def json_schema(self) -> dict[str, Any]:
        """Return the JSON Schema the SDK sends over the wire."""
        return self.parameters.model_json_schema(by_alias=True)


def _python_type(node: SchemaNode, *, model_name: str) -> Any:
    if isinstance(node, ObjectSchema):
        return translate_schema(node, model_name=model_name)
    if isinstance(node, StringSchema):
        return str
    if isinstance(node, NumberSchema):
        return float
    if isinstance(node, BooleanSchema):
        return bool
    if isinstance(node, ArraySchema):
        return list[Any]
    if isinstance(node, UnconstrainedSchema):
        return Any
    # Not a schema node at all: degrade rather than fail the whole tool.
    log.warning(
        "Unrecognized schema node %s for %s; using Any",
        type(node).__name__,
        model_name,
    )
    return Any


def _field(
    name: str, node: SchemaNode, *, required: bool, model_name: str
) -> tuple[Any, Any]:
    annotation = _python_type(node, model_name=f"{model_name}_{name}")
    description = getattr(node, "description", None)
    # Strict: "3" is not a number and "yes" is not a boolean.
    strict = True if isinstance(node, _STRICT_NODES) else None
    if required:
        return annotation, Field(..., alias=name, description=description, strict=strict)
    return Optional[annotation], Field(
        None, alias=name, description=description, strict=strict
    )


def translate_schema(schema: SchemaNode, *, model_name: str = "Args") -> type[BaseModel]:
    """Translate a parameter schema tree into a Pydantic model class.

    A non-object root yields an empty model. A property that fails to
    translate is logged and replaced by an optional ``Any`` field; the
    remaining properties are unaffected.
    """
    fields: dict[str, Any] = {}
    if isinstance(schema, ObjectSchema):
        for index, (name, node) in enumerate(schema.properties.items()):
            required = name in schema.required
            try:
                fields[f"p{index}"] = _field(
                    name, node, required=required, model_name=model_name
                )
            except Exception as exc:
                log.warning(
                    "Could not translate property %r of %s: %s", name, model_name, exc
                )
                fields[f"p{index}"] = (Optional[Any], Field(None, alias=name))

    model = create_model(model_name, __config__=_MODEL_CONFIG, **fields)
    if isinstance(schema, ObjectSchema) and schema.description:
        model.__doc__ = schema.description
    return model


def translate_tools(
    tools: tuple[ToolDeclaration, ...] | list[ToolDeclaration],
) -> dict[str, TranslatedTool]:
    """Translate declarations into a name-keyed tool map.

    A declaration that cannot be translated is skipped with a warning so the
    other tools in the request still reach the provider.
    """
    translated: dict[str, TranslatedTool] = {}
    for decl in tools:
        try:
            model = translate_schema(decl.parameters, model_name=f"{decl.name}_args")
        except Exception as exc:
            log.warning("Skipping tool %r: schema translation failed: %s", decl.name, exc)
            continue
        translated[decl.name] = TranslatedTool(
            name=decl.name,
            description=decl.description or decl.name,
            parameters=model,
        )
    return translated


def optional_fields(model: type[BaseModel]) -> frozenset[str]:
    """Return the aliases of fields that are not required."""
    return frozenset(
        (f.alias or name) for name, f in model.model_fields.items() if not f.is_required()
    )


def required_fields(model: type[BaseModel]) -> frozenset[str]:
    """Return the aliases of required fields."""
    return frozenset(
        (f.alias or name) for name, f in model.model_fields.items() if f.is_required()
    )
