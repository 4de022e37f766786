"""Claude through the Anthropic SDK, bridged into the unified model.

The conversation is flattened to a transcript prompt, tool schemas are
translated to Pydantic models, and the SDK call is capped at
``BRIDGED_STEP_LIMIT`` steps. Tool executors only return a pending
placeholder: running the tool, and resubmitting its result as a new turn,
belongs to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from castor.config import DEFAULT_CLAUDE_MODEL
from castor.errors import ConfigurationError, UnsupportedOperationError
from castor.providers._errors import wrap_provider_error
from castor.providers.base import AdapterCapabilities
from castor.providers.models import BridgedTool, StepResult, ToolCall, ToolResult
from castor.translation.flatten import flatten_conversation
from castor.translation.normalize import normalize_result
from castor.translation.schema import translate_tools
from castor.translation.streaming import single_shot_stream
from castor.translation.tokens import estimate_tokens
from castor.types import PENDING_STATUS

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from castor.config import Config
    from castor.types import EmbedRequest, EmbedResponse, UnifiedRequest, UnifiedResponse

log = logging.getLogger(__name__)

#: Hard contract: one model step per bridged call, so control returns to the
#: caller after at most one tool-call opportunity.
BRIDGED_STEP_LIMIT = 1

_ANTHROPIC_MAX_TOKENS = 8192


async def pending_executor(name: str, args: Mapping[str, Any]) -> dict[str, Any]:
    """Stand-in executor: records the request, never runs the tool."""
    log.debug("Tool call requested: %s", name)
    return {
        "status": PENDING_STATUS,
        "message": f"Tool {name} will be executed by the caller",
        "args": dict(args),
    }


async def _execute(tools: Mapping[str, BridgedTool], call: ToolCall) -> ToolResult:
    tool = tools.get(call.name)
    if tool is None:
        return ToolResult(
            call_id=call.id,
            name=call.name,
            result={"status": "error", "message": f"Unknown tool {call.name}"},
        )
    args = dict(call.args)
    try:
        tool.parameters.model_validate(args)
    except ValidationError as exc:
        return ToolResult(
            call_id=call.id,
            name=call.name,
            result={"status": "invalid", "message": str(exc), "args": args},
        )
    return ToolResult(
        call_id=call.id, name=call.name, result=await tool.executor(call.name, args)
    )


def _tool_specs(tools: Mapping[str, BridgedTool]) -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "description": tool.description,
            "input_schema": tool.parameters.model_json_schema(by_alias=True),
        }
        for name, tool in tools.items()
    ]


def _parse_content(response: Any) -> tuple[str, list[ToolCall], list[dict[str, Any]]]:
    """Split an Anthropic message into text, tool calls, and replayable blocks."""
    text_parts: list[str] = []
    calls: list[ToolCall] = []
    blocks: list[dict[str, Any]] = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text = getattr(block, "text", "") or ""
            text_parts.append(text)
            blocks.append({"type": "text", "text": text})
        elif block_type == "tool_use":
            args = getattr(block, "input", None)
            call = ToolCall(
                id=str(getattr(block, "id", "") or ""),
                name=str(getattr(block, "name", "") or ""),
                args=args if isinstance(args, dict) else {},
            )
            calls.append(call)
            blocks.append(
                {"type": "tool_use", "id": call.id, "name": call.name, "input": call.args}
            )
    return "\n\n".join(text_parts), calls, blocks


def _add_usage(total: dict[str, int] | None, response: Any) -> dict[str, int] | None:
    raw = getattr(response, "usage", None)
    if raw is None:
        return total
    input_tokens = int(getattr(raw, "input_tokens", 0) or 0)
    output_tokens = int(getattr(raw, "output_tokens", 0) or 0)
    total = dict(total or {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0})
    total["prompt_tokens"] += input_tokens
    total["completion_tokens"] += output_tokens
    total["total_tokens"] += input_tokens + output_tokens
    return total


async def run_steps(
    client: Any,
    *,
    model: str,
    prompt: str,
    tools: Mapping[str, BridgedTool] | None,
    max_steps: int,
    **create_kwargs: Any,
) -> StepResult:
    """Run a prompt through the Messages API for at most *max_steps* steps.

    Each step sends the conversation so far; tool calls from a step are
    handed to their executors and, if steps remain, fed back as
    ``tool_result`` blocks. The returned text, calls and results are those
    of the last step; usage is summed over all steps.
    """
    if max_steps < 1:
        raise ValueError("max_steps must be >= 1")

    tools = tools or {}
    request_kwargs: dict[str, Any] = {"model": model, **create_kwargs}
    if tools:
        request_kwargs["tools"] = _tool_specs(tools)

    messages: list[dict[str, Any]] = [{"role": "user", "content": prompt}]
    result = StepResult(finish_reason=None)
    while result.steps < max_steps:
        response = await client.messages.create(messages=messages, **request_kwargs)
        result.steps += 1
        result.usage = _add_usage(result.usage, response)
        result.finish_reason = getattr(response, "stop_reason", None)

        text, calls, blocks = _parse_content(response)
        result.text = text
        result.tool_calls = calls
        result.tool_results = [await _execute(tools, call) for call in calls]

        if not calls or result.steps >= max_steps:
            break
        messages.append({"role": "assistant", "content": blocks})
        messages.append(
            {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": r.call_id,
                        "content": json.dumps(r.result, default=str),
                    }
                    for r in result.tool_results
                ],
            }
        )
    return result


class AnthropicAdapter:
    """Bridged adapter for Claude models."""

    name = "anthropic"

    def __init__(self, config: Config) -> None:
        """Bind to *config*; fails fast when no credential is available."""
        if not config.api_key:
            raise ConfigurationError(
                "API key is required for Claude",
                hint=f"Set {config.api_key_env_var} or pass Config(api_key=...).",
            )
        self.api_key = config.api_key
        self.model = config.model or DEFAULT_CLAUDE_MODEL
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    @property
    def capabilities(self) -> AdapterCapabilities:
        """Return supported feature flags."""
        return AdapterCapabilities(
            embeddings=False,
            native_tokenizer=False,
            incremental_streaming=False,
            bridged=True,
        )

    def _tools(self, request: UnifiedRequest) -> dict[str, BridgedTool]:
        return {
            name: BridgedTool(
                description=t.description,
                parameters=t.parameters,
                executor=pending_executor,
            )
            for name, t in translate_tools(request.tools).items()
        }

    def _create_kwargs(self, request: UnifiedRequest) -> dict[str, Any]:
        cfg = request.config
        kwargs: dict[str, Any] = {
            "max_tokens": cfg.max_output_tokens or _ANTHROPIC_MAX_TOKENS,
        }
        optional = {
            "system": cfg.system_instruction,
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "top_k": cfg.top_k,
        }
        kwargs.update({k: v for k, v in optional.items() if v is not None})
        return kwargs

    async def _generate(self, request: UnifiedRequest, *, phase: str) -> UnifiedResponse:
        prompt = flatten_conversation(request.turns)
        tools = self._tools(request)
        model = request.config.model or self.model
        log.debug(
            "Claude %s: model=%s prompt_chars=%d tools=%d",
            phase,
            model,
            len(prompt),
            len(tools),
        )
        try:
            result = await run_steps(
                self._get_client(),
                model=model,
                prompt=prompt,
                tools=tools or None,
                max_steps=BRIDGED_STEP_LIMIT,
                **self._create_kwargs(request),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="anthropic",
                phase=phase,
                message=f"Claude {phase} failed",
            ) from e
        return normalize_result(result)

    async def generate(self, request: UnifiedRequest) -> UnifiedResponse:
        """Generate a response through the one-step bridged call."""
        return await self._generate(request, phase="generate")

    def generate_stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        """Serve the whole result as a single stream increment.

        Only whole tool calls are ever emitted, since each call is one step.
        """
        return single_shot_stream(lambda: self._generate(request, phase="stream"))

    async def count_tokens(self, request: UnifiedRequest) -> int:
        """Estimate tokens from the flattened prompt; Claude has no local tokenizer here."""
        return estimate_tokens(flatten_conversation(request.turns))

    async def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Raise because Claude has no embedding endpoint."""
        _ = request
        raise UnsupportedOperationError("Embeddings not supported by Claude")

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()
