"""Gemini through google-genai: the native adapter.

The unified model mirrors Gemini's own request/response shapes, so this
adapter is close to a pass-through. Streaming is genuinely incremental and
each chunk is normalized on its own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from contextlib import aclosing
import logging
from typing import TYPE_CHECKING, Any

from castor.config import DEFAULT_GEMINI_MODEL
from castor.errors import ConfigurationError
from castor.providers._errors import wrap_provider_error
from castor.providers.base import AdapterCapabilities
from castor.translation.normalize import normalize_finish_reason
from castor.translation.streaming import forward_chunks
from castor.types import (
    ContentPart,
    EmbedResponse,
    FinishReason,
    FunctionCall,
    FunctionResponse,
    Text,
    UnifiedResponse,
    Usage,
    schema_to_json,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from castor.config import Config
    from castor.types import ConversationTurn, EmbedRequest, UnifiedRequest

log = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-004"


class GeminiAdapter:
    """Native adapter for Gemini models (API key or Vertex AI)."""

    name = "gemini"

    def __init__(self, config: Config) -> None:
        """Bind to *config*; fails fast when no credential is available."""
        self.vertexai = config.auth_method == "vertex-ai"
        has_project = bool(config.vertex_project and config.vertex_location)
        if not config.api_key and not (self.vertexai and has_project):
            hint = f"Set {config.api_key_env_var} or pass Config(api_key=...)."
            if self.vertexai:
                hint = (
                    f"Set {config.api_key_env_var}, or GOOGLE_CLOUD_PROJECT and "
                    "GOOGLE_CLOUD_LOCATION, for Vertex AI."
                )
            raise ConfigurationError(
                f"No credential available for {config.auth_method}", hint=hint
            )
        self.api_key = config.api_key
        self.project = config.vertex_project
        self.location = config.vertex_location
        self.model = config.model or DEFAULT_GEMINI_MODEL
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize the google-genai client."""
        if self._client is None:
            from google import genai

            if self.vertexai and self.api_key is None:
                self._client = genai.Client(
                    vertexai=True, project=self.project, location=self.location
                )
            elif self.vertexai:
                self._client = genai.Client(vertexai=True, api_key=self.api_key)
            else:
                self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def capabilities(self) -> AdapterCapabilities:
        """Return supported feature flags."""
        return AdapterCapabilities(
            embeddings=True,
            native_tokenizer=True,
            incremental_streaming=True,
        )

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def _convert_turns(turns: tuple[ConversationTurn, ...]) -> list[Any]:
        """Convert unified turns to google-genai ``Content`` objects."""
        from google.genai import types

        contents: list[Any] = []
        for turn in turns:
            parts: list[Any] = []
            for part in turn.parts:
                if isinstance(part, Text):
                    parts.append(types.Part.from_text(text=part.text))
                elif isinstance(part, FunctionCall):
                    parts.append(
                        types.Part(
                            function_call=types.FunctionCall(
                                id=part.id, name=part.name, args=dict(part.args)
                            )
                        )
                    )
                elif isinstance(part, FunctionResponse):
                    response = part.result
                    if not isinstance(response, Mapping):
                        response = {"result": response}
                    parts.append(
                        types.Part(
                            function_response=types.FunctionResponse(
                                id=part.id, name=part.name, response=dict(response)
                            )
                        )
                    )
            if parts:
                contents.append(types.Content(role=turn.role, parts=parts))
        return contents

    def _call_kwargs(self, request: UnifiedRequest) -> dict[str, Any]:
        from google.genai import types

        cfg = request.config
        config_kwargs: dict[str, Any] = {}
        optional = {
            "system_instruction": cfg.system_instruction,
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "top_k": cfg.top_k,
            "max_output_tokens": cfg.max_output_tokens,
        }
        config_kwargs.update({k: v for k, v in optional.items() if v is not None})

        if request.tools:
            config_kwargs["tools"] = [
                types.Tool(
                    function_declarations=[
                        types.FunctionDeclaration(
                            name=t.name,
                            description=t.description,
                            parameters_json_schema=schema_to_json(t.parameters),
                        )
                        for t in request.tools
                    ]
                )
            ]

        return {
            "model": cfg.model or self.model,
            "contents": self._convert_turns(request.turns),
            "config": types.GenerateContentConfig(**config_kwargs),
        }

    # ------------------------------------------------------------------
    # Capability set
    # ------------------------------------------------------------------

    async def generate(self, request: UnifiedRequest) -> UnifiedResponse:
        """Generate content from the Gemini model."""
        client = self._get_client()
        kwargs = self._call_kwargs(request)
        log.debug("Gemini generate: model=%s turns=%d", kwargs["model"], len(request.turns))
        try:
            response = await client.aio.models.generate_content(**kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="gemini",
                phase="generate",
                message="Gemini generate failed",
            ) from e
        return _parse_response(response)

    def generate_stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        """Stream increments as Gemini produces them.

        Gemini delivers each function call whole within a single chunk.
        """
        return self._stream(request)

    async def _stream(self, request: UnifiedRequest) -> AsyncIterator[UnifiedResponse]:
        client = self._get_client()
        kwargs = self._call_kwargs(request)
        log.debug("Gemini stream: model=%s turns=%d", kwargs["model"], len(request.turns))
        try:
            chunks = await client.aio.models.generate_content_stream(**kwargs)
            async with aclosing(forward_chunks(chunks, _parse_response)) as increments:
                async for increment in increments:
                    yield increment
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="gemini",
                phase="stream",
                message="Gemini stream failed",
            ) from e

    async def count_tokens(self, request: UnifiedRequest) -> int:
        """Count prompt tokens with Gemini's own tokenizer."""
        client = self._get_client()
        try:
            result = await client.aio.models.count_tokens(
                model=request.config.model or self.model,
                contents=self._convert_turns(request.turns),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="gemini",
                phase="count_tokens",
                message="Gemini count_tokens failed",
            ) from e
        return max(0, int(getattr(result, "total_tokens", 0) or 0))

    async def embed(self, request: EmbedRequest) -> EmbedResponse:
        """Embed each text with a Gemini embedding model."""
        client = self._get_client()
        try:
            result = await client.aio.models.embed_content(
                model=request.model or DEFAULT_EMBEDDING_MODEL,
                contents=list(request.contents),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="gemini",
                phase="embed",
                message="Gemini embed failed",
            ) from e
        return EmbedResponse(
            embeddings=tuple(
                tuple(getattr(e, "values", None) or ())
                for e in (getattr(result, "embeddings", None) or ())
            )
        )

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        aclose = getattr(getattr(client, "aio", None), "aclose", None)
        if callable(aclose):
            await aclose()


def _parse_response(response: Any) -> UnifiedResponse:
    """Convert a Gemini response (or stream chunk) to a UnifiedResponse.

    Parts keep the order Gemini emitted them in. Thought parts are dropped.
    """
    parts: list[ContentPart] = []
    finish_reason = FinishReason.UNKNOWN
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        candidate = candidates[0]
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "thought", False):
                continue
            fc = getattr(part, "function_call", None)
            fr = getattr(part, "function_response", None)
            text = getattr(part, "text", None)
            if fc is not None:
                parts.append(
                    FunctionCall(name=str(fc.name), args=dict(fc.args or {}), id=fc.id)
                )
            elif fr is not None:
                parts.append(
                    FunctionResponse(name=str(fr.name), result=fr.response, id=fr.id)
                )
            elif isinstance(text, str) and text:
                parts.append(Text(text))
        finish_reason = normalize_finish_reason(getattr(candidate, "finish_reason", None))

    usage: Usage | None = None
    um = getattr(response, "usage_metadata", None)
    if um is not None:
        usage = Usage(
            prompt_token_count=getattr(um, "prompt_token_count", 0),
            candidates_token_count=getattr(um, "candidates_token_count", 0),
            total_token_count=getattr(um, "total_token_count", 0),
        )

    return UnifiedResponse(parts=tuple(parts), finish_reason=finish_reason, usage=usage)
