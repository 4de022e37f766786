"""Streaming contract helpers.

A stream is an async iterator of UnifiedResponse increments; exhausting it
is the completion marker. Streams are lazy (nothing is sent until the first
``__anext__``) and single-use.

Neither helper assembles tool-call arguments across chunks. Adapters that
forward chunks must only ever emit whole tool calls per chunk.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from castor.types import UnifiedResponse

log = logging.getLogger(__name__)


async def single_shot_stream(
    fetch: Callable[[], Awaitable[UnifiedResponse]],
) -> AsyncIterator[UnifiedResponse]:
    """Serve a single-completion backend through the streaming contract.

    Yields exactly one increment carrying the full normalized result.
    """
    yield await fetch()


async def forward_chunks(
    chunks: AsyncIterator[Any],
    normalize: Callable[[Any], UnifiedResponse],
) -> AsyncIterator[UnifiedResponse]:
    """Normalize native chunks one at a time, in arrival order.

    The native iterator is closed when the consumer stops early, so an
    abandoned stream releases its connection.
    """
    try:
        async for chunk in chunks:
            yield normalize(chunk)
    finally:
        aclose = getattr(chunks, "aclose", None)
        if callable(aclose):
            try:
                await aclose()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.warning("Closing provider stream failed: %s", exc)
