"""Exception hierarchy for Castor."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class CastorError(Exception):
    """Base exception for all Castor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CastorError):
    """Configuration or credential resolution failed."""


class UnsupportedOperationError(CastorError):
    """The operation has no meaning for the selected provider."""


class SchemaTranslationError(CastorError):
    """A tool schema could not be translated.

    Reserved for strict validation. Translation currently degrades unknown
    property types to an unconstrained type instead of raising.
    """


class InternalError(CastorError):
    """A Castor internal error (bug) or invariant violation."""


class ProviderError(CastorError):
    """Provider call failed.

    Wraps transport, auth, and validation failures from the provider SDK.
    Retry metadata is attached for callers; Castor never retries itself.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider
        self.phase = phase


class RateLimitError(ProviderError):
    """Rate limit exceeded (HTTP 429)."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc*, then everything reachable through ``__cause__``/``__context__``.

    Each exception is yielded once, so cyclic chains terminate.
    """
    pending: deque[BaseException] = deque([exc])
    visited: set[int] = set()
    while pending:
        current = pending.popleft()
        if id(current) in visited:
            continue
        visited.add(id(current))
        yield current
        pending.extend(
            linked
            for linked in (current.__cause__, current.__context__)
            if linked is not None
        )
