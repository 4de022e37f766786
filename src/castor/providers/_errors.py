"""Shared provider-side error helpers.

Every SDK failure leaves an adapter as a ProviderError. Status codes and
retry hints are read from the exception chain so callers can decide on
retries without matching on message text.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
import re
from typing import Any

import httpx

from castor._http import RETRYABLE_STATUS_CODES
from castor.errors import ProviderError, RateLimitError, _walk_exception_chain

_DURATION_SECONDS = re.compile(r"^(\d+(?:\.\d+)?)s$")

_CREDENTIAL_ENV_VARS: dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def _as_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "status", "code"):
        status = _as_status(getattr(exc, attr, None))
        if status is not None:
            return status
    return _as_status(getattr(getattr(exc, "response", None), "status_code", None))


def _header_delay(exc: BaseException) -> float | None:
    headers: Any = getattr(getattr(exc, "response", None), "headers", None)
    if headers is None or not hasattr(headers, "get"):
        return None
    raw = headers.get("Retry-After")
    if not isinstance(raw, str):
        return None
    try:
        seconds = float(raw.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def _retry_info_delay(exc: BaseException) -> float | None:
    """Read ``retryDelay`` from a Google RetryInfo entry in ``exc.details``.

    google-genai errors carry the parsed body, shaped like
    ``{"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "8s"}]}}``.
    """
    details: Any = getattr(exc, "details", None)
    error = details.get("error") if isinstance(details, Mapping) else None
    entries = error.get("details") if isinstance(error, Mapping) else None
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, Mapping) or "RetryInfo" not in str(entry.get("@type", "")):
            continue
        match = _DURATION_SECONDS.match(str(entry.get("retryDelay", "")))
        if match:
            return float(match.group(1))
    return None


def _delay_of(exc: BaseException) -> float | None:
    header = _header_delay(exc)
    return header if header is not None else _retry_info_delay(exc)


def extract_status_code(exc: BaseException) -> int | None:
    """First HTTP status code found along the exception chain."""
    return next(
        (s for s in map(_status_of, _walk_exception_chain(exc)) if s is not None), None
    )


def extract_retry_after_s(exc: BaseException) -> float | None:
    """First retry delay, in seconds, found along the exception chain."""
    return next(
        (d for d in map(_delay_of, _walk_exception_chain(exc)) if d is not None), None
    )


@dataclass(frozen=True)
class _ErrorFacts:
    status_code: int | None
    retry_after_s: float | None
    transport_failure: bool

    @classmethod
    def of(cls, exc: BaseException) -> _ErrorFacts:
        return cls(
            status_code=extract_status_code(exc),
            retry_after_s=extract_retry_after_s(exc),
            transport_failure=any(
                isinstance(e, (httpx.TimeoutException, httpx.RequestError))
                for e in _walk_exception_chain(exc)
            ),
        )

    @property
    def retryable(self) -> bool:
        if self.retry_after_s is not None:
            return True
        if self.status_code is not None:
            return self.status_code in RETRYABLE_STATUS_CODES
        return self.transport_failure


def _auth_hint(provider: str, status_code: int | None, cause: str) -> str | None:
    """Name the credential variable when the failure looks like an auth problem."""
    lowered = cause.lower()
    looks_like_key_problem = status_code == 400 and (
        "api key" in lowered or "api_key" in lowered
    )
    if status_code not in {401, 403} and not looks_like_key_problem:
        return None
    env_var = _CREDENTIAL_ENV_VARS.get(provider, "the provider API key")
    return f"Check credentials/permissions (try setting {env_var} or Config.api_key)."


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
) -> ProviderError:
    """Map an SDK exception onto ProviderError, keeping the original message.

    An existing ProviderError is enriched in place rather than re-wrapped.
    Cancellation is never converted.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, ProviderError):
        exc.provider = exc.provider or provider
        exc.phase = exc.phase or phase
        return exc

    facts = _ErrorFacts.of(exc)
    cause = str(exc)
    text = message or f"{provider} {phase} failed"
    if facts.status_code is not None:
        text += f" (status={facts.status_code})"
    if cause:
        text += f": {cause}"

    err_cls = RateLimitError if facts.status_code == 429 else ProviderError
    return err_cls(
        text,
        hint=_auth_hint(provider, facts.status_code, cause),
        retryable=facts.retryable,
        status_code=facts.status_code,
        retry_after_s=facts.retry_after_s,
        provider=provider,
        phase=phase,
    )
