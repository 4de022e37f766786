"""Configuration: active model, auth method, and resolved credential."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Literal

from dotenv import load_dotenv

from castor.errors import ConfigurationError

load_dotenv()

AuthMethod = Literal["gemini-api-key", "vertex-ai", "claude-api-key"]

AUTH_METHODS: tuple[AuthMethod, ...] = ("gemini-api-key", "vertex-ai", "claude-api-key")

# Credential environment variables, per auth method.
_API_KEY_ENV_VARS: dict[AuthMethod, str] = {
    "gemini-api-key": "GEMINI_API_KEY",
    "vertex-ai": "GOOGLE_API_KEY",
    "claude-api-key": "ANTHROPIC_API_KEY",
}

DEFAULT_GEMINI_MODEL = "gemini-2.5-pro"
DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"
CLAUDE_SONNET_4 = "claude-sonnet-4-20250514"
CLAUDE_MODELS: frozenset[str] = frozenset(
    {CLAUDE_SONNET_4, DEFAULT_CLAUDE_MODEL, "claude-3-5-haiku-20241022"}
)


def is_claude_model(model: str) -> bool:
    """Whether *model* belongs to the Claude family."""
    return model in CLAUDE_MODELS or model.startswith("claude-")


@dataclass(frozen=True)
class Config:
    """Immutable configuration read by adapters; never written back.

    The API key is auto-resolved from the auth method's environment variable.
    A missing key is not an error here: adapters check for it when they are
    built, before any network call.

    Example:
        config = Config(model="claude-sonnet-4-20250514", auth_method="claude-api-key")
        # API key is resolved from ANTHROPIC_API_KEY
    """

    model: str
    auth_method: AuthMethod
    #: Auto-resolved from the auth method's environment variable when *None*.
    api_key: str | None = None
    use_mock: bool = False
    #: Vertex AI only; resolved from GOOGLE_CLOUD_PROJECT / GOOGLE_CLOUD_LOCATION.
    vertex_project: str | None = None
    vertex_location: str | None = None

    def __post_init__(self) -> None:
        """Validate the auth method and resolve credentials from the environment."""
        if self.auth_method not in AUTH_METHODS:
            raise ConfigurationError(
                f"Unknown auth method: {self.auth_method!r}",
                hint=f"Supported auth methods: {', '.join(AUTH_METHODS)}",
            )
        if not isinstance(self.model, str):
            raise ConfigurationError(
                f"model must be a string, got {type(self.model).__name__}",
                hint="Pass model='gemini-2.5-pro' or a Claude model id.",
            )

        if self.api_key is None and not self.use_mock:
            env_var = _API_KEY_ENV_VARS[self.auth_method]
            object.__setattr__(self, "api_key", os.environ.get(env_var) or None)

        if self.auth_method == "vertex-ai":
            if self.vertex_project is None:
                object.__setattr__(
                    self, "vertex_project", os.environ.get("GOOGLE_CLOUD_PROJECT")
                )
            if self.vertex_location is None:
                object.__setattr__(
                    self, "vertex_location", os.environ.get("GOOGLE_CLOUD_LOCATION")
                )

    @property
    def api_key_env_var(self) -> str:
        """Environment variable the credential is read from."""
        return _API_KEY_ENV_VARS[self.auth_method]

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(model={self.model!r}, auth_method={self.auth_method!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
