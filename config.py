"""Pipeline configuration, read once from the environment at startup."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass

from errors import ConfigurationError

LLM_PROVIDERS = ("openai", "anthropic")
MISSING_SCORE_POLICIES = ("zero", "fail")

# Attribute -> environment variable, used for loading and for error messages.
ENV_VARS: dict[str, str] = {
    "llm_provider": "LLM_PROVIDER",
    "openai_api_key": "OPENAI_API_KEY",
    "openai_model": "OPENAI_MODEL",
    "anthropic_api_key": "ANTHROPIC_API_KEY",
    "claude_model": "CLAUDE_MODEL",
    "llm_timeout_seconds": "LLM_TIMEOUT_SECONDS",
    "tavily_api_key": "TAVILY_API_KEY",
    "search_max_results": "SEARCH_MAX_RESULTS",
    "relevance_threshold": "RELEVANCE_THRESHOLD",
    "missing_score_policy": "MISSING_SCORE_POLICY",
    "words_per_minute": "WORDS_PER_MINUTE",
    "output_dir": "BLOG_OUTPUT_DIR",
    "github_username": "GITHUB_USERNAME",
    "repo_name": "GITHUB_REPO_NAME",
    "trace_file": "TRACE_FILE",
    "langsmith_api_key": "LANGSMITH_API_KEY",
    "langsmith_project": "LANGSMITH_PROJECT",
    "langsmith_endpoint": "LANGSMITH_ENDPOINT",
    "stage_max_attempts": "STAGE_MAX_ATTEMPTS",
    "stage_retry_backoff_seconds": "STAGE_RETRY_BACKOFF_SECONDS",
}


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Explicit settings object passed to every client and stage at construction."""

    llm_provider: str = "openai"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str | None = None
    claude_model: str = "claude-opus-4-6"
    llm_timeout_seconds: float | None = None
    tavily_api_key: str | None = None
    search_max_results: int = 5
    relevance_threshold: float = 7.0
    missing_score_policy: str = "zero"
    words_per_minute: int = 200
    output_dir: str = "_posts"
    github_username: str | None = None
    repo_name: str = "blog"
    trace_file: str | None = None
    langsmith_api_key: str | None = None
    langsmith_project: str = "blog-bot"
    langsmith_endpoint: str = "https://api.smith.langchain.com"
    stage_max_attempts: int = 1
    stage_retry_backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.llm_provider not in LLM_PROVIDERS:
            raise ConfigurationError(
                f"LLM_PROVIDER must be one of {', '.join(LLM_PROVIDERS)}, got {self.llm_provider!r}"
            )
        if self.missing_score_policy not in MISSING_SCORE_POLICIES:
            raise ConfigurationError(
                f"MISSING_SCORE_POLICY must be one of {', '.join(MISSING_SCORE_POLICIES)}, "
                f"got {self.missing_score_policy!r}"
            )
        for name in ("search_max_results", "words_per_minute", "stage_max_attempts"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{ENV_VARS[name]} must be at least 1")
        if self.stage_retry_backoff_seconds < 0:
            raise ConfigurationError("STAGE_RETRY_BACKOFF_SECONDS must not be negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineConfig:
        """Build the config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for config_field in dataclasses.fields(cls):
            raw = env.get(ENV_VARS[config_field.name])
            if raw is None or not raw.strip():
                continue
            values[config_field.name] = _coerce(config_field.name, raw.strip(), config_field.default)
        return cls(**values)

    def require(self, name: str) -> str:
        """Return a required credential or setting, raising ConfigurationError if unset."""
        value = getattr(self, name)
        if not value:
            raise ConfigurationError(f"{ENV_VARS[name]} environment variable is required")
        return value

    def replace(self, **changes: object) -> PipelineConfig:
        return dataclasses.replace(self, **changes)


def _coerce(name: str, raw: str, default: object) -> object:
    if name == "llm_timeout_seconds":
        return _number(name, raw, float)
    if isinstance(default, int):
        return _number(name, raw, int)
    if isinstance(default, float):
        return _number(name, raw, float)
    return raw


def _number(name: str, raw: str, kind: type) -> object:
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_VARS[name]} must be a {kind.__name__}, got {raw!r}") from exc
