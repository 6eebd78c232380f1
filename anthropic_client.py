"""Anthropic Messages API text generator, selectable with LLM_PROVIDER=anthropic."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import anthropic

from config import PipelineConfig
from errors import CollaboratorError

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8192


@dataclass
class AnthropicGenerator:
    """generate(prompt) -> text over the Claude Messages API."""

    api_key: str
    model: str
    temperature: float | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_seconds: float | None = None
    _client: anthropic.Anthropic | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_config(cls, config: PipelineConfig, temperature: float | None = None) -> AnthropicGenerator:
        """Raises ConfigurationError right away when ANTHROPIC_API_KEY is missing."""
        return cls(
            api_key=config.require("anthropic_api_key"),
            model=config.claude_model,
            temperature=temperature,
            timeout_seconds=config.llm_timeout_seconds,
        )

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.timeout_seconds is not None:
                kwargs["timeout"] = self.timeout_seconds
            self._client = anthropic.Anthropic(**kwargs)
        return self._client

    def generate(self, prompt: str) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            # Claude caps temperature at 1.0.
            kwargs["temperature"] = min(self.temperature, 1.0)

        LOGGER.debug("Calling Claude model=%s max_tokens=%s", self.model, self.max_tokens)
        try:
            response = self._get_client().messages.create(**kwargs)
        except anthropic.AnthropicError as exc:
            raise CollaboratorError(f"Claude generation failed: {exc}") from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text:
            raise CollaboratorError("Claude returned an empty response")
        return text
