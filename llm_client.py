"""OpenAI chat-completions text generator for the pipeline stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from openai import OpenAI, OpenAIError

from config import PipelineConfig
from errors import CollaboratorError

LOGGER = logging.getLogger(__name__)


@dataclass
class OpenAIGenerator:
    """generate(prompt) -> text over the OpenAI chat completions API.

    Each stage owns its own instance, so model settings are never shared.
    Some reasoning models reject a temperature, so it is only sent when set.
    """

    api_key: str
    model: str
    temperature: float | None = None
    timeout_seconds: float | None = None
    _client: OpenAI | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_config(cls, config: PipelineConfig, temperature: float | None = None) -> OpenAIGenerator:
        """Raises ConfigurationError right away when OPENAI_API_KEY is missing."""
        return cls(
            api_key=config.require("openai_api_key"),
            model=config.openai_model,
            temperature=temperature,
            timeout_seconds=config.llm_timeout_seconds,
        )

    def _get_client(self) -> OpenAI:
        if self._client is None:
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.timeout_seconds is not None:
                kwargs["timeout"] = self.timeout_seconds
            self._client = OpenAI(**kwargs)
        return self._client

    def generate(self, prompt: str) -> str:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            request["temperature"] = self.temperature

        LOGGER.debug("Calling OpenAI model=%s prompt_chars=%s", self.model, len(prompt))
        try:
            response = self._get_client().chat.completions.create(**request)
        except OpenAIError as exc:
            raise CollaboratorError(f"OpenAI generation failed: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise CollaboratorError(f"Unexpected OpenAI response shape: {response}") from exc
        if not content:
            raise CollaboratorError("OpenAI returned an empty response")
        return content
