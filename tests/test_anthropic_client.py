from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import pytest

from anthropic_client import AnthropicGenerator
from config import PipelineConfig
from errors import CollaboratorError, ConfigurationError


def _mock_client(*blocks: SimpleNamespace) -> MagicMock:
    mock_client = MagicMock()
    mock_client.messages.create.return_value = SimpleNamespace(content=list(blocks))
    return mock_client


def test_generate_joins_text_blocks() -> None:
    mock_client = _mock_client(
        SimpleNamespace(type="thinking", thinking="hmm"),
        SimpleNamespace(type="text", text='{"summary": '),
        SimpleNamespace(type="text", text='"ok"}'),
    )

    with patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        result = AnthropicGenerator(api_key="k", model="claude-opus-4-6").generate("Summarize")

    assert result == '{"summary": "ok"}'
    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-opus-4-6"
    assert kwargs["max_tokens"] == 8192
    assert "temperature" not in kwargs
    assert "system" not in kwargs


def test_temperature_is_capped() -> None:
    mock_client = _mock_client(SimpleNamespace(type="text", text="x"))

    with patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        AnthropicGenerator(api_key="k", model="m", temperature=1.4).generate("p")

    assert mock_client.messages.create.call_args.kwargs["temperature"] == 1.0


def test_api_error_becomes_collaborator_error() -> None:
    mock_client = MagicMock()
    mock_client.messages.create.side_effect = anthropic.AnthropicError("overloaded")

    with patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        with pytest.raises(CollaboratorError, match="overloaded"):
            AnthropicGenerator(api_key="k", model="m").generate("p")


def test_no_text_is_rejected() -> None:
    with patch("anthropic_client.anthropic.Anthropic", return_value=_mock_client()):
        with pytest.raises(CollaboratorError, match="empty response"):
            AnthropicGenerator(api_key="k", model="m").generate("p")


def test_from_config() -> None:
    config = PipelineConfig(anthropic_api_key="sk-ant", claude_model="claude-sonnet-4-5", llm_timeout_seconds=30)

    generator = AnthropicGenerator.from_config(config, temperature=0.7)

    assert generator.model == "claude-sonnet-4-5"
    assert generator.temperature == 0.7
    assert generator.timeout_seconds == 30

    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        AnthropicGenerator.from_config(PipelineConfig())
