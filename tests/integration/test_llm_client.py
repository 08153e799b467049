# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for LLMClient.

Tests the LLM client functionality including:
- Initialization from settings
- Completions and token counting
- Error handling

LiteLLM's acompletion is patched, so no provider has to be running.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cs_alerts.core.config.settings import LLMSettings
from cs_alerts.core.intelligence.llm.client import LLMClient, LLMError, LLMResponse


def make_completion(content: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> MagicMock:
    """Create a LiteLLM-shaped completion response."""
    mock_choice = MagicMock()
    mock_choice.message.content = content
    mock_choice.finish_reason = "stop"

    mock_usage = MagicMock()
    mock_usage.prompt_tokens = prompt_tokens
    mock_usage.completion_tokens = completion_tokens

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage = mock_usage
    return mock_response


@pytest.fixture
def llm_settings() -> LLMSettings:
    """LLM settings pointing at a local Ollama."""
    return LLMSettings(
        default_provider="ollama",
        ollama_default_model="qwen2.5:7b",
        request_timeout=60.0,
        max_retries=3,
    )


@pytest.fixture
def client(llm_settings: LLMSettings) -> LLMClient:
    """Create client from explicit settings."""
    return LLMClient(llm_settings=llm_settings)


@pytest.mark.integration
class TestLLMClientInit:
    """Test cases for LLMClient initialization."""

    def test_default_initialization(self, client: LLMClient) -> None:
        """Test that default initialization uses settings values."""
        assert client.model == "ollama/qwen2.5:7b"
        assert client.timeout == 60.0
        assert client.max_retries == 3

    def test_custom_model_initialization(self, llm_settings: LLMSettings) -> None:
        """Test initialization with custom model."""
        client = LLMClient(model="gpt-4o", llm_settings=llm_settings)

        assert client.model == "gpt-4o"

    def test_zero_retries_respected(self, llm_settings: LLMSettings) -> None:
        client = LLMClient(max_retries=0, llm_settings=llm_settings)

        assert client.max_retries == 0


@pytest.mark.integration
class TestLLMResponse:
    """Test cases for LLMResponse."""

    def test_total_tokens_property(self) -> None:
        """Test total_tokens calculation."""
        response = LLMResponse(content="ok", model="m", tokens_input=100, tokens_output=50)

        assert response.total_tokens == 150


@pytest.mark.integration
class TestComplete:
    """Test cases for complete method."""

    @pytest.mark.asyncio
    async def test_complete_success(self, client: LLMClient) -> None:
        """Test successful completion."""
        with patch(
            "cs_alerts.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = make_completion('{"alerts": []}')

            result = await client.complete("Which schools are at risk?")

            assert result.content == '{"alerts": []}'
            assert result.tokens_input == 10
            assert result.tokens_output == 5
            assert result.total_tokens == 15
            assert result.model == "ollama/qwen2.5:7b"

    @pytest.mark.asyncio
    async def test_complete_passes_timeout_and_retries(self, client: LLMClient) -> None:
        with patch(
            "cs_alerts.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = make_completion("ok")

            await client.complete(
                prompt="Which schools are at risk?",
                system_prompt="You are a customer success analyst.",
                temperature=0.3,
            )

            kwargs = mock_acompletion.call_args.kwargs
            assert kwargs["timeout"] == 60.0
            assert kwargs["num_retries"] == 3
            assert kwargs["temperature"] == 0.3
            assert kwargs["api_base"] == "http://localhost:11434"
            assert kwargs["messages"][0] == {
                "role": "system",
                "content": "You are a customer success analyst.",
            }

    @pytest.mark.asyncio
    async def test_complete_empty_prompt_raises_error(self, client: LLMClient) -> None:
        """Test that empty prompt raises ValueError."""
        with pytest.raises(ValueError):
            await client.complete("   ")

    @pytest.mark.asyncio
    async def test_complete_api_error_raises_llm_error(self, client: LLMClient) -> None:
        """Test that API errors are wrapped in LLMError."""
        with patch(
            "cs_alerts.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.side_effect = Exception("API error")

            with pytest.raises(LLMError) as exc_info:
                await client.complete("Which schools are at risk?")

            assert "API error" in str(exc_info.value)
            assert exc_info.value.model == "ollama/qwen2.5:7b"

    @pytest.mark.asyncio
    async def test_complete_with_model_override(self, client: LLMClient) -> None:
        """Test completion with model override."""
        with patch(
            "cs_alerts.core.intelligence.llm.client.acompletion",
            new_callable=AsyncMock,
        ) as mock_acompletion:
            mock_acompletion.return_value = make_completion("ok")

            result = await client.complete("Hello", model="gemini/gemini-2.0-flash")

            assert result.model == "gemini/gemini-2.0-flash"
            assert mock_acompletion.call_args.kwargs["model"] == "gemini/gemini-2.0-flash"


@pytest.mark.integration
class TestRepr:
    """Test cases for __repr__."""

    def test_repr_format(self, client: LLMClient) -> None:
        assert repr(client) == "LLMClient(model='ollama/qwen2.5:7b', timeout=60.0, max_retries=3)"
