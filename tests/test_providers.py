"""Tests for LLM provider adapters."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatcompact.providers.anthropic_provider import AnthropicProvider, _merge_consecutive
from chatcompact.providers.base import LLMResponse
from chatcompact.providers.litellm_provider import LiteLLMProvider


def _anthropic_response(*texts, stop_reason="end_turn"):
    blocks = [SimpleNamespace(type="text", text=t) for t in texts]
    return SimpleNamespace(
        content=blocks,
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=100, output_tokens=20),
    )


def _anthropic_provider(response=None, error=None):
    provider = AnthropicProvider(api_key="test-key")
    provider.client = MagicMock()
    if error is not None:
        provider.client.messages.create = AsyncMock(side_effect=error)
    else:
        provider.client.messages.create = AsyncMock(return_value=response)
    return provider


class TestLLMResponse:
    def test_is_error(self):
        assert LLMResponse(content="x", finish_reason="error").is_error
        assert not LLMResponse(content="x").is_error


# ── Anthropic ───────────────────────────────────────────────────


class TestAnthropicProvider:
    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        p = _anthropic_provider(_anthropic_response("First.", "Second."))
        result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.content == "First.\nSecond."
        assert result.finish_reason == "stop"
        assert result.usage["total_tokens"] == 120

    @pytest.mark.asyncio
    async def test_ignores_non_text_blocks(self):
        response = _anthropic_response("Only text.")
        response.content.insert(0, SimpleNamespace(type="thinking", thinking="..."))
        p = _anthropic_provider(response)
        result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.content == "Only text."

    @pytest.mark.asyncio
    async def test_no_text_gives_none(self):
        p = _anthropic_provider(_anthropic_response())
        result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.content is None

    @pytest.mark.asyncio
    async def test_request_shape(self):
        p = _anthropic_provider(_anthropic_response("ok"))
        await p.chat(
            [{"role": "user", "content": "hi"}],
            system="Summarize.",
            model="anthropic/claude-sonnet-4-5",
            max_tokens=300,
            temperature=0.3,
        )
        kwargs = p.client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-5"
        assert kwargs["system"] == "Summarize."
        assert kwargs["max_tokens"] == 300
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_no_system_key_without_instruction(self):
        p = _anthropic_provider(_anthropic_response("ok"))
        await p.chat([{"role": "user", "content": "hi"}])
        assert "system" not in p.client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_max_tokens_stop_reason(self):
        p = _anthropic_provider(_anthropic_response("cut", stop_reason="max_tokens"))
        result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.finish_reason == "length"

    @pytest.mark.asyncio
    async def test_api_error_returned_as_error_response(self):
        p = _anthropic_provider(error=RuntimeError("overloaded"))
        result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.is_error
        assert "overloaded" in result.content

    def test_convert_messages_extracts_system(self):
        system, msgs = AnthropicProvider._convert_messages([
            {"role": "system", "content": "rules"},
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
        ])
        assert system == "rules"
        assert msgs == [
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
        ]

    def test_merge_consecutive_same_role(self):
        merged = _merge_consecutive([
            {"role": "user", "content": "[System context]\nx"},
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi"},
        ])
        assert merged == [
            {"role": "user", "content": "[System context]\nx\n\nhello"},
            {"role": "assistant", "content": "hi"},
        ]

    def test_merge_does_not_mutate_input(self):
        original = [
            {"role": "user", "content": "a"},
            {"role": "user", "content": "b"},
        ]
        _merge_consecutive(original)
        assert original[0]["content"] == "a"


# ── LiteLLM ─────────────────────────────────────────────────────


def _litellm_response(content, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestLiteLLMProvider:
    @pytest.mark.asyncio
    async def test_system_instruction_prepended(self):
        p = LiteLLMProvider(default_model="openai/gpt-5-mini")
        mock = AsyncMock(return_value=_litellm_response("done"))
        with patch("chatcompact.providers.litellm_provider.acompletion", mock):
            result = await p.chat([{"role": "user", "content": "hi"}], system="Summarize.", max_tokens=300)

        assert result.content == "done"
        assert result.usage["total_tokens"] == 15
        kwargs = mock.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Summarize."}
        assert kwargs["messages"][1] == {"role": "user", "content": "hi"}
        assert kwargs["max_tokens"] == 300
        assert kwargs["model"] == "openai/gpt-5-mini"

    @pytest.mark.asyncio
    async def test_gemini_prefix_added(self):
        p = LiteLLMProvider(default_model="gemini-3-flash-preview")
        mock = AsyncMock(return_value=_litellm_response("ok"))
        with patch("chatcompact.providers.litellm_provider.acompletion", mock):
            await p.chat([{"role": "user", "content": "hi"}])
        assert mock.call_args.kwargs["model"] == "gemini/gemini-3-flash-preview"

    @pytest.mark.asyncio
    async def test_error_returned_as_error_response(self):
        p = LiteLLMProvider()
        mock = AsyncMock(side_effect=RuntimeError("bad key"))
        with patch("chatcompact.providers.litellm_provider.acompletion", mock):
            result = await p.chat([{"role": "user", "content": "hi"}])
        assert result.is_error
        assert "bad key" in result.content
