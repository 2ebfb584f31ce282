"""Anthropic SDK provider."""

from typing import Any

from anthropic import AsyncAnthropic

from chatcompact.providers.base import LLMProvider, LLMResponse


class AnthropicProvider(LLMProvider):
    """LLM provider using the official Anthropic SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "claude-sonnet-4-5",
        api_base: str | None = None,
    ):
        super().__init__(api_key)
        self.default_model = default_model
        self.client = self._build_client(api_key, api_base)

    @staticmethod
    def _build_client(api_key: str | None = None, api_base: str | None = None) -> AsyncAnthropic:
        kwargs: dict[str, Any] = {}
        if api_key:
            kwargs["api_key"] = api_key
        if api_base:
            kwargs["base_url"] = api_base
        # Falls back to ANTHROPIC_API_KEY from the environment
        return AsyncAnthropic(**kwargs)

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        model = model or self.default_model
        max_tokens = max_tokens if max_tokens is not None else self.default_max_tokens
        temperature = temperature if temperature is not None else self.default_temperature
        # Strip provider prefix — config stores "anthropic/claude-...", SDK expects "claude-..."
        if model.startswith("anthropic/"):
            model = model[len("anthropic/"):]

        system_prompt, anthropic_messages = self._convert_messages(messages)
        if system:
            system_prompt = f"{system}\n\n{system_prompt}" if system_prompt else system

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": anthropic_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await self.client.messages.create(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            return LLMResponse(
                content=f"Error calling LLM: {e}",
                finish_reason="error",
            )

    @staticmethod
    def _convert_messages(
        messages: list[dict[str, Any]],
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Split out system messages and merge same-role neighbours.

        Returns (system_prompt, messages).
        """
        system_parts: list[str] = []
        anthropic_msgs: list[dict[str, Any]] = []

        for msg in messages:
            role = msg.get("role")
            content = msg.get("content") or ""

            if role == "system":
                system_parts.append(content)
            elif role in ("user", "assistant"):
                anthropic_msgs.append({"role": role, "content": content})

        # Merge consecutive same-role messages (Anthropic requires alternation)
        anthropic_msgs = _merge_consecutive(anthropic_msgs)

        system = "\n\n".join(system_parts) if system_parts else None
        return system, anthropic_msgs

    @staticmethod
    def _parse_response(response: Any) -> LLMResponse:
        """Convert Anthropic response to LLMResponse."""
        content_parts = [block.text for block in response.content if block.type == "text"]

        # Map stop_reason
        stop_reason = response.stop_reason
        if stop_reason == "end_turn":
            finish_reason = "stop"
        elif stop_reason == "max_tokens":
            finish_reason = "length"
        else:
            finish_reason = stop_reason or "stop"

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            content="\n".join(content_parts) if content_parts else None,
            finish_reason=finish_reason,
            usage=usage,
        )


def _merge_consecutive(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Merge consecutive messages with the same role.

    Anthropic requires strictly alternating user/assistant roles.
    """
    if not messages:
        return messages

    merged: list[dict[str, Any]] = [dict(messages[0])]

    for msg in messages[1:]:
        if msg["role"] == merged[-1]["role"]:
            merged[-1]["content"] = f"{merged[-1]['content']}\n\n{msg['content']}"
        else:
            merged.append(dict(msg))

    return merged
