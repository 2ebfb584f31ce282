"""Tests for message model and role adapter."""

import dataclasses

import pytest

from chatcompact.history.messages import (
    ConversationMessage,
    ConversationScope,
    to_provider_messages,
)


class TestConversationMessage:
    def test_valid_roles(self):
        for role in ("system", "user", "assistant"):
            assert ConversationMessage(role, "x").role == role

    def test_invalid_role_rejected(self):
        with pytest.raises(ValueError, match="Unknown message role"):
            ConversationMessage("tool", "x")

    def test_none_content_becomes_empty(self):
        assert ConversationMessage("user", None).content == ""

    def test_immutable(self):
        msg = ConversationMessage("user", "hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            msg.content = "changed"

    def test_dict_round_trip(self):
        data = {"role": "assistant", "content": "hello"}
        assert ConversationMessage.from_dict(data).to_dict() == data

    def test_from_dict_missing_role_rejected(self):
        with pytest.raises(ValueError):
            ConversationMessage.from_dict({"content": "orphan"})


class TestConversationScope:
    def test_cache_key(self):
        assert ConversationScope("u1", "chat:7").cache_key == "u1:chat:7"

    def test_hashable_and_equal_by_value(self):
        assert ConversationScope("u1", "c") == ConversationScope("u1", "c")
        assert len({ConversationScope("u1", "c"), ConversationScope("u1", "c")}) == 1


class TestToProviderMessages:
    def test_user_and_assistant_pass_through(self):
        result = to_provider_messages([
            ConversationMessage("user", "q"),
            ConversationMessage("assistant", "a"),
        ])
        assert result == [
            {"role": "user", "content": "q"},
            {"role": "assistant", "content": "a"},
        ]

    def test_system_folded_into_user_with_marker(self):
        result = to_provider_messages([ConversationMessage("system", "be brief")])
        assert result == [{"role": "user", "content": "[System context]\nbe brief"}]

    def test_accepts_dicts(self):
        result = to_provider_messages([{"role": "system", "content": "ctx"}])
        assert result[0]["role"] == "user"
        assert result[0]["content"].endswith("ctx")

    def test_empty(self):
        assert to_provider_messages([]) == []
