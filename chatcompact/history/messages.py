"""Conversation message and scope types."""

from dataclasses import dataclass
from typing import Any, Iterable

from chatcompact.prompts.summary import SYSTEM_CONTEXT_PREFIX

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

VALID_ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT)


@dataclass(frozen=True)
class ConversationMessage:
    """A single conversation turn: speaker role plus text."""

    role: str
    content: str = ""

    def __post_init__(self):
        if self.role not in VALID_ROLES:
            raise ValueError(
                f"Unknown message role '{self.role}'. "
                f"Expected one of: {', '.join(VALID_ROLES)}"
            )
        if self.content is None:
            object.__setattr__(self, "content", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationMessage":
        """Build a message from a ``{"role", "content"}`` dict."""
        return cls(role=data.get("role", ""), content=data.get("content") or "")

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ConversationScope:
    """Opaque cache partition: who owns the conversation and which one it is."""

    owner_id: str
    conversation_key: str

    @property
    def cache_key(self) -> str:
        return f"{self.owner_id}:{self.conversation_key}"


def coerce_message(message: "ConversationMessage | dict[str, Any]") -> ConversationMessage:
    """Accept either a ConversationMessage or a plain message dict."""
    if isinstance(message, ConversationMessage):
        return message
    return ConversationMessage.from_dict(message)


def to_provider_messages(
    messages: Iterable["ConversationMessage | dict[str, Any]"],
) -> list[dict[str, str]]:
    """Map messages onto the user/assistant roles chat-completion APIs accept.

    Assistant and user messages pass through. System messages become user
    messages tagged with a context marker, since the provider's system slot
    is reserved for the single top-level instruction.
    """
    result = []
    for message in messages:
        msg = coerce_message(message)
        if msg.role == ROLE_ASSISTANT:
            result.append({"role": ROLE_ASSISTANT, "content": msg.content})
        elif msg.role == ROLE_SYSTEM:
            result.append({"role": ROLE_USER, "content": f"{SYSTEM_CONTEXT_PREFIX}\n{msg.content}"})
        else:
            result.append({"role": ROLE_USER, "content": msg.content})
    return result
