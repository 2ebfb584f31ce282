"""Content fingerprint for an ordered message sequence."""

import hashlib
from typing import Any, Iterable

from chatcompact.history.messages import ConversationMessage, coerce_message

# Separator between serialized messages; not expected in normal chat text.
MESSAGE_SEPARATOR = "\n---\n"


def serialize_messages(messages: Iterable[ConversationMessage | dict[str, Any]]) -> str:
    """Serialize messages as ``role:content`` joined by MESSAGE_SEPARATOR."""
    parts = []
    for message in messages:
        msg = coerce_message(message)
        parts.append(f"{msg.role}:{msg.content}")
    return MESSAGE_SEPARATOR.join(parts)


def hash_messages(messages: Iterable[ConversationMessage | dict[str, Any]]) -> str:
    """Return the SHA-256 hex digest of the serialized message sequence.

    Identical sequences always hash the same, in any process. Reordering
    messages or editing any content changes the digest.
    """
    serialized = serialize_messages(messages)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()
