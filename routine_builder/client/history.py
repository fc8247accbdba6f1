from __future__ import annotations

from typing import Iterator, Optional

from routine_builder.client.models import Message

DEFAULT_SYSTEM_PROMPT = (
    "You are an assistant that ONLY answers questions about the generated routine or topics related to "
    "skincare, haircare, makeup, fragrance, and product usage for the products in this catalog. "
    "If the user asks about unrelated topics, politely refuse. Use the provided product data and prior "
    "conversation history to answer. Be concise and helpful."
)


class ConversationHistory:
    """Append-only log of chat turns, seeded with one system message at index 0."""

    def __init__(self, system_prompt: Optional[str] = None) -> None:
        self._messages: list[Message] = [
            Message(role="system", content=system_prompt or DEFAULT_SYSTEM_PROMPT)
        ]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    @property
    def system_message(self) -> Message:
        return self._messages[0]

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def last(self) -> Message:
        return self._messages[-1]

    def append_user(self, text: str) -> Message:
        if not text or not text.strip():
            raise ValueError("user message must be non-empty")
        message = Message(role="user", content=text)
        self._messages.append(message)
        return message

    def append_assistant(self, text: str) -> Message:
        message = Message(role="assistant", content=text)
        self._messages.append(message)
        return message

    def snapshot_for_request(self, extra_user_message: Optional[str] = None) -> list[Message]:
        # The extra message rides along in the returned copy only.
        snapshot = list(self._messages)
        if extra_user_message is not None:
            snapshot.append(Message(role="user", content=extra_user_message))
        return snapshot
