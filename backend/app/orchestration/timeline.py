"""Ordered conversation timeline."""

from collections.abc import Iterator

from backend.app.models.common import MessageRole
from backend.app.models.messages import Message


class MessageTimeline:
    """Append-only message list with in-place update by id.

    Order is insertion order; there is no reordering or dedup.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._index: dict[str, int] = {}

    def append(self, role: MessageRole, text: str, *, pending: bool = False) -> Message:
        """Append a message and return it."""
        message = Message(role=role, text=text, pending=pending)
        self._index[message.id] = len(self._messages)
        self._messages.append(message)
        return message

    def update(self, message_id: str, text: str, *, pending: bool = False) -> Message:
        """Replace the text (and pending flag) of an existing message.

        Raises:
            KeyError: If no message has this id
        """
        position = self._index[message_id]
        message = self._messages[position].model_copy(update={"text": text, "pending": pending})
        self._messages[position] = message
        return message

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the timeline in insertion order."""
        return list(self._messages)

    @property
    def last(self) -> Message | None:
        """Most recent message."""
        return self._messages[-1] if self._messages else None

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)
