"""Conversation-level errors."""


class ConversationBusyError(Exception):
    """A generation, analysis, edit or persistence call is already in flight."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation {conversation_id} is busy, wait for the current step")
        self.conversation_id = conversation_id


class InvalidTransitionError(Exception):
    """The requested action is not available at the conversation's current step."""

    pass


class ConversationNotFoundError(Exception):
    """No live conversation has the requested id."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id
