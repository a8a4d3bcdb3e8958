"""Live conversation registry."""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from backend.app.config import Settings
from backend.app.db.repositories import PersistenceGateway
from backend.app.llm.client import GenerationClient
from backend.app.orchestration.errors import ConversationNotFoundError
from backend.app.orchestration.machine import ConversationMachine

logger = logging.getLogger(__name__)


class ConversationRegistry:
    """Owns the live conversations of one application instance.

    Conversations live in memory only; they are not persisted. The registry
    holds at most ``settings.max_conversations`` of them and forgets any left
    idle for ``settings.conversation_idle_ttl_seconds``. A conversation with a
    call in flight or a pending design prompt is never evicted.
    """

    def __init__(
        self,
        settings: Settings,
        client: GenerationClient | None,
        gateway: PersistenceGateway | None = None,
        *,
        unavailable_reason: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._client = client
        self._gateway = gateway
        self._unavailable_reason = unavailable_reason
        self._clock = clock
        # id -> (machine, last used), least recently used first
        self._conversations: OrderedDict[str, tuple[ConversationMachine, float]] = OrderedDict()

    def create(self) -> ConversationMachine:
        """Start a new conversation, evicting stale ones to make room."""
        now = self._clock()
        self._evict_expired(now)
        self._evict_to_capacity(max(self._settings.max_conversations, 1) - 1)

        machine = ConversationMachine(
            self._client,
            self._gateway,
            unavailable_reason=self._unavailable_reason,
            max_upload_files=self._settings.max_upload_files,
            design_prompt_delay_ms=self._settings.design_prompt_delay_ms,
            export_filename=self._settings.export_filename,
        )
        self._conversations[machine.id] = (machine, now)
        logger.info(f"Created conversation {machine.id}")
        return machine

    def get(self, conversation_id: str) -> ConversationMachine:
        """Look up a live conversation and mark it used.

        Raises:
            ConversationNotFoundError: If no conversation has this id, or it expired
        """
        entry = self._conversations.get(conversation_id)
        if entry is None:
            raise ConversationNotFoundError(conversation_id)

        machine, last_used = entry
        now = self._clock()
        if self._is_expired(machine, last_used, now):
            del self._conversations[conversation_id]
            logger.info(f"Conversation {conversation_id} expired")
            raise ConversationNotFoundError(conversation_id)

        self._conversations[conversation_id] = (machine, now)
        self._conversations.move_to_end(conversation_id)
        return machine

    def discard(self, conversation_id: str) -> None:
        """Forget a conversation.

        Raises:
            ConversationNotFoundError: If no conversation has this id
        """
        if self._conversations.pop(conversation_id, None) is None:
            raise ConversationNotFoundError(conversation_id)
        logger.info(f"Discarded conversation {conversation_id}")

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    @staticmethod
    def _evictable(machine: ConversationMachine) -> bool:
        return not machine.state.busy and not machine.design_prompt_pending

    def _is_expired(self, machine: ConversationMachine, last_used: float, now: float) -> bool:
        ttl = self._settings.conversation_idle_ttl_seconds
        return now - last_used > ttl and self._evictable(machine)

    def _evict_expired(self, now: float) -> None:
        expired = [
            conversation_id
            for conversation_id, (machine, last_used) in self._conversations.items()
            if self._is_expired(machine, last_used, now)
        ]
        for conversation_id in expired:
            del self._conversations[conversation_id]
        if expired:
            logger.info(f"Expired {len(expired)} idle conversation(s)")

    def _evict_to_capacity(self, capacity: int) -> None:
        while len(self._conversations) > capacity:
            victim = next(
                (
                    conversation_id
                    for conversation_id, (machine, _) in self._conversations.items()
                    if self._evictable(machine)
                ),
                None,
            )
            if victim is None:
                logger.warning(
                    f"All {len(self._conversations)} conversations are busy, "
                    "exceeding max_conversations"
                )
                return
            del self._conversations[victim]
            logger.info(f"Evicted least recently used conversation {victim}")
