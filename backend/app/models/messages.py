"""Conversation timeline message model."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from backend.app.models.common import MessageRole


class Message(BaseModel):
    """Single timeline entry.

    Only ``text`` and ``pending`` change after creation, and only through the
    timeline's update-by-id (a "working..." placeholder morphing into its
    final content).
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: MessageRole
    text: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    pending: bool = False
