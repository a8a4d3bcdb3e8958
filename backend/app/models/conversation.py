"""Conversation snapshot returned to the host UI."""

from uuid import UUID

from pydantic import BaseModel

from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope, Step
from backend.app.models.document import ElementRef
from backend.app.models.messages import Message


class FileSummary(BaseModel):
    """Uploaded file as shown to the host (no raw content)."""

    id: str
    name: str
    mime_type: str
    size_bytes: int
    kind: str
    record_count: int


class ConversationSnapshot(BaseModel):
    """Everything the host needs to re-render a conversation."""

    id: str
    step: Step
    step_number: int
    busy: bool
    files: list[FileSummary]
    analysis: DataAnalysis | None
    data_scope: DataScope | None
    document: str | None
    document_title: str
    document_description: str
    selected_element: ElementRef | None
    dashboard_id: UUID | None
    messages: list[Message]
