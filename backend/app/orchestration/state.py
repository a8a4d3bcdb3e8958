"""Conversation state model for orchestration."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope, Step
from backend.app.models.document import UNDESCRIBED_DOCUMENT, UNTITLED_DOCUMENT, ElementRef
from backend.app.models.uploads import UploadedFile


@dataclass
class ConversationState:
    """The single mutable record of one conversation.

    Only ConversationMachine mutates it. ``selected_element`` is set only while
    ``step`` is preview.
    """

    step: Step = Step.upload
    uploaded_files: list[UploadedFile] = field(default_factory=list)
    analysis: DataAnalysis | None = None
    data_scope: DataScope | None = None
    design_brief: str | None = None

    # Current document and its extracted metadata
    document: str | None = None
    document_title: str = UNTITLED_DOCUMENT
    document_description: str = UNDESCRIBED_DOCUMENT
    selected_element: ElementRef | None = None

    # Saved record backing the current document (loaded or saved earlier)
    dashboard_id: UUID | None = None

    busy: bool = False

    @property
    def records(self) -> list[dict[str, Any]]:
        """Decoded records of every uploaded file, in upload order."""
        return [record for file in self.uploaded_files for record in file.records]

    def clear_document(self) -> None:
        """Drop the document, its metadata and any selection."""
        self.document = None
        self.document_title = UNTITLED_DOCUMENT
        self.document_description = UNDESCRIBED_DOCUMENT
        self.selected_element = None
        self.dashboard_id = None

    def start_batch(self, files: list[UploadedFile]) -> None:
        """Discard everything derived from a previous batch and keep the new files."""
        self.uploaded_files = list(files)
        self.analysis = None
        self.data_scope = None
        self.design_brief = None
        self.clear_document()
