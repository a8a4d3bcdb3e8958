"""Models package - re-exports for convenience."""

from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import STEP_NUMBERS, DataScope, MessageRole, Step
from backend.app.models.conversation import ConversationSnapshot, FileSummary
from backend.app.models.dashboards import DashboardRecord, DashboardSummary
from backend.app.models.document import (
    UNDESCRIBED_DOCUMENT,
    UNTITLED_DOCUMENT,
    DocumentMetadata,
    ElementRef,
    FallbackDocument,
    GeneratedDocument,
    ValidDocument,
)
from backend.app.models.events import ElementSelectedMessage, parse_host_message
from backend.app.models.messages import Message
from backend.app.models.uploads import (
    CsvRecords,
    JsonRecords,
    ParsedContent,
    UnsupportedContent,
    UploadedFile,
)

__all__ = [
    # Common
    "DataScope",
    "MessageRole",
    "STEP_NUMBERS",
    "Step",
    # Timeline
    "Message",
    # Uploads
    "CsvRecords",
    "JsonRecords",
    "ParsedContent",
    "UnsupportedContent",
    "UploadedFile",
    # Analysis
    "DataAnalysis",
    # Documents
    "DocumentMetadata",
    "ElementRef",
    "FallbackDocument",
    "GeneratedDocument",
    "UNDESCRIBED_DOCUMENT",
    "UNTITLED_DOCUMENT",
    "ValidDocument",
    # Host messages
    "ElementSelectedMessage",
    "parse_host_message",
    # Conversation
    "ConversationSnapshot",
    "FileSummary",
    # Persistence
    "DashboardRecord",
    "DashboardSummary",
]
