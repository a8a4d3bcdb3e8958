"""Conversation endpoints - one state machine per conversation."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Response, status
from pydantic import BaseModel, Field

from backend.app.api.deps import get_conversation, get_registry, rate_limited
from backend.app.documents.export import ExportedFile
from backend.app.models.common import DataScope
from backend.app.models.conversation import ConversationSnapshot
from backend.app.orchestration.errors import ConversationBusyError
from backend.app.orchestration.machine import ConversationMachine
from backend.app.orchestration.registry import ConversationRegistry
from backend.app.uploads.parser import parse_upload

router = APIRouter(prefix="/conversations", tags=["conversations"])

Conversation = Annotated[ConversationMachine, Depends(get_conversation)]


class UploadFileBody(BaseModel):
    """One file of an upload batch, already read as text by the host."""

    name: str = Field(..., min_length=1)
    mime_type: str = ""
    content: str


class UploadRequest(BaseModel):
    """Request body for POST /conversations/{id}/uploads."""

    files: list[UploadFileBody] = Field(..., min_length=1)


class ScopeRequest(BaseModel):
    """Request body for POST /conversations/{id}/scope."""

    scope: DataScope


class MessageRequest(BaseModel):
    """Request body for POST /conversations/{id}/messages."""

    text: str = Field(..., min_length=1)


class SaveRequest(BaseModel):
    """Request body for POST /conversations/{id}/save.

    Title and description default to the document's extracted metadata.
    """

    title: str | None = Field(None, min_length=1)
    description: str | None = None


def _file_response(exported: ExportedFile) -> Response:
    return Response(
        content=exported.content,
        media_type=exported.content_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.post("", response_model=ConversationSnapshot, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    registry: Annotated[ConversationRegistry, Depends(get_registry)],
) -> ConversationSnapshot:
    """Start a conversation (welcome message, plus setup note when unconfigured)."""
    return registry.create().snapshot()


@router.get("/{conversation_id}", response_model=ConversationSnapshot)
async def get_conversation_snapshot(conversation: Conversation) -> ConversationSnapshot:
    """Current snapshot, observed after any scheduled design prompt."""
    await conversation.settle()
    return conversation.snapshot()


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    registry: Annotated[ConversationRegistry, Depends(get_registry)],
) -> Response:
    """End a conversation and free its files and document."""
    if registry.get(conversation_id).state.busy:
        raise ConversationBusyError(conversation_id)
    registry.discard(conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{conversation_id}/uploads",
    response_model=ConversationSnapshot,
    dependencies=[Depends(rate_limited("uploads"))],
)
async def upload_files(request: UploadRequest, conversation: Conversation) -> ConversationSnapshot:
    """Replace the upload batch and analyse it."""
    files = [parse_upload(file.name, file.mime_type, file.content) for file in request.files]
    await conversation.handle_upload(files)
    return conversation.snapshot()


@router.post("/{conversation_id}/scope", response_model=ConversationSnapshot)
async def choose_scope(request: ScopeRequest, conversation: Conversation) -> ConversationSnapshot:
    """Choose all data or key insights; the design prompt follows shortly."""
    await conversation.choose_scope(request.scope)
    return conversation.snapshot()


@router.post(
    "/{conversation_id}/messages",
    response_model=ConversationSnapshot,
    dependencies=[Depends(rate_limited("messages"))],
)
async def post_message(request: MessageRequest, conversation: Conversation) -> ConversationSnapshot:
    """Send a free-text message, routed by the current step."""
    await conversation.handle_user_message(request.text)
    return conversation.snapshot()


@router.post("/{conversation_id}/selection", response_model=ConversationSnapshot)
async def post_selection(
    conversation: Conversation,
    message: Annotated[dict[str, Any], Body()],
) -> ConversationSnapshot:
    """Forward a cross-document message; unknown message types are ignored."""
    conversation.receive_selection(message)
    return conversation.snapshot()


@router.get("/{conversation_id}/export")
async def export_dashboard(conversation: Conversation) -> Response:
    """Download the current document."""
    return _file_response(conversation.export())


@router.get("/{conversation_id}/export/standalone")
async def export_standalone(conversation: Conversation) -> Response:
    """Download the current document without the selection script."""
    return _file_response(conversation.export(standalone=True))


@router.post("/{conversation_id}/save", response_model=ConversationSnapshot)
async def save_dashboard(
    conversation: Conversation,
    request: SaveRequest | None = None,
) -> ConversationSnapshot:
    """Save the current document; failures are reported in the timeline."""
    request = request or SaveRequest()
    await conversation.save(request.title, request.description)
    return conversation.snapshot()


@router.post("/{conversation_id}/load/{dashboard_id}", response_model=ConversationSnapshot)
async def load_dashboard(dashboard_id: UUID, conversation: Conversation) -> ConversationSnapshot:
    """Open a saved dashboard in this conversation's preview."""
    await conversation.load(dashboard_id)
    return conversation.snapshot()
