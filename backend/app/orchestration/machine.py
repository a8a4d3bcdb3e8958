"""Conversation state machine.

Sequences upload -> data-selection -> design -> generation -> preview, owns
the message timeline, and routes user messages per step. Every asynchronous
call follows the same pattern: append a pending placeholder, await the call,
then morph the placeholder into the final message (advancing the step) or
into an error message (reverting to the last stable step). Only one call may
be in flight at a time.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from backend.app.db.repositories import DashboardNotFoundError, PersistenceError, PersistenceGateway
from backend.app.documents.export import DEFAULT_EXPORT_FILENAME, ExportedFile, export_document
from backend.app.documents.markup import extract_metadata
from backend.app.llm.client import GenerationClient
from backend.app.llm.errors import BackendConfigurationError
from backend.app.models.common import STEP_NUMBERS, DataScope, MessageRole, Step
from backend.app.models.conversation import ConversationSnapshot, FileSummary
from backend.app.models.document import ElementRef, FallbackDocument
from backend.app.models.events import parse_host_message
from backend.app.models.uploads import UploadedFile
from backend.app.orchestration.errors import ConversationBusyError, InvalidTransitionError
from backend.app.orchestration.state import ConversationState
from backend.app.orchestration.timeline import MessageTimeline
from backend.app.targeting.protocol import derive_selector
from backend.app.utils.metrics import record_transition

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """Hello! I'm Agent Dash, your assistant for creating interactive dashboards.

I'll help you turn your data into a working dashboard in a few steps:

1. **Upload your data files** (CSV or JSON, max {max_files} files)
2. **Choose your data approach** (all data or key insights only)
3. **Describe your desired design** (layout, style, features)
4. **Get your custom dashboard** with a live preview

Let's start by uploading your data files."""

UNAVAILABLE_MESSAGE = (
    "Dashboard generation is unavailable until the generation backend is configured "
    "(see the setup note at the top of this conversation)."
)

GENERATION_INTERRUPTED = (
    "Dashboard generation was interrupted. Please describe your design again to retry."
)

DESIGN_PROMPT = """Now, let's design your dashboard! Please describe how you'd like it to look and what features you want:

- **Layout**: a single page or multiple sections?
- **Style**: modern, minimal, colorful, professional?
- **Key features**: charts, tables, filters, KPIs?
- **Focus areas**: what's most important to highlight?

For example: "Create a modern, professional dashboard with revenue charts, customer analytics, and interactive filters in a clean layout.\""""

PREVIEW_HELP = """I can help you modify your dashboard! Click any element in the preview to change just that element, or ask me to:

- Change colors or styling
- Add new chart types
- Modify the layout
- Add or remove features

What would you like to change?"""


class ConversationMachine:
    """One conversation: state, timeline and the transitions between steps."""

    def __init__(
        self,
        client: GenerationClient | None,
        gateway: PersistenceGateway | None = None,
        *,
        conversation_id: str | None = None,
        unavailable_reason: str | None = None,
        max_upload_files: int = 3,
        design_prompt_delay_ms: int = 1000,
        export_filename: str = DEFAULT_EXPORT_FILENAME,
    ) -> None:
        """Create a conversation and greet the user.

        Args:
            client: Generation client, or None when the backend is unconfigured
            gateway: Persistence gateway (optional; saving is disabled without it)
            conversation_id: Explicit id (default: random hex)
            unavailable_reason: Remediation text reported once when client is None
            max_upload_files: Maximum files per upload batch
            design_prompt_delay_ms: Delay before the design-brief prompt appears
            export_filename: Filename offered for exports
        """
        self.id = conversation_id or uuid.uuid4().hex
        self.state = ConversationState()
        self.timeline = MessageTimeline()

        self._client = client
        self._gateway = gateway
        self._max_upload_files = max_upload_files
        self._design_prompt_delay_ms = design_prompt_delay_ms
        self._export_filename = export_filename
        self._design_prompt: asyncio.Task[None] | None = None

        self._say(WELCOME_MESSAGE.format(max_files=max_upload_files))
        if client is None:
            self._say(unavailable_reason or UNAVAILABLE_MESSAGE)

    # --- helpers -----------------------------------------------------------

    def _say(self, text: str, role: MessageRole = MessageRole.agent) -> None:
        self.timeline.append(role, text)

    def _move_to(self, step: Step) -> None:
        previous = self.state.step
        self.state.step = step
        if step != Step.preview:
            self.state.selected_element = None
        if previous != step:
            record_transition(previous.value, step.value)
            logger.info(f"Conversation {self.id}: {previous.value} -> {step.value}")

    def _ensure_idle(self) -> None:
        if self.state.busy:
            raise ConversationBusyError(self.id)

    @asynccontextmanager
    async def _busy(self) -> AsyncIterator[None]:
        self._ensure_idle()
        self.state.busy = True
        try:
            yield
        finally:
            self.state.busy = False

    @staticmethod
    def _failure_text(error: Exception, default: str) -> str:
        # Configuration errors carry user-facing remediation text
        if isinstance(error, BackendConfigurationError):
            return str(error)
        return default

    def _adopt_document(self, body: str) -> None:
        """Replace the document, keeping the previous metadata where markers are missing."""
        metadata = extract_metadata(
            body,
            default_title=self.state.document_title,
            default_description=self.state.document_description,
        )
        self.state.document = body
        self.state.document_title = metadata.title
        self.state.document_description = metadata.description

    def snapshot(self) -> ConversationSnapshot:
        """Current state and timeline, as rendered by the host."""
        return ConversationSnapshot(
            id=self.id,
            step=self.state.step,
            step_number=STEP_NUMBERS[self.state.step],
            busy=self.state.busy,
            files=[
                FileSummary(
                    id=file.id,
                    name=file.name,
                    mime_type=file.mime_type,
                    size_bytes=file.size_bytes,
                    kind=file.parsed.kind,
                    record_count=len(file.records),
                )
                for file in self.state.uploaded_files
            ],
            analysis=self.state.analysis,
            data_scope=self.state.data_scope,
            document=self.state.document,
            document_title=self.state.document_title,
            document_description=self.state.document_description,
            selected_element=self.state.selected_element,
            dashboard_id=self.state.dashboard_id,
            messages=self.timeline.messages,
        )

    # --- deferred design prompt ---------------------------------------------

    @property
    def design_prompt_pending(self) -> bool:
        """Whether the scope acknowledgement is still waiting for its follow-up prompt."""
        return self._design_prompt is not None and not self._design_prompt.done()

    async def _deliver_design_prompt(self) -> None:
        await asyncio.sleep(self._design_prompt_delay_ms / 1000)
        self._say(DESIGN_PROMPT)
        self._move_to(Step.design)

    async def settle(self) -> None:
        """Wait for a scheduled design prompt so the state is observed after it."""
        task = self._design_prompt
        if task is None:
            return
        await task
        if self._design_prompt is task:
            self._design_prompt = None

    # --- transitions -------------------------------------------------------

    async def handle_upload(self, files: Sequence[UploadedFile]) -> None:
        """Start a new upload batch and analyse it.

        A successfully analysed batch discards previous files, analysis and
        document. On analysis failure nothing is discarded and the step is
        unchanged, so the user can retry.
        """
        await self.settle()
        self._ensure_idle()

        if not files:
            self._say("Please choose at least one file to upload.")
            return
        if len(files) > self._max_upload_files:
            self._say(
                f"You can upload up to {self._max_upload_files} files at a time. "
                f"Please remove {len(files) - self._max_upload_files} and try again."
            )
            return

        batch = list(files)
        names = ", ".join(file.name for file in batch)
        self.timeline.append(MessageRole.user, f"Uploaded {len(batch)} file(s): {names}")

        if self._client is None:
            self._say(UNAVAILABLE_MESSAGE)
            return

        placeholder = self.timeline.append(
            MessageRole.agent, "Analyzing your data files...", pending=True
        )

        # Previous files, analysis and document survive a failed analysis
        async with self._busy():
            try:
                analysis = await self._client.analyze(batch)
            except Exception as e:
                logger.exception(f"Conversation {self.id}: analysis failed")
                self.timeline.update(
                    placeholder.id,
                    self._failure_text(
                        e,
                        "Sorry, I encountered an error analyzing your data. "
                        "Please try uploading your files again.",
                    ),
                )
                return

            self.state.start_batch(batch)
            self._move_to(Step.upload)
            self.state.analysis = analysis
            insights = "\n".join(f"- {insight}" for insight in analysis.key_insights)
            self.timeline.update(
                placeholder.id,
                f"Great! I've analyzed your {len(files)} file(s). Here's what I found:\n\n"
                f"**Data Summary**: {analysis.summary}\n\n"
                f"**Key Insights**:\n{insights}\n\n"
                "Now, would you like to use all your data or focus on the most important "
                "insights I've identified?",
            )
            self._move_to(Step.data_selection)

    async def choose_scope(self, scope: DataScope) -> None:
        """Record the data scope and schedule the design-brief prompt.

        The step becomes ``design`` when the deferred prompt is delivered.
        """
        await self.settle()
        self._ensure_idle()

        if self.state.step != Step.data_selection:
            raise InvalidTransitionError(
                f"Data scope can only be chosen after analysis (current step: {self.state.step.value})"
            )

        self.state.data_scope = scope
        if scope == DataScope.all:
            self._say("Perfect! I'll use all your data to create a comprehensive dashboard.")
        else:
            self._say("Excellent choice! I'll focus on the key insights for a streamlined dashboard.")

        self._design_prompt = asyncio.create_task(self._deliver_design_prompt())

    async def handle_user_message(self, text: str) -> None:
        """Route a free-text message according to the current step.

        In preview with a selection the text is a scoped edit request; in
        preview without one it revises the whole document; in design it is
        the design brief.
        """
        await self.settle()
        self._ensure_idle()

        text = text.strip()
        if not text:
            return

        self.timeline.append(MessageRole.user, text)
        step = self.state.step

        if step == Step.preview and self.state.document is not None:
            if self.state.selected_element is not None:
                await self._edit_selected(text)
            else:
                await self._revise(text)
        elif step == Step.upload:
            self._say(
                "Please upload your data files using the upload area above, "
                "then I can help you create your dashboard!"
            )
        elif step == Step.design:
            await self._generate(text)
        elif step == Step.preview:
            self._say(PREVIEW_HELP)
        else:
            self._say(
                "I'm here to help! Choose whether to use all your data or only the key "
                "insights to continue."
            )

    async def _generate(self, brief: str) -> None:
        if self._client is None:
            self._say(UNAVAILABLE_MESSAGE)
            return
        if self.state.analysis is None:
            raise InvalidTransitionError("No data analysis available, upload files first")

        self.state.design_brief = brief
        placeholder = self.timeline.append(
            MessageRole.agent, "Perfect! Let me create your custom dashboard...", pending=True
        )

        async with self._busy():
            self._move_to(Step.generation)
            try:
                generated = await self._client.synthesize(
                    analysis=self.state.analysis,
                    scope=self.state.data_scope or DataScope.all,
                    brief=brief,
                    records=self.state.records,
                )
            except Exception as e:
                logger.exception(f"Conversation {self.id}: synthesis failed")
                self.timeline.update(
                    placeholder.id,
                    self._failure_text(
                        e,
                        "I encountered an error generating your dashboard. "
                        "Please try describing your design requirements again.",
                    ),
                )
                self._move_to(Step.design)
                return
            except BaseException:
                # Cancelled: generation never outlives the call
                self.timeline.update(placeholder.id, GENERATION_INTERRUPTED)
                self._move_to(Step.design)
                raise

            self.state.document = generated.body
            self.state.document_title = generated.metadata.title
            self.state.document_description = generated.metadata.description
            self.state.selected_element = None
            self.state.dashboard_id = None
            self._move_to(Step.preview)

            note = ""
            if isinstance(generated, FallbackDocument):
                note = (
                    "\n\nI couldn't build a fully custom design this time, so this is a "
                    "standard overview built from your data analysis."
                )
            self.timeline.update(
                placeholder.id,
                f"Your dashboard **{generated.metadata.title}** is ready! You can see the live "
                "preview on the right. Click any element to change just that part, describe "
                f"a change, or download the file.{note}",
            )

    async def _edit_selected(self, request: str) -> None:
        element = self.state.selected_element
        assert element is not None and self.state.document is not None

        if self._client is None:
            self.state.selected_element = None
            self._say(UNAVAILABLE_MESSAGE)
            return

        placeholder = self.timeline.append(
            MessageRole.agent, f"Updating `{element.selector}`...", pending=True
        )

        async with self._busy():
            try:
                body = await self._client.edit_element(
                    document=self.state.document, element=element, request=request
                )
            except Exception as e:
                logger.exception(f"Conversation {self.id}: edit of {element.selector} failed")
                # A newer click replaces the selection; only the edited one is cleared
                if self.state.selected_element is element:
                    self.state.selected_element = None
                self.timeline.update(
                    placeholder.id,
                    self._failure_text(
                        e,
                        f"I couldn't update `{element.selector}`. The dashboard is unchanged; "
                        "select an element and try describing the change differently.",
                    ),
                )
                return

            self._adopt_document(body)
            if self.state.selected_element is element:
                self.state.selected_element = None
            self.timeline.update(
                placeholder.id,
                f"Updated `{element.selector}`: {request}\n\n"
                "The preview shows the new version. Select another element to keep refining.",
            )

    async def _revise(self, request: str) -> None:
        assert self.state.document is not None

        if self._client is None:
            self._say(UNAVAILABLE_MESSAGE)
            return

        placeholder = self.timeline.append(
            MessageRole.agent, "Let me modify your dashboard...", pending=True
        )

        async with self._busy():
            try:
                body = await self._client.revise(
                    document=self.state.document,
                    analysis=self.state.analysis,
                    scope=self.state.data_scope,
                    request=request,
                )
            except Exception as e:
                logger.exception(f"Conversation {self.id}: revision failed")
                self.timeline.update(
                    placeholder.id,
                    self._failure_text(
                        e,
                        "I encountered an error modifying your dashboard. Please try describing "
                        "your changes differently or be more specific about what you'd like to modify.",
                    ),
                )
                return

            self._adopt_document(body)
            self.timeline.update(
                placeholder.id,
                f"Dashboard updated! I've made the following changes based on your request:\n\n"
                f"{request}\n\nYou can keep asking for modifications or download the updated version.",
            )

    def receive_selection(self, raw: Any) -> ElementRef | None:
        """Handle a cross-document message from the rendered document.

        Unknown message types, and selections outside preview, are ignored.
        The last click wins.
        """
        element = parse_host_message(raw)
        if element is None:
            return None
        if self.state.step != Step.preview or self.state.document is None:
            logger.info(f"Conversation {self.id}: ignoring selection at step {self.state.step.value}")
            return None

        if not element.selector:
            element = element.model_copy(
                update={
                    "selector": derive_selector(element.id, element.tag_name, element.class_names)
                }
            )

        self.state.selected_element = element
        self._say(f"You selected `{element.selector}`. How would you like to change it?")
        return element

    # --- export and persistence --------------------------------------------

    def export(self, *, standalone: bool = False) -> ExportedFile:
        """Export the current document as an HTML file.

        Raises:
            InvalidTransitionError: If there is no document yet
        """
        if self.state.document is None:
            raise InvalidTransitionError("There is no dashboard to export yet")
        return export_document(
            self.state.document, filename=self._export_filename, standalone=standalone
        )

    async def save(self, title: str | None = None, description: str | None = None) -> UUID | None:
        """Save the current document; returns the record id, or None on failure."""
        await self.settle()
        self._ensure_idle()

        if self.state.document is None:
            raise InvalidTransitionError("There is no dashboard to save yet")
        if self._gateway is None:
            self._say("Saving is not available: no dashboard storage is configured.")
            return None

        title = title or self.state.document_title
        description = description or self.state.document_description

        async with self._busy():
            try:
                dashboard_id = await self._gateway.save(
                    title, description, self.state.document, existing_id=self.state.dashboard_id
                )
            except PersistenceError as e:
                logger.error(f"Conversation {self.id}: save failed: {e}")
                self._say(f"I couldn't save your dashboard: {e}")
                return None

        self.state.dashboard_id = dashboard_id
        self._say(f"Saved **{title}** to your dashboards.", MessageRole.success)
        return dashboard_id

    async def load(self, dashboard_id: UUID) -> None:
        """Open a saved dashboard in preview so it can be refined further.

        Raises:
            DashboardNotFoundError: If the dashboard does not exist
            PersistenceError: If the store failed
        """
        await self.settle()
        self._ensure_idle()

        if self._gateway is None:
            raise InvalidTransitionError("No dashboard storage is configured")

        async with self._busy():
            try:
                record = await self._gateway.load(dashboard_id)
            except DashboardNotFoundError:
                self._say("I couldn't find that dashboard. It may have been deleted.")
                raise
            except PersistenceError as e:
                self._say(f"I couldn't load that dashboard: {e}")
                raise

        self.state.start_batch([])
        self.state.document = record.document_body
        self.state.document_title = record.title
        self.state.document_description = record.description
        self.state.dashboard_id = record.id
        self._move_to(Step.preview)
        self._say(
            f"Loaded **{record.title}**. Click any element in the preview to change it, "
            "or describe a change.",
            MessageRole.success,
        )
