"""Tests for the conversation state machine."""

import asyncio
import uuid
from collections.abc import Sequence
from typing import Any

import pytest

from backend.app.db.inmemory import InMemoryDashboardRepository
from backend.app.db.repositories import DashboardNotFoundError, PersistenceError, PersistenceGateway
from backend.app.documents.markup import extract_metadata
from backend.app.llm.errors import BackendConfigurationError, ElementEditError
from backend.app.llm.fallback import build_fallback_analysis, build_fallback_document
from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope, MessageRole, Step
from backend.app.models.document import ElementRef, GeneratedDocument, ValidDocument
from backend.app.models.uploads import UploadedFile
from backend.app.orchestration.errors import ConversationBusyError, InvalidTransitionError
from backend.app.orchestration.machine import (
    DESIGN_PROMPT,
    GENERATION_INTERRUPTED,
    PREVIEW_HELP,
    UNAVAILABLE_MESSAGE,
    ConversationMachine,
)
from backend.app.targeting.protocol import SELECTION_SCRIPT, ensure_selection_script

GENERATED_HTML = """<!DOCTYPE html>
<html>
<head>
<meta name="dashboard-title" content="Regional Revenue">
<meta name="dashboard-description" content="Revenue by region for Q1.">
</head>
<body><div id="kpi-revenue">2450</div><div id="kpi-orders">31</div></body>
</html>"""

EDITED_HTML = """<!DOCTYPE html>
<html><body><div id="kpi-revenue" style="color: red">2450</div></body></html>"""


class FakeClient:
    """Scriptable generation client.

    ``gate`` (when set) holds every call until released; ``*_error`` makes the
    corresponding call raise.
    """

    def __init__(self) -> None:
        self.gate: asyncio.Event | None = None
        self.analyze_error: Exception | None = None
        self.synthesize_error: Exception | None = None
        self.edit_error: Exception | None = None
        self.fallback = False
        self.edit_requests: list[tuple[str, str]] = []
        self.revise_requests: list[tuple[DataAnalysis | None, str]] = []

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def analyze(self, files: Sequence[UploadedFile]) -> DataAnalysis:
        await self._wait()
        if self.analyze_error is not None:
            raise self.analyze_error
        return build_fallback_analysis(files)

    async def synthesize(
        self,
        *,
        analysis: DataAnalysis,
        scope: DataScope,
        brief: str,
        records: Sequence[dict[str, Any]],
    ) -> GeneratedDocument:
        await self._wait()
        if self.synthesize_error is not None:
            raise self.synthesize_error
        if self.fallback:
            return build_fallback_document(analysis, scope, reason="test")
        body = ensure_selection_script(GENERATED_HTML)
        return ValidDocument(body=body, metadata=extract_metadata(body))

    async def edit_element(self, *, document: str, element: ElementRef, request: str) -> str:
        self.edit_requests.append((element.selector, request))
        await self._wait()
        if self.edit_error is not None:
            raise self.edit_error
        return ensure_selection_script(EDITED_HTML)

    async def revise(
        self,
        *,
        document: str,
        analysis: DataAnalysis | None,
        scope: DataScope | None,
        request: str,
    ) -> str:
        self.revise_requests.append((analysis, request))
        await self._wait()
        if self.edit_error is not None:
            raise self.edit_error
        return ensure_selection_script(GENERATED_HTML.replace("2450", "2,450"))


class FailingRepository(InMemoryDashboardRepository):
    """Repository whose store is down."""

    async def insert(self, title: str, description: str, document_body: str) -> Any:
        raise PersistenceError("database is unavailable")

    async def get(self, dashboard_id: uuid.UUID) -> Any:
        raise PersistenceError("database is unavailable")


def _selection(selector: str = "", **payload: str) -> dict[str, Any]:
    return {"type": "element-selected", "payload": {"selector": selector, **payload}}


async def _until_busy(machine: ConversationMachine) -> None:
    while not machine.state.busy:
        await asyncio.sleep(0)


@pytest.fixture
def client() -> FakeClient:
    """Scriptable fake client."""
    return FakeClient()


@pytest.fixture
def machine(client: FakeClient) -> ConversationMachine:
    """Machine with an in-memory gateway and no design prompt delay."""
    return ConversationMachine(
        client,
        PersistenceGateway(InMemoryDashboardRepository()),
        design_prompt_delay_ms=0,
    )


async def _to_design(machine: ConversationMachine, file: UploadedFile) -> None:
    await machine.handle_upload([file])
    await machine.choose_scope(DataScope.all)
    await machine.settle()


async def _to_preview(machine: ConversationMachine, file: UploadedFile) -> None:
    await _to_design(machine, file)
    await machine.handle_user_message("Dark theme with revenue KPIs")


class TestGreeting:
    """Test conversation start."""

    def test_welcome_message(self, machine: ConversationMachine) -> None:
        """Test a new conversation greets once and waits for uploads."""
        assert machine.state.step == Step.upload
        assert len(machine.timeline) == 1
        assert "max 3 files" in machine.timeline.messages[0].text

    def test_unconfigured_backend_is_reported_once(self) -> None:
        """Test the remediation text follows the welcome when there is no client."""
        machine = ConversationMachine(None, unavailable_reason="Set OPENAI_API_KEY and restart.")

        texts = [m.text for m in machine.timeline.messages]
        assert len(texts) == 2
        assert texts[1] == "Set OPENAI_API_KEY and restart."

    @pytest.mark.asyncio
    async def test_upload_without_client_stays_in_upload(self, sales_file: UploadedFile) -> None:
        """Test uploads without a backend explain the setup and do not advance."""
        machine = ConversationMachine(None)

        await machine.handle_upload([sales_file])

        assert machine.state.step == Step.upload
        assert machine.timeline.messages[-1].text == UNAVAILABLE_MESSAGE


class TestUpload:
    """Test the upload -> data-selection transition."""

    @pytest.mark.asyncio
    async def test_successful_analysis(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test analysis moves to data-selection and reports insights."""
        await machine.handle_upload([sales_file])

        assert machine.state.step == Step.data_selection
        assert machine.state.analysis is not None
        assert not machine.state.busy

        user, reply = machine.timeline.messages[-2:]
        assert user.role == MessageRole.user
        assert user.text == "Uploaded 1 file(s): sales.csv"
        assert not reply.pending
        assert "**Key Insights**" in reply.text
        assert machine.state.analysis.key_insights[0] in reply.text

    @pytest.mark.asyncio
    async def test_too_many_files(self, machine: ConversationMachine, sales_file: UploadedFile) -> None:
        """Test a batch over the limit is refused without state changes."""
        await machine.handle_upload([sales_file] * 4)

        assert machine.state.step == Step.upload
        assert machine.state.uploaded_files == []
        assert "up to 3 files" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_empty_batch(self, machine: ConversationMachine) -> None:
        """Test an empty batch only prompts for files."""
        await machine.handle_upload([])

        assert machine.state.step == Step.upload
        assert len(machine.timeline) == 2

    @pytest.mark.asyncio
    async def test_analysis_failure_stays_in_upload(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a failed analysis morphs the placeholder into an error."""
        client.analyze_error = RuntimeError("boom")

        await machine.handle_upload([sales_file])

        assert machine.state.step == Step.upload
        assert machine.state.analysis is None
        assert not machine.state.busy
        last = machine.timeline.messages[-1]
        assert not last.pending
        assert "try uploading your files again" in last.text

    @pytest.mark.asyncio
    async def test_configuration_failure_shows_remediation(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test configuration errors surface their own message."""
        client.analyze_error = BackendConfigurationError("Check OPENAI_API_KEY.")

        await machine.handle_upload([sales_file])

        assert machine.timeline.messages[-1].text == "Check OPENAI_API_KEY."

    @pytest.mark.asyncio
    async def test_failed_reupload_keeps_current_work(
        self,
        machine: ConversationMachine,
        client: FakeClient,
        sales_file: UploadedFile,
        customers_file: UploadedFile,
    ) -> None:
        """Test a failed analysis of a new batch leaves the previous session intact."""
        await _to_preview(machine, sales_file)
        document = machine.state.document
        analysis = machine.state.analysis
        client.analyze_error = BackendConfigurationError("Check OPENAI_API_KEY.")

        await machine.handle_upload([customers_file])

        assert machine.state.step == Step.preview
        assert machine.state.document == document
        assert machine.state.analysis == analysis
        assert machine.state.document_title == "Regional Revenue"
        assert machine.state.data_scope == DataScope.all
        assert [f.name for f in machine.state.uploaded_files] == ["sales.csv"]
        assert machine.timeline.messages[-1].text == "Check OPENAI_API_KEY."
        assert not machine.state.busy

    @pytest.mark.asyncio
    async def test_new_batch_discards_previous_work(
        self, machine: ConversationMachine, sales_file: UploadedFile, customers_file: UploadedFile
    ) -> None:
        """Test uploading from preview starts over with the new files."""
        await _to_preview(machine, sales_file)
        machine.receive_selection(_selection("#kpi-revenue"))

        await machine.handle_upload([customers_file])

        assert machine.state.step == Step.data_selection
        assert machine.state.document is None
        assert machine.state.selected_element is None
        assert machine.state.data_scope is None
        assert [f.name for f in machine.state.uploaded_files] == ["customers.json"]

    @pytest.mark.asyncio
    async def test_message_before_upload_reminds(self, machine: ConversationMachine) -> None:
        """Test typing at the upload step asks for files."""
        await machine.handle_user_message("Make me a dashboard")

        assert machine.state.step == Step.upload
        assert "upload your data files" in machine.timeline.messages[-1].text


class TestScope:
    """Test the data-selection -> design transition."""

    @pytest.mark.asyncio
    async def test_scope_before_analysis_is_invalid(self, machine: ConversationMachine) -> None:
        """Test choosing a scope at the upload step raises."""
        with pytest.raises(InvalidTransitionError):
            await machine.choose_scope(DataScope.all)

    @pytest.mark.asyncio
    async def test_design_prompt_is_deferred(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test the acknowledgement comes first and the prompt after settling."""
        await machine.handle_upload([sales_file])

        await machine.choose_scope(DataScope.insights)

        assert machine.state.data_scope == DataScope.insights
        assert machine.state.step == Step.data_selection
        assert machine.design_prompt_pending
        assert "key insights" in machine.timeline.messages[-1].text

        await machine.settle()

        assert machine.state.step == Step.design
        assert not machine.design_prompt_pending
        assert machine.timeline.messages[-1].text == DESIGN_PROMPT

    @pytest.mark.asyncio
    async def test_message_during_data_selection(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test free text before choosing a scope gets guidance only."""
        await machine.handle_upload([sales_file])

        await machine.handle_user_message("hello?")

        assert machine.state.step == Step.data_selection
        assert "all your data" in machine.timeline.messages[-1].text


class TestGeneration:
    """Test the design -> generation -> preview transitions."""

    @pytest.mark.asyncio
    async def test_brief_generates_document(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test a design brief yields a previewable document."""
        await _to_preview(machine, sales_file)

        assert machine.state.step == Step.preview
        assert machine.state.design_brief == "Dark theme with revenue KPIs"
        assert machine.state.document is not None
        assert machine.state.document.count(SELECTION_SCRIPT) == 1
        assert machine.state.document_title == "Regional Revenue"
        assert "**Regional Revenue** is ready" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_synthesis_failure_reverts_to_design(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a failed generation returns to the design step."""
        await _to_design(machine, sales_file)
        client.synthesize_error = RuntimeError("network down")

        await machine.handle_user_message("Anything")

        assert machine.state.step == Step.design
        assert machine.state.document is None
        assert "try describing your design requirements again" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_cancelled_generation_returns_to_design(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a cancelled generation does not leave the step at generation."""
        await _to_design(machine, sales_file)
        client.gate = asyncio.Event()

        task = asyncio.create_task(machine.handle_user_message("Dark theme"))
        await _until_busy(machine)
        assert machine.state.step == Step.generation

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert machine.state.step == Step.design
        assert not machine.state.busy
        last = machine.timeline.messages[-1]
        assert not last.pending
        assert last.text == GENERATION_INTERRUPTED

        client.gate = None
        await machine.handle_user_message("Dark theme")

        assert machine.state.step == Step.preview

    @pytest.mark.asyncio
    async def test_fallback_document_is_announced(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a templated result says so."""
        client.fallback = True

        await _to_preview(machine, sales_file)

        assert machine.state.step == Step.preview
        assert "standard overview" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_step_is_generation_while_in_flight(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test the step reads generation until the document arrives."""
        await _to_design(machine, sales_file)
        client.gate = asyncio.Event()

        task = asyncio.create_task(machine.handle_user_message("Minimal"))
        await _until_busy(machine)

        assert machine.state.step == Step.generation
        assert machine.snapshot().messages[-1].pending

        client.gate.set()
        await task

        assert machine.state.step == Step.preview


class TestSelectionAndEdits:
    """Test element targeting, scoped edits and revisions."""

    @pytest.mark.asyncio
    async def test_selection_ignored_outside_preview(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test clicks outside preview never set a selection."""
        await _to_design(machine, sales_file)

        assert machine.receive_selection(_selection("#kpi-revenue")) is None
        assert machine.state.selected_element is None

    @pytest.mark.asyncio
    async def test_unknown_message_type_ignored(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test non-selection messages are ignored in preview."""
        await _to_preview(machine, sales_file)
        before = len(machine.timeline)

        assert machine.receive_selection({"type": "resize", "payload": {}}) is None
        assert len(machine.timeline) == before

    @pytest.mark.asyncio
    async def test_selection_acknowledged(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test a selection is stored and cited by selector."""
        await _to_preview(machine, sales_file)

        element = machine.receive_selection(_selection("#kpi-revenue", tagName="DIV"))

        assert element is not None
        assert machine.state.selected_element == element
        assert machine.timeline.messages[-1].text == (
            "You selected `#kpi-revenue`. How would you like to change it?"
        )

    @pytest.mark.asyncio
    async def test_missing_selector_is_derived(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test an empty selector is derived from tag and classes."""
        await _to_preview(machine, sales_file)

        element = machine.receive_selection(_selection(tagName="DIV", className="card hover:lift"))

        assert element is not None
        assert element.selector == "div.card"

    @pytest.mark.asyncio
    async def test_scoped_edit_success(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test an edit replaces the document and clears the selection."""
        await _to_preview(machine, sales_file)
        machine.receive_selection(_selection("#kpi-revenue"))

        await machine.handle_user_message("Make this card red")

        assert client.edit_requests == [("#kpi-revenue", "Make this card red")]
        assert machine.state.document is not None
        assert 'style="color: red"' in machine.state.document
        assert machine.state.selected_element is None
        assert machine.state.step == Step.preview
        # Edited markup without markers keeps the previous metadata
        assert machine.state.document_title == "Regional Revenue"
        assert "Updated `#kpi-revenue`" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_scoped_edit_failure_keeps_document(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a failed edit leaves the document and clears the selection."""
        await _to_preview(machine, sales_file)
        document = machine.state.document
        machine.receive_selection(_selection("#kpi-revenue"))
        client.edit_error = ElementEditError("no markup")

        await machine.handle_user_message("Make this card red")

        assert machine.state.document == document
        assert machine.state.selected_element is None
        assert machine.state.step == Step.preview
        assert "The dashboard is unchanged" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_newer_selection_survives_edit(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a click during an in-flight edit is kept after the edit lands."""
        await _to_preview(machine, sales_file)
        machine.receive_selection(_selection("#kpi-revenue"))
        client.gate = asyncio.Event()

        task = asyncio.create_task(machine.handle_user_message("Bold"))
        await _until_busy(machine)
        machine.receive_selection(_selection("#kpi-orders"))
        client.gate.set()
        await task

        assert machine.state.selected_element is not None
        assert machine.state.selected_element.selector == "#kpi-orders"

    @pytest.mark.asyncio
    async def test_message_without_selection_revises(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test free text in preview without a selection revises the whole document."""
        await _to_preview(machine, sales_file)

        await machine.handle_user_message("Use thousands separators")

        assert client.edit_requests == []
        assert client.revise_requests[0][1] == "Use thousands separators"
        assert client.revise_requests[0][0] is machine.state.analysis
        assert machine.state.document is not None
        assert "2,450" in machine.state.document
        assert "Dashboard updated!" in machine.timeline.messages[-1].text


class TestBusy:
    """Test the single in-flight call rule."""

    @pytest.mark.asyncio
    async def test_second_call_rejected_while_busy(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test user actions are refused while analysis is in flight."""
        client.gate = asyncio.Event()

        task = asyncio.create_task(machine.handle_upload([sales_file]))
        await _until_busy(machine)

        assert machine.snapshot().busy
        with pytest.raises(ConversationBusyError):
            await machine.handle_user_message("hello")
        with pytest.raises(ConversationBusyError):
            await machine.handle_upload([sales_file])

        client.gate.set()
        await task

        assert not machine.state.busy
        assert machine.state.step == Step.data_selection


class TestSelectionInvariant:
    """A selection exists only in preview, whatever the action sequence."""

    @pytest.mark.asyncio
    async def test_selection_only_in_preview(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test the invariant after every step of a long session."""

        def holds() -> bool:
            return machine.state.selected_element is None or machine.state.step == Step.preview

        actions = [
            lambda: machine.handle_upload([sales_file]),
            lambda: machine.choose_scope(DataScope.all),
            machine.settle,
            lambda: machine.handle_user_message("first design"),
            lambda: machine.handle_user_message("revise it"),
            lambda: machine.handle_upload([sales_file]),
            lambda: machine.choose_scope(DataScope.insights),
            machine.settle,
            lambda: machine.handle_user_message("second design"),
        ]

        for action in actions:
            machine.receive_selection(_selection("#kpi-revenue"))
            assert holds()
            await action()
            assert holds()

        assert machine.state.step == Step.preview


class TestExportAndPersistence:
    """Test export, save and load."""

    def test_export_without_document(self, machine: ConversationMachine) -> None:
        """Test exporting before generation raises."""
        with pytest.raises(InvalidTransitionError):
            machine.export()

    @pytest.mark.asyncio
    async def test_export_current_document(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test export returns the document, with or without the script."""
        await _to_preview(machine, sales_file)

        exported = machine.export()
        standalone = machine.export(standalone=True)

        assert exported.content == machine.state.document.encode("utf-8")  # type: ignore[union-attr]
        assert exported == machine.export()
        assert SELECTION_SCRIPT.encode("utf-8") not in standalone.content

    @pytest.mark.asyncio
    async def test_save_and_load(
        self, machine: ConversationMachine, sales_file: UploadedFile, customers_file: UploadedFile
    ) -> None:
        """Test a saved dashboard loads into preview after a new batch."""
        await _to_preview(machine, sales_file)

        dashboard_id = await machine.save()

        assert dashboard_id is not None
        assert machine.state.dashboard_id == dashboard_id
        assert machine.timeline.messages[-1].role == MessageRole.success
        assert "Regional Revenue" in machine.timeline.messages[-1].text

        await machine.handle_upload([customers_file])
        await machine.load(dashboard_id)

        assert machine.state.step == Step.preview
        assert machine.state.dashboard_id == dashboard_id
        assert machine.state.document_title == "Regional Revenue"
        assert machine.state.analysis is None
        assert machine.state.uploaded_files == []

    @pytest.mark.asyncio
    async def test_save_uses_given_title(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test an explicit title overrides the extracted one."""
        await _to_preview(machine, sales_file)

        await machine.save(title="Board deck")

        assert "Board deck" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_overwrite_policy_reuses_record(
        self, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test saving twice under overwrite keeps one record."""
        repository = InMemoryDashboardRepository()
        machine = ConversationMachine(
            client, PersistenceGateway(repository, "overwrite"), design_prompt_delay_ms=0
        )
        await _to_preview(machine, sales_file)

        first = await machine.save()
        second = await machine.save(title="Renamed")

        assert first == second
        summaries = await repository.list_recent()
        assert [s.title for s in summaries] == ["Renamed"]

    @pytest.mark.asyncio
    async def test_save_without_document(self, machine: ConversationMachine) -> None:
        """Test saving before generation raises."""
        with pytest.raises(InvalidTransitionError):
            await machine.save()

    @pytest.mark.asyncio
    async def test_save_without_gateway(self, client: FakeClient, sales_file: UploadedFile) -> None:
        """Test saving with no store configured reports it."""
        machine = ConversationMachine(client, None, design_prompt_delay_ms=0)
        await _to_preview(machine, sales_file)

        assert await machine.save() is None
        assert "not available" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_save_failure_is_reported(self, client: FakeClient, sales_file: UploadedFile) -> None:
        """Test a store failure becomes a message and leaves the session unsaved."""
        machine = ConversationMachine(
            client, PersistenceGateway(FailingRepository()), design_prompt_delay_ms=0
        )
        await _to_preview(machine, sales_file)

        assert await machine.save() is None
        assert machine.state.dashboard_id is None
        assert not machine.state.busy
        assert "database is unavailable" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_load_unknown_dashboard(self, machine: ConversationMachine) -> None:
        """Test loading a missing dashboard reports and raises."""
        with pytest.raises(DashboardNotFoundError):
            await machine.load(uuid.uuid4())

        assert machine.state.step == Step.upload
        assert "couldn't find that dashboard" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_load_failure_is_reported(self, client: FakeClient) -> None:
        """Test a store failure while loading reports and raises."""
        machine = ConversationMachine(client, PersistenceGateway(FailingRepository()))

        with pytest.raises(PersistenceError):
            await machine.load(uuid.uuid4())

        assert not machine.state.busy
        assert "couldn't load that dashboard" in machine.timeline.messages[-1].text

    @pytest.mark.asyncio
    async def test_loaded_dashboard_can_be_revised(
        self, machine: ConversationMachine, client: FakeClient, sales_file: UploadedFile
    ) -> None:
        """Test a loaded dashboard is revised with no analysis context."""
        await _to_preview(machine, sales_file)
        dashboard_id = await machine.save()
        assert dashboard_id is not None
        await machine.load(dashboard_id)

        await machine.handle_user_message("Add a footer")

        assert client.revise_requests[-1] == (None, "Add a footer")


class TestSnapshot:
    """Test the host-facing snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_fields(
        self, machine: ConversationMachine, sales_file: UploadedFile
    ) -> None:
        """Test the snapshot summarizes files and reports the step number."""
        await machine.handle_upload([sales_file])

        snapshot = machine.snapshot()

        assert snapshot.id == machine.id
        assert snapshot.step == Step.data_selection
        assert snapshot.step_number == 2
        assert snapshot.files[0].name == "sales.csv"
        assert snapshot.files[0].kind == "csv"
        assert snapshot.files[0].record_count == 3
        assert snapshot.document is None

    @pytest.mark.asyncio
    async def test_preview_without_document_gets_help(self, machine: ConversationMachine) -> None:
        """Test the preview help text when there is nothing to edit."""
        machine.state.step = Step.preview

        await machine.handle_user_message("change colors")

        assert machine.timeline.messages[-1].text == PREVIEW_HELP
