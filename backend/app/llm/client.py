"""Generation client backed by OpenAI-compatible chat completions.

Two logical endpoints are used: a fast reasoning model for data analysis and a
higher-quality coding model for document synthesis and edits. Security: the
API key is read from settings (environment) only, never hardcoded.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from openai import APIError, AsyncOpenAI, AuthenticationError, PermissionDeniedError
from pydantic import ValidationError

from backend.app.config import Settings
from backend.app.documents.markup import extract_markup, extract_metadata
from backend.app.llm.errors import (
    BackendConfigurationError,
    ElementEditError,
    GenerationError,
    MalformedDocumentError,
)
from backend.app.llm.fallback import build_fallback_analysis, build_fallback_document
from backend.app.llm.parsing import parse_structured_payload
from backend.app.llm.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    CODING_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_edit_prompt,
    build_revision_prompt,
    build_synthesis_prompt,
)
from backend.app.llm.retry import RetryPolicy, call_with_retry
from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope
from backend.app.models.document import ElementRef, GeneratedDocument, ValidDocument
from backend.app.models.uploads import UploadedFile
from backend.app.targeting.protocol import ensure_selection_script
from backend.app.utils.logging import StructuredGenerationLogger
from backend.app.utils.metrics import GenerationMetrics

logger = logging.getLogger(__name__)

MISSING_KEY_REMEDIATION = (
    "The dashboard generator is not configured: no OpenAI API key was found. "
    "Set OPENAI_API_KEY in the environment (or the .env file) and restart the service."
)

REJECTED_KEY_REMEDIATION = (
    "The generation backend rejected the configured credentials. "
    "Check that OPENAI_API_KEY is valid and has access to the configured models, "
    "then restart the service."
)

OFFLINE_EDIT_MESSAGE = "Editing needs the generation backend, which is not configured."


class GenerationClient(Protocol):
    """Protocol for generation client implementations."""

    async def analyze(self, files: Sequence[UploadedFile]) -> DataAnalysis:
        """Analyse uploaded files.

        Never fails for a non-empty file list: unusable backend output yields
        a deterministic fallback analysis.
        """
        ...

    async def synthesize(
        self,
        *,
        analysis: DataAnalysis,
        scope: DataScope,
        brief: str,
        records: Sequence[dict[str, Any]],
    ) -> GeneratedDocument:
        """Generate a dashboard document, falling back to a template when needed."""
        ...

    async def edit_element(self, *, document: str, element: ElementRef, request: str) -> str:
        """Return a full replacement document with only the target element changed.

        Raises:
            ElementEditError: No fallback exists for edits
        """
        ...

    async def revise(
        self,
        *,
        document: str,
        analysis: DataAnalysis | None,
        scope: DataScope | None,
        request: str,
    ) -> str:
        """Return a full replacement document revised per the request.

        Raises:
            ElementEditError: No fallback exists for revisions
        """
        ...


class DeterministicGenerationClient:
    """Deterministic offline client (no API key required)."""

    def __init__(self, metrics: GenerationMetrics | None = None) -> None:
        self._metrics = metrics or GenerationMetrics()

    async def analyze(self, files: Sequence[UploadedFile]) -> DataAnalysis:
        """Build the fallback analysis from the raw files."""
        if not files:
            raise ValueError("analysis requires at least one file")
        self._metrics.inc_fallback("analyze")
        return build_fallback_analysis(files)

    async def synthesize(
        self,
        *,
        analysis: DataAnalysis,
        scope: DataScope,
        brief: str,
        records: Sequence[dict[str, Any]],
    ) -> GeneratedDocument:
        """Build the templated document from the analysis."""
        self._metrics.inc_fallback("synthesize")
        return build_fallback_document(analysis, scope, reason="offline generation")

    async def edit_element(self, *, document: str, element: ElementRef, request: str) -> str:
        """Edits are unavailable offline."""
        raise ElementEditError(OFFLINE_EDIT_MESSAGE)

    async def revise(
        self,
        *,
        document: str,
        analysis: DataAnalysis | None,
        scope: DataScope | None,
        request: str,
    ) -> str:
        """Revisions are unavailable offline."""
        raise ElementEditError(OFFLINE_EDIT_MESSAGE)


class OpenAIGenerationClient:
    """OpenAI-backed generation client."""

    def __init__(
        self,
        api_key: str,
        *,
        reasoning_model: str = "gpt-4o-mini",
        coding_model: str = "gpt-4o",
        base_url: str | None = None,
        retry_policy: RetryPolicy | None = None,
        preview_lines: int = 10,
        preview_chars: int = 8000,
        metrics: GenerationMetrics | None = None,
        call_logger: StructuredGenerationLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            reasoning_model: Fast model used for data analysis
            coding_model: Higher-quality model used for documents and edits
            base_url: Optional OpenAI-compatible endpoint
            retry_policy: Overload retry policy (default: 3 retries from 1000ms)
            preview_lines: Lines of each file shown to the analysis model
            preview_chars: Characters of each file considered for the preview
            metrics: Metrics recorder (optional, defaults to no-op)
            call_logger: Structured call logger
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        # SDK retries are disabled; overload retries are owned by call_with_retry
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self.reasoning_model = reasoning_model
        self.coding_model = coding_model
        self._retry_policy = retry_policy or RetryPolicy()
        self._preview_lines = preview_lines
        self._preview_chars = preview_chars
        self._metrics = metrics or GenerationMetrics()
        self._call_logger = call_logger or StructuredGenerationLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def _complete(
        self,
        operation: str,
        model: str,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
    ) -> str:
        """Run one logical completion under the retry policy and return its text."""
        attempts = 0
        started = time.perf_counter()

        async def attempt_once() -> str:
            nonlocal attempts
            attempts += 1
            attempt_started = time.perf_counter()
            try:
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                )
            except Exception as e:
                self._call_logger.log_call(
                    operation,
                    model,
                    attempts,
                    "error",
                    (time.perf_counter() - attempt_started) * 1000,
                    error_reason=type(e).__name__,
                )
                raise

            self._call_logger.log_call(
                operation, model, attempts, "success", (time.perf_counter() - attempt_started) * 1000
            )
            return response.choices[0].message.content or ""

        def on_retry(attempt: int, delay_ms: int, error: BaseException) -> None:
            self._metrics.inc_retry(operation)

        try:
            text = await call_with_retry(
                attempt_once, self._retry_policy, sleep=self._sleep, on_retry=on_retry
            )
        except Exception:
            self._metrics.record_latency(operation, "error", (time.perf_counter() - started) * 1000)
            raise

        self._metrics.record_latency(operation, "success", (time.perf_counter() - started) * 1000)
        return text

    async def analyze(self, files: Sequence[UploadedFile]) -> DataAnalysis:
        """Analyse files with the reasoning model."""
        if not files:
            raise ValueError("analysis requires at least one file")

        prompt = build_analysis_prompt(
            files, max_lines=self._preview_lines, max_chars=self._preview_chars
        )

        try:
            text = await self._complete(
                "analyze", self.reasoning_model, ANALYSIS_SYSTEM_PROMPT, prompt, temperature=0.2
            )
            payload = parse_structured_payload(text)
            return DataAnalysis.model_validate({**payload, "source": "model"})
        except (AuthenticationError, PermissionDeniedError) as e:
            raise BackendConfigurationError(REJECTED_KEY_REMEDIATION) from e
        except (APIError, GenerationError, ValidationError) as e:
            logger.warning(f"Analysis response unusable ({type(e).__name__}: {e}), using fallback analysis")
            self._metrics.inc_fallback("analyze")
            return build_fallback_analysis(files)

    async def synthesize(
        self,
        *,
        analysis: DataAnalysis,
        scope: DataScope,
        brief: str,
        records: Sequence[dict[str, Any]],
    ) -> GeneratedDocument:
        """Generate a dashboard with the coding model."""
        prompt = build_synthesis_prompt(analysis, scope, brief, records)

        try:
            text = await self._complete(
                "synthesize", self.coding_model, CODING_SYSTEM_PROMPT, prompt, temperature=0.7
            )
            markup = extract_markup(text)
        except (AuthenticationError, PermissionDeniedError) as e:
            raise BackendConfigurationError(REJECTED_KEY_REMEDIATION) from e
        except (APIError, MalformedDocumentError) as e:
            logger.warning(f"Synthesis unusable ({type(e).__name__}: {e}), using templated dashboard")
            self._metrics.inc_fallback("synthesize")
            return build_fallback_document(analysis, scope, reason=str(e))

        body = ensure_selection_script(markup)
        metadata = extract_metadata(body)

        logger.info(f"Synthesized dashboard {metadata.title!r} ({len(body)} chars)")
        return ValidDocument(body=body, metadata=metadata)

    async def _replace_document(self, operation: str, prompt: str) -> str:
        try:
            text = await self._complete(
                operation, self.coding_model, CODING_SYSTEM_PROMPT, prompt, temperature=0.2
            )
            markup = extract_markup(text)
        except (AuthenticationError, PermissionDeniedError) as e:
            raise BackendConfigurationError(REJECTED_KEY_REMEDIATION) from e
        except (APIError, MalformedDocumentError) as e:
            logger.warning(f"{operation} failed: {type(e).__name__}: {e}")
            raise ElementEditError(str(e)) from e

        return ensure_selection_script(markup)

    async def edit_element(self, *, document: str, element: ElementRef, request: str) -> str:
        """Scoped edit of one element."""
        return await self._replace_document(
            "edit_element", build_edit_prompt(document, element, request)
        )

    async def revise(
        self,
        *,
        document: str,
        analysis: DataAnalysis | None,
        scope: DataScope | None,
        request: str,
    ) -> str:
        """Whole-document revision."""
        return await self._replace_document(
            "revise", build_revision_prompt(document, analysis, scope, request)
        )


def build_generation_client(
    settings: Settings, metrics: GenerationMetrics | None = None
) -> GenerationClient:
    """Factory function to get appropriate generation client based on config.

    Returns:
        OpenAIGenerationClient if an API key is configured,
        DeterministicGenerationClient if offline generation is allowed

    Raises:
        BackendConfigurationError: No key and offline generation not allowed
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for generation")
        return OpenAIGenerationClient(
            api_key=api_key.get_secret_value(),
            reasoning_model=settings.reasoning_model,
            coding_model=settings.coding_model,
            base_url=settings.openai_base_url,
            retry_policy=RetryPolicy(
                max_retries=settings.generation_max_retries,
                initial_delay_ms=settings.generation_initial_delay_ms,
            ),
            preview_lines=settings.analysis_preview_lines,
            preview_chars=settings.analysis_preview_chars,
            metrics=metrics,
        )

    if settings.allow_offline_generation:
        logger.warning("No OpenAI API key configured, using deterministic offline client")
        return DeterministicGenerationClient(metrics=metrics)

    logger.error("No OpenAI API key configured and offline generation is disabled")
    raise BackendConfigurationError(MISSING_KEY_REMEDIATION)
