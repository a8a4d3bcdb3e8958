"""Prompt builders for analysis, synthesis and edits."""

import json
from collections.abc import Sequence
from typing import Any

from backend.app.documents.markup import DESCRIPTION_MARKER, TITLE_MARKER
from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope
from backend.app.models.document import ElementRef
from backend.app.models.uploads import UnsupportedContent, UploadedFile
from backend.app.targeting.protocol import SELECTION_SCRIPT

ANALYSIS_SYSTEM_PROMPT = (
    "You are a data analyst expert. You answer with a single JSON object and nothing else."
)

CODING_SYSTEM_PROMPT = (
    "You are an expert web developer who writes complete, self-contained HTML dashboards. "
    "You answer with the complete HTML document only, without markdown formatting or explanations."
)


def file_preview(file: UploadedFile, *, max_lines: int, max_chars: int) -> str:
    """Bounded textual preview: first ``max_lines`` lines of the first ``max_chars`` chars."""
    head = file.raw_content[:max_chars]
    return "\n".join(head.splitlines()[:max_lines])


def build_analysis_prompt(
    files: Sequence[UploadedFile], *, max_lines: int = 10, max_chars: int = 8000
) -> str:
    """Ask the reasoning model for a DataAnalysis-shaped JSON object."""
    sections = []
    for index, file in enumerate(files, start=1):
        kind = "unparsed" if isinstance(file.parsed, UnsupportedContent) else file.parsed.kind
        sections.append(
            f"FILE {index}: {file.name} ({file.mime_type or 'unknown type'}, "
            f"{file.size_bytes} bytes, {kind})\n"
            f"Content Preview:\n{file_preview(file, max_lines=max_lines, max_chars=max_chars)}"
        )

    return f"""Analyze the following {len(files)} data file(s) in detail:

{chr(10).join(sections)}

Based on the actual file content above, provide a detailed analysis in this exact JSON format:
{{
  "summary": "Detailed summary describing what this specific data contains",
  "columns": ["actual", "column", "names", "from", "the", "data"],
  "rowCount": 123,
  "suggestions": ["specific visualization suggestions based on this data"],
  "keyInsights": ["specific insights from this actual data", "patterns found", "trends identified"]
}}

IMPORTANT:
- Extract actual column names from the data preview
- Provide insights specific to this data, not generic ones
- Estimate row count (an integer) based on file size and content
- Suggest visualizations that make sense for this specific dataset

Return only valid JSON without any markdown formatting."""


def _scope_instructions(scope: DataScope, analysis: DataAnalysis) -> str:
    if scope == DataScope.all:
        return (
            "DATA SCOPE: Use ALL available data columns and create comprehensive visualizations: "
            "4-6 KPI cards based on all columns, 3-4 different chart types, and a data table with "
            f"the exact columns [{', '.join(analysis.columns)}]."
        )
    return (
        "DATA SCOPE: Focus ONLY on the key insights and create streamlined visualizations: "
        "3-4 KPI cards based on the key insights, 2-3 focused charts, and a data table limited "
        f"to the columns [{', '.join(analysis.columns[:8])}]."
    )


def _structural_contract() -> str:
    return f"""STRUCTURAL CONTRACT (mandatory):
1. Inside <head>, include exactly these two tags with a short title and a one-sentence description:
   <meta name="{TITLE_MARKER}" content="...">
   <meta name="{DESCRIPTION_MARKER}" content="...">
2. Copy the following script block verbatim as the last element inside <body>. Do not modify it:
{SELECTION_SCRIPT}"""


def build_synthesis_prompt(
    analysis: DataAnalysis,
    scope: DataScope,
    brief: str,
    records: Sequence[dict[str, Any]],
) -> str:
    """Ask the coding model for a complete dashboard reading from the embedded records."""
    data_json = json.dumps(list(records), ensure_ascii=False, default=str)

    return f"""Create a complete, functional HTML dashboard.

DATA ANALYSIS:
- Summary: {analysis.summary}
- Columns: {', '.join(analysis.columns)}
- Row Count: {analysis.row_count_estimate}
- Key Insights: {' | '.join(analysis.key_insights)}

{_scope_instructions(scope, analysis)}

USER DESIGN REQUIREMENTS (verbatim):
{brief}

DATA:
The dashboard must read its data from this embedded record set. Put it in a
<script> block as `const DASHBOARD_DATA = ...;` and compute every KPI, chart and
table row from it. Do not invent sample data.
{data_json}

REQUIREMENTS:
- Use ApexCharts for all visualizations
- Fully responsive and interactive, with search and filter controls
- Give every KPI card, chart container and table a stable id attribute

{_structural_contract()}

Return only the complete HTML document."""


def build_edit_prompt(document: str, element: ElementRef, request: str) -> str:
    """Ask the coding model to change only the targeted element."""
    return f"""Modify ONE element of the existing HTML dashboard below.

TARGET ELEMENT:
- Selector: {element.selector}
- Tag: {element.tag_name.lower()}
- Text preview: {element.inner_text_preview!r}

REQUESTED CHANGE (verbatim):
{request}

CONSTRAINTS:
- Change only the target element's subtree, plus styling or script that directly
  relates to it.
- Everything else must stay exactly as it is, character for character.
- Keep the <meta name="{TITLE_MARKER}"> and <meta name="{DESCRIPTION_MARKER}"> tags.
- Keep the script with id="agent-dash-selection-script" verbatim at the end of <body>.

CURRENT DOCUMENT:
{document}

Return the complete modified HTML document."""


def build_revision_prompt(
    document: str, analysis: DataAnalysis | None, scope: DataScope | None, request: str
) -> str:
    """Ask the coding model to revise the whole document per a request.

    A dashboard loaded from storage has no analysis; the document itself is
    then the only context.
    """
    context = ""
    if analysis is not None:
        context = (
            "DATA ANALYSIS:\n"
            f"{analysis.model_dump_json(by_alias=True, exclude={'source'}, indent=2)}\n\n"
            f"{_scope_instructions(scope or DataScope.all, analysis)}\n\n"
        )

    return f"""The user wants to modify their existing dashboard.

REQUESTED CHANGE (verbatim):
{request}

{context}Maintain all existing functionality and data bindings while applying the requested change.

{_structural_contract()}

CURRENT DOCUMENT:
{document}

Return the complete modified HTML document."""
