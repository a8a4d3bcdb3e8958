"""Deterministic, backend-independent fallbacks.

Used when the generation backend's output cannot be used as-is. Both
builders are pure functions of their inputs.
"""

import csv
import html
from collections.abc import Sequence

from backend.app.documents.markup import metadata_markers
from backend.app.models.analysis import DataAnalysis
from backend.app.models.common import DataScope
from backend.app.models.document import DocumentMetadata, FallbackDocument
from backend.app.models.uploads import JsonRecords, UploadedFile
from backend.app.targeting.protocol import ensure_selection_script

CANDIDATE_DELIMITERS = (",", "\t", ";", "|")
BYTES_PER_ROW_ESTIMATE = 50
LARGE_DATASET_ROWS = 1000

GENERIC_COLUMNS = ["ID", "Name", "Category", "Value", "Date", "Status"]
CUSTOMER_COLUMNS = [
    "Customer ID",
    "First Name",
    "Last Name",
    "Email",
    "Company",
    "Country",
    "Subscription Date",
]

FALLBACK_TITLE = "Data Overview Dashboard"


def sniff_delimiter(line: str) -> str | None:
    """Pick the most frequent candidate delimiter in a header line."""
    counts = {delimiter: line.count(delimiter) for delimiter in CANDIDATE_DELIMITERS}
    delimiter, count = max(counts.items(), key=lambda item: item[1])
    return delimiter if count > 0 else None


def _unquote(cell: str) -> str:
    cell = cell.strip()
    if len(cell) >= 2 and cell[0] == cell[-1] and cell[0] in "\"'":
        return cell[1:-1].strip()
    return cell


def split_header(line: str, delimiter: str) -> list[str]:
    """Split a header line, trimming whitespace and surrounding quotes.

    Quoted cells may contain the delimiter.
    """
    cells = next(csv.reader([line.strip()], delimiter=delimiter, skipinitialspace=True), [])
    return [_unquote(cell) for cell in cells]


def _file_columns_and_rows(file: UploadedFile) -> tuple[list[str], int]:
    if isinstance(file.parsed, JsonRecords) and file.parsed.records:
        return list(file.parsed.records[0]), len(file.parsed.records)

    lines = [line for line in file.raw_content.splitlines() if line.strip()]
    if lines:
        delimiter = sniff_delimiter(lines[0])
        if delimiter is not None:
            return split_header(lines[0], delimiter), len(lines) - 1

    return [], file.size_bytes // BYTES_PER_ROW_ESTIMATE


def build_fallback_analysis(files: Sequence[UploadedFile]) -> DataAnalysis:
    """Synthesize an analysis from the raw files alone.

    Header columns from every file are concatenated in upload order (duplicates
    are kept). JSON record files contribute the first record's keys. Row counts
    come from the record count, data lines under a sniffed header, or byte size
    when no header was found.
    """
    columns: list[str] = []
    total_rows = 0
    for file in files:
        file_columns, rows = _file_columns_and_rows(file)
        columns.extend(file_columns)
        total_rows += rows

    if not columns:
        first_name = files[0].name.lower() if files else ""
        columns = list(CUSTOMER_COLUMNS if "customer" in first_name else GENERIC_COLUMNS)

    domain = "customer and business" if "customer" in columns[0].lower() else "business"
    has_dates = any("date" in column.lower() for column in columns)
    scale = "large-scale" if total_rows > LARGE_DATASET_ROWS else "medium-scale"

    return DataAnalysis(
        summary=(
            f"Analyzed {len(files)} file(s) containing {domain} data with approximately "
            f"{total_rows} records across {len(columns)} columns."
        ),
        columns=columns,
        row_count_estimate=total_rows,
        suggestions=[
            f"Create visualizations for {', '.join(columns[:3])} analysis",
            "Build distribution charts for categorical data",
            "Add trend analysis for time-based columns",
            "Include filtering and search capabilities",
        ],
        key_insights=[
            f"Dataset contains {total_rows} records with {len(columns)} data points each",
            f"Primary data categories include: {', '.join(columns[:4])}",
            f"Data structure suggests {'time-series' if has_dates else 'categorical'} "
            "analysis opportunities",
            f"File size indicates {scale} dataset suitable for comprehensive analysis",
        ],
        source="fallback",
    )


def _list_items(values: Sequence[str]) -> str:
    return "\n".join(f"          <li>{html.escape(value)}</li>" for value in values)


def build_fallback_document(
    analysis: DataAnalysis, scope: DataScope = DataScope.all, reason: str = ""
) -> FallbackDocument:
    """Build a templated dashboard from analysis fields only."""
    metadata = DocumentMetadata(title=FALLBACK_TITLE, description=analysis.summary)

    table_columns = analysis.columns if scope == DataScope.all else analysis.columns[:5]
    header_cells = "".join(f"<th>{html.escape(column)}</th>" for column in table_columns)

    body = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    {metadata_markers(metadata.title, metadata.description)}
    <title>{html.escape(metadata.title)}</title>
    <style>
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{ font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif; background: #f8fafc; color: #1f2937; }}
        .container {{ max-width: 1200px; margin: 0 auto; padding: 20px; }}
        .header, .panel, .kpi-card {{ background: white; padding: 20px; border-radius: 8px; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }}
        .header {{ margin-bottom: 20px; }}
        .kpi-grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 20px; margin-bottom: 20px; }}
        .kpi-value {{ font-size: 2rem; font-weight: bold; }}
        .kpi-label {{ color: #6b7280; font-size: 0.875rem; margin-top: 4px; }}
        .panel {{ margin-bottom: 20px; }}
        .panel h2 {{ font-size: 1.125rem; margin-bottom: 12px; }}
        .panel li {{ margin-left: 20px; line-height: 1.6; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th {{ background: #f9fafb; padding: 12px; text-align: left; border-bottom: 1px solid #e5e7eb; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header" id="dashboard-header">
            <h1>{html.escape(metadata.title)}</h1>
            <p class="kpi-label">{html.escape(analysis.summary)}</p>
        </div>
        <div class="kpi-grid">
            <div class="kpi-card" id="kpi-records">
                <div class="kpi-value">{analysis.row_count_estimate:,}</div>
                <div class="kpi-label">Total Records</div>
            </div>
            <div class="kpi-card" id="kpi-columns">
                <div class="kpi-value">{len(analysis.columns)}</div>
                <div class="kpi-label">Data Columns</div>
            </div>
            <div class="kpi-card" id="kpi-insights">
                <div class="kpi-value">{len(analysis.key_insights)}</div>
                <div class="kpi-label">Key Insights</div>
            </div>
        </div>
        <div class="panel" id="insights-panel">
            <h2>Key Insights</h2>
            <ul>
{_list_items(analysis.key_insights)}
            </ul>
        </div>
        <div class="panel" id="suggestions-panel">
            <h2>Suggested Views</h2>
            <ul>
{_list_items(analysis.suggestions)}
            </ul>
        </div>
        <div class="panel" id="columns-panel">
            <h2>Columns</h2>
            <table>
                <thead><tr>{header_cells}</tr></thead>
            </table>
        </div>
    </div>
</body>
</html>
"""
    return FallbackDocument(body=ensure_selection_script(body), metadata=metadata, reason=reason)
