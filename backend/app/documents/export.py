"""Standalone export of the current document."""

from dataclasses import dataclass

from backend.app.targeting.protocol import strip_selection_script

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
DEFAULT_EXPORT_FILENAME = "dashboard.html"


@dataclass(frozen=True)
class ExportedFile:
    """Downloadable file built from a document."""

    filename: str
    content_type: str
    content: bytes


def export_document(
    document: str, *, filename: str = DEFAULT_EXPORT_FILENAME, standalone: bool = False
) -> ExportedFile:
    """Export a document as an HTML file.

    The export is a pure function of its inputs, so exporting the same
    document twice yields identical bytes. ``standalone`` drops the selection
    script for a read-only view.
    """
    body = strip_selection_script(document) if standalone else document
    return ExportedFile(
        filename=filename,
        content_type=HTML_CONTENT_TYPE,
        content=body.encode("utf-8"),
    )
