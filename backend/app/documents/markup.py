"""Markup extraction and metadata markers for generated documents."""

import html
import re

from backend.app.llm.errors import MalformedDocumentError
from backend.app.models.document import (
    UNDESCRIBED_DOCUMENT,
    UNTITLED_DOCUMENT,
    DocumentMetadata,
)

TITLE_MARKER = "dashboard-title"
DESCRIPTION_MARKER = "dashboard-description"

_DOCUMENT_START = re.compile(r"<!doctype\s+html|<html[\s>]", re.IGNORECASE)
_DOCUMENT_END = re.compile(r"</html\s*>", re.IGNORECASE)


def _marker_patterns(name: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    quoted_name = r"""["']""" + re.escape(name) + r"""["']"""
    content = r"""content\s*=\s*(?P<q>["'])(?P<value>.*?)(?P=q)"""
    return (
        re.compile(r"<meta\s+[^>]*?name\s*=\s*" + quoted_name + r"[^>]*?" + content, re.I | re.S),
        re.compile(r"<meta\s+[^>]*?" + content + r"[^>]*?name\s*=\s*" + quoted_name, re.I | re.S),
    )


_TITLE_PATTERNS = _marker_patterns(TITLE_MARKER)
_DESCRIPTION_PATTERNS = _marker_patterns(DESCRIPTION_MARKER)


def extract_markup(text: str) -> str:
    """Cut the markup document out of a free-form response.

    Code fences and prose around the document are dropped: the span runs from
    the doctype (or opening html tag) to the last closing html tag.

    Raises:
        MalformedDocumentError: If no complete document is present
    """
    start = _DOCUMENT_START.search(text)
    if start is None:
        raise MalformedDocumentError("response contains no markup document")

    ends = list(_DOCUMENT_END.finditer(text, start.start()))
    if not ends:
        raise MalformedDocumentError("markup document is truncated (no closing html tag)")

    return text[start.start() : ends[-1].end()].strip()


def _find_marker(document: str, patterns: tuple[re.Pattern[str], re.Pattern[str]]) -> str | None:
    for pattern in patterns:
        match = pattern.search(document)
        if match:
            value = html.unescape(match.group("value")).strip()
            if value:
                return value
    return None


def extract_metadata(
    document: str,
    *,
    default_title: str = UNTITLED_DOCUMENT,
    default_description: str = UNDESCRIBED_DOCUMENT,
) -> DocumentMetadata:
    """Read the title/description markers, substituting defaults when absent."""
    return DocumentMetadata(
        title=_find_marker(document, _TITLE_PATTERNS) or default_title,
        description=_find_marker(document, _DESCRIPTION_PATTERNS) or default_description,
    )


def metadata_markers(title: str, description: str) -> str:
    """Render the two head markers for a title/description pair."""
    return (
        f'<meta name="{TITLE_MARKER}" content="{html.escape(title, quote=True)}">\n'
        f'    <meta name="{DESCRIPTION_MARKER}" content="{html.escape(description, quote=True)}">'
    )
