"""Helper functions for the UI - API client calls and step presentation."""

from typing import Any

import httpx

STEP_NUMBERS = {
    "upload": 1,
    "data-selection": 2,
    "design": 3,
    "generation": 4,
    "preview": 4,
}

INPUT_PLACEHOLDERS = {
    "upload": "Upload your files first...",
    "data-selection": "Please select your data approach above...",
    "design": "Describe your dashboard design...",
}
DEFAULT_PLACEHOLDER = "Ask me anything about your dashboard..."

# components.html previews are one-way: clicks in them never reach the page
TARGETING_HINT = (
    "Clicking in the preview highlights an element, but this page cannot receive the "
    "click. Type the element's selector here (it starts with # for an id, otherwise "
    "the tag name and classes, e.g. div.card) to edit just that part."
)

# Generation can take several backed-off retries
GENERATION_TIMEOUT = 180.0


def step_number(step: str) -> str:
    """Header label for a step, e.g. "Step 2 of 4"."""
    return f"Step {STEP_NUMBERS.get(step, 1)} of 4"


def input_placeholder(step: str) -> str:
    """Chat input placeholder for a step."""
    return INPUT_PLACEHOLDERS.get(step, DEFAULT_PLACEHOLDER)


def input_disabled(step: str, busy: bool) -> bool:
    """Free text is accepted only from the design step onwards, and never while busy."""
    return busy or step in ("upload", "data-selection")


def read_upload(name: str, mime_type: str | None, data: bytes) -> dict[str, Any]:
    """Turn an uploaded file into the API's upload entry (text content)."""
    return {
        "name": name,
        "mime_type": mime_type or "",
        "content": data.decode("utf-8", errors="replace"),
    }


def build_selection_message(selector: str, inner_text: str = "") -> dict[str, Any]:
    """Build the element-selected message for a selector typed by the user.

    ``#id`` selectors fill ``id``; ``tag.class1.class2`` selectors fill
    ``tagName`` and ``className``.
    """
    selector = selector.strip()
    element_id, tag_name, class_name = "", "", ""
    if selector.startswith("#"):
        element_id = selector[1:]
    elif selector:
        tag_name, *classes = selector.split(".")
        class_name = " ".join(classes)

    return {
        "type": "element-selected",
        "payload": {
            "selector": selector,
            "tagName": tag_name.upper(),
            "id": element_id,
            "className": class_name,
            "innerText": inner_text,
        },
    }


def _json(response: httpx.Response) -> dict[str, Any]:
    response.raise_for_status()
    result: dict[str, Any] = response.json()
    return result


def create_conversation(backend_url: str) -> dict[str, Any]:
    """Start a conversation and return its snapshot.

    Raises:
        httpx.HTTPStatusError: If request fails
    """
    return _json(httpx.post(f"{backend_url}/conversations", timeout=10.0))


def get_conversation(backend_url: str, conversation_id: str) -> dict[str, Any]:
    """Fetch the current snapshot."""
    return _json(httpx.get(f"{backend_url}/conversations/{conversation_id}", timeout=10.0))


def upload_files(
    backend_url: str, conversation_id: str, files: list[dict[str, Any]]
) -> dict[str, Any]:
    """Upload a batch (entries from read_upload) and wait for analysis."""
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/uploads",
            json={"files": files},
            timeout=GENERATION_TIMEOUT,
        )
    )


def choose_scope(backend_url: str, conversation_id: str, scope: str) -> dict[str, Any]:
    """Choose "all" or "insights"."""
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/scope",
            json={"scope": scope},
            timeout=10.0,
        )
    )


def send_message(backend_url: str, conversation_id: str, text: str) -> dict[str, Any]:
    """Send a free-text message (brief, edit or revision request)."""
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/messages",
            json={"text": text},
            timeout=GENERATION_TIMEOUT,
        )
    )


def send_selection(
    backend_url: str, conversation_id: str, message: dict[str, Any]
) -> dict[str, Any]:
    """Forward a cross-document selection message."""
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/selection",
            json=message,
            timeout=10.0,
        )
    )


def export_dashboard(backend_url: str, conversation_id: str, standalone: bool = False) -> bytes:
    """Download the current document."""
    path = "export/standalone" if standalone else "export"
    response = httpx.get(f"{backend_url}/conversations/{conversation_id}/{path}", timeout=10.0)
    response.raise_for_status()
    return response.content


def save_dashboard(
    backend_url: str,
    conversation_id: str,
    title: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Save the current document."""
    body = {"title": title or None, "description": description or None}
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/save", json=body, timeout=30.0
        )
    )


def load_dashboard(backend_url: str, conversation_id: str, dashboard_id: str) -> dict[str, Any]:
    """Open a saved dashboard in the conversation."""
    return _json(
        httpx.post(
            f"{backend_url}/conversations/{conversation_id}/load/{dashboard_id}", timeout=30.0
        )
    )


def list_dashboards(backend_url: str) -> list[dict[str, Any]]:
    """List saved dashboards, newest first."""
    response = httpx.get(f"{backend_url}/dashboards", timeout=10.0)
    response.raise_for_status()
    result: list[dict[str, Any]] = response.json()
    return result


def delete_dashboard(backend_url: str, dashboard_id: str) -> None:
    """Delete a saved dashboard."""
    httpx.delete(f"{backend_url}/dashboards/{dashboard_id}", timeout=10.0).raise_for_status()


def delete_conversation(backend_url: str, conversation_id: str) -> None:
    """End a conversation so the backend frees its files and document."""
    httpx.delete(f"{backend_url}/conversations/{conversation_id}", timeout=10.0).raise_for_status()


def describe_error(error: httpx.HTTPError) -> str:
    """User-facing text for a failed backend call (the API's detail when present)."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else None
        return str(detail or error)
    return f"Backend unreachable: {error}"


def is_missing_conversation(error: httpx.HTTPError) -> bool:
    """Whether the backend no longer knows the conversation (ended or evicted)."""
    return (
        isinstance(error, httpx.HTTPStatusError)
        and error.response.status_code == 404
        and describe_error(error).startswith("Conversation ")
    )
