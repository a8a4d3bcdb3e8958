"""Cross-document message contract between the host and the embedded document."""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from backend.app.models.document import ElementRef

logger = logging.getLogger(__name__)

ELEMENT_SELECTED = "element-selected"


class ElementSelectedMessage(BaseModel):
    """The only message type the embedded document sends."""

    type: Literal["element-selected"]
    payload: ElementRef


def parse_host_message(raw: Any) -> ElementRef | None:
    """Decode a posted message into a selection.

    Unrecognized message types and malformed payloads are ignored (None),
    never raised.
    """
    if not isinstance(raw, dict) or raw.get("type") != ELEMENT_SELECTED:
        return None

    try:
        message = ElementSelectedMessage.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed selection message: {e.error_count()} error(s)")
        return None

    return message.payload
