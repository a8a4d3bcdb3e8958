"""Generated document and element-targeting models."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

INNER_TEXT_PREVIEW_LIMIT = 200

UNTITLED_DOCUMENT = "Untitled Dashboard"
UNDESCRIBED_DOCUMENT = "No description provided."


class ElementRef(BaseModel):
    """Addressable selection reported by a rendered document.

    Aliases follow the payload posted by the embedded selection script.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    selector: str = ""
    tag_name: str = Field("", alias="tagName")
    id: str = ""
    class_names: str = Field("", alias="className")
    inner_text_preview: str = Field("", alias="innerText")

    @field_validator("inner_text_preview")
    @classmethod
    def truncate_preview(cls, value: str) -> str:
        """Clamp the preview to the protocol limit."""
        return value[:INNER_TEXT_PREVIEW_LIMIT]


class DocumentMetadata(BaseModel):
    """Title and description extracted from a document's head markers."""

    title: str = UNTITLED_DOCUMENT
    description: str = UNDESCRIBED_DOCUMENT


class ValidDocument(BaseModel):
    """Document produced by the coding model that met the structural contract."""

    kind: Literal["valid"] = "valid"
    body: str
    metadata: DocumentMetadata


class FallbackDocument(BaseModel):
    """Templated document built only from the analysis."""

    kind: Literal["fallback"] = "fallback"
    body: str
    metadata: DocumentMetadata
    reason: str = ""


GeneratedDocument = Annotated[ValidDocument | FallbackDocument, Field(discriminator="kind")]
