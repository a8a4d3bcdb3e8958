"""Uploaded file models with tagged parse results."""

import uuid
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CsvRecords(BaseModel):
    """Rows decoded from delimiter-separated text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["csv"] = "csv"
    records: list[dict[str, Any]] = Field(default_factory=list)


class JsonRecords(BaseModel):
    """Records decoded from a JSON array (or a single wrapped object)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["json"] = "json"
    records: list[dict[str, Any]] = Field(default_factory=list)


class UnsupportedContent(BaseModel):
    """File kept only as raw text; no records could be decoded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unsupported"] = "unsupported"
    reason: str


ParsedContent = Annotated[
    CsvRecords | JsonRecords | UnsupportedContent, Field(discriminator="kind")
]


class UploadedFile(BaseModel):
    """File supplied by the user, immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    name: str
    mime_type: str = ""
    size_bytes: int = Field(..., ge=0)
    raw_content: str
    parsed: ParsedContent

    @property
    def records(self) -> list[dict[str, Any]]:
        """Decoded records, empty for unsupported content."""
        if isinstance(self.parsed, UnsupportedContent):
            return []
        return list(self.parsed.records)
