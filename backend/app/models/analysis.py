"""Data analysis produced once per upload batch."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DataAnalysis(BaseModel):
    """Structured analysis of the uploaded files.

    Field aliases match the JSON shape the reasoning model is asked to return,
    so a parsed payload validates directly.
    """

    model_config = ConfigDict(populate_by_name=True)

    summary: str
    # Ordered; uniqueness is not guaranteed across merged files.
    columns: list[str] = Field(default_factory=list)
    row_count_estimate: int = Field(0, ge=0, alias="rowCount")
    suggestions: list[str] = Field(default_factory=list)
    key_insights: list[str] = Field(default_factory=list, alias="keyInsights")
    source: Literal["model", "fallback"] = Field(
        "model", description="'model' when parsed from the backend, 'fallback' when synthesized"
    )
