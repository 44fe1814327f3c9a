"""Pydantic models for rows flowing through the enrichment pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

OUTPUT_COLUMNS = [
    "ID",
    "File Name",
    "Command",
    "Link",
    "Alt Text",
    "Created At",
    "Type",
    "Mime Type",
    "Width",
    "Height",
    "Duration",
    "Status",
    "Errors",
]
"""Column order of the Shopify Files export, used for the output CSV."""


class EnrichmentRow(BaseModel):
    """One record of the Files export, keyed by its CSV column titles."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", alias="ID")
    file_name: str = Field(default="", alias="File Name")
    command: str = Field(default="", alias="Command")
    link: str = Field(default="", alias="Link")
    alt_text: str = Field(default="", alias="Alt Text", description="Empty means generation is needed.")
    created_at: str = Field(default="", alias="Created At")
    type: str = Field(default="", alias="Type")
    mime_type: str = Field(default="", alias="Mime Type")
    width: str = Field(default="", alias="Width")
    height: str = Field(default="", alias="Height")
    duration: str = Field(default="", alias="Duration")
    status: str = Field(default="", alias="Status")
    errors: str = Field(default="", alias="Errors")
    resolved_url: str | None = Field(
        default=None,
        exclude=True,
        description="Index match found during processing; never written out.",
    )

    @classmethod
    def from_csv(cls, raw: dict[str | None, Any]) -> EnrichmentRow:
        """Build a row from a DictReader record, treating missing cells as blank."""

        cleaned = {key: ("" if value is None else value) for key, value in raw.items() if key is not None}
        return cls.model_validate(cleaned)

    def needs_alt_text(self) -> bool:
        return not self.alt_text

    def to_output(self) -> dict[str, str]:
        """Serialize to the output CSV schema."""

        payload = self.model_dump(by_alias=True)
        return {column: payload.get(column, "") for column in OUTPUT_COLUMNS}


class RowOutcome(str, Enum):
    """What the enrichment engine did with a row."""

    GENERATED = "generated"
    PRESERVED = "preserved"
    FAILED = "failed"
    UNRESOLVED = "unresolved"
    MISSING_FILE_NAME = "missing_file_name"
