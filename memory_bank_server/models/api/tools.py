"""Argument models for the protocol tools."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolCallParams(BaseModel):
    """``params`` of a ``tools/call`` message."""

    name: str = Field(..., min_length=1)
    arguments: dict = Field(default_factory=dict)


class ReadResourceParams(BaseModel):
    """``params`` of a ``resources/read`` message."""

    uri: str = Field(..., min_length=1)


class UpdateDocumentArgs(BaseModel):
    """Arguments of ``update_document``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    document_key: str = Field(..., alias="documentKey", min_length=1)
    content: str


class ExportSnapshotArgs(BaseModel):
    """Arguments of ``export_snapshot``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    format: Literal["json", "markdown"] = "json"
    include_metadata: bool = Field(default=True, alias="includeMetadata")


class NoArgs(BaseModel):
    """Tools that take no arguments."""

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "ToolCallParams",
    "ReadResourceParams",
    "UpdateDocumentArgs",
    "ExportSnapshotArgs",
    "NoArgs",
]
