"""Pydantic request and response models of the HTTP service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    file_id: str = Field(..., alias="fileId")
    file_name: str = Field(..., alias="fileName")
    page_count: Optional[int] = Field(None, alias="pageCount")
    encrypted: bool = False
    size: int

    model_config = ConfigDict(populate_by_name=True)


class TransformRequest(BaseModel):
    """Rules to apply to a previously uploaded document."""

    file_id: str = Field(..., alias="fileId")
    transformations: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class EditRequest(BaseModel):
    file_id: str = Field(..., alias="fileId")
    edits: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class TransformResponse(BaseModel):
    download_id: str = Field(..., alias="downloadId")
    preview_id: str = Field(..., alias="previewId")
    file_name: str = Field(..., alias="fileName")
    kind: str
    size: int

    model_config = ConfigDict(populate_by_name=True)


__all__ = ["EditRequest", "TransformRequest", "TransformResponse", "UploadResponse"]
