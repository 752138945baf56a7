"""Pydantic models for uploaded documents and file validation."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

DocumentStatus = Literal["uploaded", "processing", "processed", "failed"]


class Document(BaseModel):
    """An uploaded document. Owned server-side, the client holds transient copies."""

    id: str
    name: str
    original_name: str
    size: int
    type: str
    uploaded_at: datetime | None = None
    uploaded_by: str | None = None
    status: DocumentStatus = "uploaded"
    metadata: dict[str, Any] | None = None


class DocumentsListResponse(BaseModel):
    """One page of the document listing."""

    documents: list[Document] = []
    total: int
    page: int
    limit: int


class UploadProgress(BaseModel):
    """Advisory progress event emitted while an upload body is being sent."""

    progress: int
    status: Literal["uploading", "complete", "error"] = "uploading"
    message: str | None = None


class FileCandidate(BaseModel):
    """A local file the user wants to upload."""

    name: str
    size: int
    mime_type: str
    content: bytes = b""


class FileValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []
