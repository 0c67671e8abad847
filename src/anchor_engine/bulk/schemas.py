"""Pydantic schemas for batch anchoring runs."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RowStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    ERROR = "error"


class BulkRow(BaseModel):
    """One already-parsed upload row. Only `email` is used; nothing is persisted verbatim."""

    email: Optional[str] = None
    external_id: Optional[str] = None
    metadata: Optional[str] = None


class BulkRowResult(BaseModel):
    email: Optional[str] = None
    status: RowStatus
    anchor_id: Optional[str] = None
    error: Optional[str] = None


class BatchRequest(BaseModel):
    # Both fields are checked by the engine: batch_id as a precondition, rows one at a time.
    batch_id: Any = None
    rows: list[dict[str, Any]] = Field(default_factory=list)


class BatchResult(BaseModel):
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    rows: list[BulkRowResult] = Field(default_factory=list)
    truncated: bool = False
    audit_error: Optional[str] = None
