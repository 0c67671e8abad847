"""Pydantic schemas for audit trail responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AuditEventResponse(BaseModel):
    id: str
    occurred_at: datetime
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    target_table: str
    target_id: Optional[str] = None
    tenant_id: Optional[str] = None
    detail: dict[str, Any] = {}
    sequence: int
    prev_hash: Optional[str] = None
    event_hash: str
    signature: str

    model_config = {"from_attributes": True}


class AuditChainVerification(BaseModel):
    valid: bool
    events_checked: int
    break_at: Optional[str] = None
