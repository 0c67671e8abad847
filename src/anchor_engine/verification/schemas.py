"""Public verification view. Carries no owner or tenant identity."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from anchor_engine.anchors.schemas import AnchorStatus, AttestationResponse

HEADLINES = {
    AnchorStatus.SECURED: "verified",
    AnchorStatus.PENDING: "pending",
    AnchorStatus.REVOKED: "revoked",
}


class PublicEvent(BaseModel):
    event_type: str
    occurred_at: datetime


class VerificationResult(BaseModel):
    found: bool
    public_id: Optional[str] = None
    status: Optional[AnchorStatus] = None
    headline: Optional[str] = None
    fingerprint: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    jurisdiction: Optional[str] = None
    attestation: Optional[AttestationResponse] = None
    events: list[PublicEvent] = Field(default_factory=list)


NOT_FOUND = VerificationResult(found=False)
