"""Pydantic schemas for anchor endpoints and boundary validation."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from anchor_engine.common.config import MAX_FILE_SIZE_BYTES


class AnchorStatus(str, Enum):
    PENDING = "PENDING"
    SECURED = "SECURED"
    REVOKED = "REVOKED"


TERMINAL_STATUSES = frozenset({AnchorStatus.REVOKED})

# Anti-PII: whole-value email and US SSN shapes.
EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SSN_SHAPE = re.compile(r"^\d{3}-\d{2}-\d{4}$|^\d{9}$")

SHA256_HEX = r"^[0-9a-fA-F]{64}$"
MEDIA_TYPE = r"^[a-zA-Z][a-zA-Z0-9!#$&^_-]{0,62}/[a-zA-Z0-9][a-zA-Z0-9!#$&^_.+-]{0,62}(;\s*.+=.+)*$"
JURISDICTION = r"^[A-Z]{2}(-[A-Z0-9]{1,3})?$"


def check_display_name(value: str) -> str:
    if EMAIL_SHAPE.match(value):
        raise ValueError("display_name must not contain an email address")
    if SSN_SHAPE.match(value):
        raise ValueError("display_name must not contain an SSN")
    return value


class AnchorCreate(BaseModel):
    """Fingerprint plus metadata for a single anchor."""

    fingerprint: str = Field(..., pattern=SHA256_HEX)
    display_name: str = Field(..., min_length=1, max_length=255)
    size_bytes: int = Field(..., gt=0, le=MAX_FILE_SIZE_BYTES)
    media_type: str = Field(..., max_length=255, pattern=MEDIA_TYPE)
    jurisdiction: Optional[str] = Field(default=None, pattern=JURISDICTION)
    retention_policy: str = Field(default="STANDARD", min_length=1, max_length=64)
    retain_until: Optional[datetime] = None
    legal_hold: bool = False

    @field_validator("display_name")
    @classmethod
    def _no_raw_pii(cls, v: str) -> str:
        return check_display_name(v)

    @field_validator("fingerprint")
    @classmethod
    def _lowercase(cls, v: str) -> str:
        return v.lower()


class RevokeRequest(BaseModel):
    status: AnchorStatus = AnchorStatus.REVOKED


class AttestationResponse(BaseModel):
    receipt_id: str
    observed_at: Optional[datetime] = None
    position: Optional[int] = None
    network: Optional[str] = None


class AnchorResponse(BaseModel):
    id: str
    public_id: str
    owner_id: str
    tenant_id: Optional[str] = None
    fingerprint: str
    display_name: str
    size_bytes: int
    media_type: str
    status: AnchorStatus
    jurisdiction: Optional[str] = None
    retention_policy: str
    retain_until: Optional[datetime] = None
    legal_hold: bool = False
    attestation: Optional[AttestationResponse] = None
    created_at: datetime

    model_config = {"from_attributes": True}


def attestation_of(anchor) -> Optional[AttestationResponse]:
    if not anchor.attestation_receipt_id:
        return None
    return AttestationResponse(
        receipt_id=anchor.attestation_receipt_id,
        observed_at=anchor.attestation_observed_at,
        position=anchor.attestation_position,
        network=anchor.attestation_network,
    )


def anchor_response(anchor) -> AnchorResponse:
    return AnchorResponse(
        id=anchor.id,
        public_id=anchor.public_id,
        owner_id=anchor.owner_id,
        tenant_id=anchor.tenant_id,
        fingerprint=anchor.fingerprint,
        display_name=anchor.display_name,
        size_bytes=anchor.size_bytes,
        media_type=anchor.media_type,
        status=anchor.status,
        jurisdiction=anchor.jurisdiction,
        retention_policy=anchor.retention_policy,
        retain_until=anchor.retain_until,
        legal_hold=anchor.legal_hold,
        attestation=attestation_of(anchor),
        created_at=anchor.created_at,
    )
