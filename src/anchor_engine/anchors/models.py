"""SQLAlchemy models for anchors and their lifecycle timeline."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from anchor_engine.common.models import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    generate_uuid,
    utcnow,
)


def generate_public_id() -> str:
    """32 lowercase hex chars; never reused."""
    return uuid.uuid4().hex


class AnchorModel(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "anchors"
    __table_args__ = (
        UniqueConstraint("tenant_id", "fingerprint", name="uq_anchor_tenant_fingerprint"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    public_id: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, index=True, default=generate_public_id
    )
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    media_type: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True)
    jurisdiction: Mapped[str | None] = mapped_column(String(8), nullable=True)

    retention_policy: Mapped[str] = mapped_column(String(64), default="STANDARD")
    retain_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    legal_hold: Mapped[bool] = mapped_column(Boolean, default=False)

    # Written only by the external attestation collaborator.
    attestation_receipt_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    attestation_observed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    attestation_position: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    attestation_network: Mapped[str | None] = mapped_column(String(64), nullable=True)


class AnchorEventModel(Base):
    __tablename__ = "anchor_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    anchor_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("anchors.id"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    detail: Mapped[dict] = mapped_column(JSON, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, default=0)
