"""Anchor lifecycle: creation, revocation and the verification read path.

Status machine::

    PENDING ──┐
       │      ├──> REVOKED   (terminal)
    SECURED ──┘

Single-anchor submissions start PENDING; the batch engine creates anchors
directly in SECURED. Only the external attestation collaborator promotes
PENDING to SECURED.
"""

import logging
import re
from typing import Any, Optional

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.anchors.models import AnchorModel
from anchor_engine.anchors.schemas import (
    TERMINAL_STATUSES,
    AnchorCreate,
    AnchorStatus,
    attestation_of,
)
from anchor_engine.anchors.store import AnchorStore
from anchor_engine.audit.service import ANCHOR_REVOKED, AuditSink
from anchor_engine.common.config import AnchorSettings
from anchor_engine.common.exceptions import (
    AlreadyTerminalError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from anchor_engine.common.models import as_utc
from anchor_engine.common.security import ActorContext
from anchor_engine.verification.schemas import (
    NOT_FOUND,
    PublicEvent,
    VerificationResult,
)

logger = logging.getLogger(__name__)

PUBLIC_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def _first_error(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err.get("loc", ()))
    message = err.get("msg", "invalid value")
    # field_validator messages arrive as "Value error, <msg>"
    message = message.removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


class AnchorLifecycleService:
    """Single-anchor operations and their authorization rules."""

    def __init__(
        self,
        settings: AnchorSettings,
        store: AnchorStore,
        audit_sink: AuditSink | None = None,
    ):
        self.settings = settings
        self.store = store
        self.audit_sink = audit_sink

    # ── Create ──

    async def create_anchor(
        self,
        session: AsyncSession,
        owner_id: str,
        fingerprint: str,
        metadata: dict[str, Any],
        tenant_id: str | None = None,
    ) -> AnchorModel:
        """Validate and persist a new PENDING anchor.

        Raises ValidationError for malformed input and DuplicateAnchorError
        when the tenant already holds this fingerprint.
        """
        if not owner_id:
            raise ValidationError("owner_id is required")
        try:
            body = AnchorCreate.model_validate({**metadata, "fingerprint": fingerprint})
        except pydantic.ValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc
        if body.size_bytes > self.settings.max_file_size_bytes:
            raise ValidationError(
                f"size_bytes: must be <= {self.settings.max_file_size_bytes}"
            )

        async with session.begin_nested():
            anchor = await self.store.insert_anchor(
                session,
                owner_id=owner_id,
                tenant_id=tenant_id,
                fingerprint=body.fingerprint,
                display_name=body.display_name,
                size_bytes=body.size_bytes,
                media_type=body.media_type,
                status=AnchorStatus.PENDING.value,
                jurisdiction=body.jurisdiction,
                retention_policy=body.retention_policy,
                retain_until=body.retain_until,
                legal_hold=body.legal_hold,
            )
            await self.store.record_event(session, anchor.id, "CREATED", actor_id=owner_id)
        return anchor

    async def create_secured_anchor(
        self,
        session: AsyncSession,
        owner_id: str,
        tenant_id: str,
        fingerprint: str,
        label: str,
    ) -> AnchorModel:
        """Batch path: the row stands for a pre-verified identity, so no PENDING."""
        anchor = await self.store.insert_anchor(
            session,
            owner_id=owner_id,
            tenant_id=tenant_id,
            fingerprint=fingerprint,
            display_name=label,
            size_bytes=1,
            media_type="application/octet-stream",
            status=AnchorStatus.SECURED.value,
            retention_policy="STANDARD",
        )
        await self.store.record_event(
            session, anchor.id, "CREATED", actor_id=owner_id, detail={"source": "bulk"},
        )
        return anchor

    # ── Status ──

    async def revise_status(
        self,
        session: AsyncSession,
        anchor_id: str,
        actor: ActorContext,
        new_status: AnchorStatus | str = AnchorStatus.REVOKED,
    ) -> AnchorModel:
        """Move an anchor to REVOKED on behalf of an org admin of its tenant."""
        try:
            new_status = AnchorStatus(new_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status '{new_status}'") from exc
        if new_status != AnchorStatus.REVOKED:
            raise ValidationError(f"Transition to {new_status.value} is not permitted")

        if not actor.is_org_admin:
            raise ForbiddenError()
        if not actor.tenant_id:
            raise ForbiddenError("No organisation linked to your account.")

        anchor = await self.store.get_by_id(session, anchor_id)
        if anchor is None or anchor.is_deleted:
            raise NotFoundError()
        if anchor.tenant_id != actor.tenant_id:
            raise ForbiddenError()
        if AnchorStatus(anchor.status) in TERMINAL_STATUSES:
            raise AlreadyTerminalError()

        updated = await self.store.update_status(
            session, anchor_id, actor.tenant_id, new_status,
        )
        if not updated:
            # Lost a race with a concurrent revocation.
            raise AlreadyTerminalError()
        await session.refresh(anchor)

        await self.store.record_event(session, anchor_id, "REVOKED", actor_id=actor.actor_id)
        if self.audit_sink:
            await self.audit_sink.record_event(
                session,
                action=ANCHOR_REVOKED,
                target_table="anchors",
                target_id=anchor_id,
                tenant_id=actor.tenant_id,
                actor=actor,
            )
        logger.info("Anchor revoked", extra={"anchor_id": anchor_id, "tenant_id": actor.tenant_id})
        return anchor

    # ── Read ──

    async def get_anchor(
        self, session: AsyncSession, anchor_id: str, actor: ActorContext,
    ) -> AnchorModel:
        """Owners see their anchors; org admins see their tenant's."""
        anchor = await self.store.get_by_id(session, anchor_id)
        if anchor is None or anchor.is_deleted:
            raise NotFoundError()
        if anchor.owner_id == actor.actor_id:
            return anchor
        if actor.is_org_admin and anchor.tenant_id and anchor.tenant_id == actor.tenant_id:
            return anchor
        raise NotFoundError()

    async def list_own_anchors(
        self, session: AsyncSession, actor: ActorContext,
    ) -> list[AnchorModel]:
        return await self.store.list_for_owner(session, actor.actor_id)

    async def read_for_verification(
        self, session: AsyncSession, public_id: str,
    ) -> VerificationResult:
        """Redacted, unauthenticated view. Unknown ids yield NOT_FOUND, never an error."""
        if not public_id or not PUBLIC_ID_RE.match(public_id.lower()):
            return NOT_FOUND
        anchor = await self.store.get_by_public_id(session, public_id.lower())
        if anchor is None or anchor.is_deleted:
            return NOT_FOUND

        events = await self.store.list_events(session, anchor.id)
        return VerificationResult(
            found=True,
            public_id=anchor.public_id,
            status=AnchorStatus(anchor.status),
            fingerprint=anchor.fingerprint,
            display_name=anchor.display_name,
            created_at=as_utc(anchor.created_at),
            jurisdiction=anchor.jurisdiction,
            attestation=attestation_of(anchor),
            events=[
                PublicEvent(event_type=e.event_type, occurred_at=as_utc(e.occurred_at))
                for e in events
            ],
        )
