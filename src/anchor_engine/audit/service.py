"""Audit service: append to, verify and query the per-tenant event chain."""

import hashlib
import hmac as hmac_mod
import json
import logging
from typing import Any, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.audit.models import AuditEventModel
from anchor_engine.common.config import AnchorSettings
from anchor_engine.common.exceptions import StoreError
from anchor_engine.common.security import ActorContext

ANCHOR_REVOKED = "ANCHOR_REVOKED"
BULK_VERIFICATION_RUN = "BULK_VERIFICATION_RUN"

logger = logging.getLogger(__name__)

MAX_ACTION_LENGTH = 128
MAX_APPEND_ATTEMPTS = 5


class AuditSink(Protocol):
    """Append-only event emission. No read path is required of a sink."""

    async def record_event(
        self,
        session: AsyncSession,
        *,
        action: str,
        target_table: str,
        target_id: Optional[str],
        tenant_id: Optional[str],
        actor: Optional[ActorContext] = None,
        detail: Optional[dict[str, Any]] = None,
    ) -> AuditEventModel: ...


def _tenant_filter(tenant_id: Optional[str]):
    if tenant_id is None:
        return AuditEventModel.tenant_id.is_(None)
    return AuditEventModel.tenant_id == tenant_id


class AuditService:
    """Immutable, hash-chained audit trail per tenant."""

    def __init__(self, settings: AnchorSettings):
        self.settings = settings

    # ── Write ──

    async def record_event(
        self,
        session: AsyncSession,
        *,
        action: str,
        target_table: str,
        target_id: Optional[str],
        tenant_id: Optional[str],
        actor: Optional[ActorContext] = None,
        detail: Optional[dict[str, Any]] = None,
    ) -> AuditEventModel:
        """Append one event to the tenant's chain.

        The head is locked where the backend supports it. A concurrent
        append that takes the same sequence number first shows up as an
        IntegrityError; the append is retried against the new head, and
        StoreError is raised once MAX_APPEND_ATTEMPTS are used up.
        """
        if not action or len(action) > MAX_ACTION_LENGTH:
            raise ValueError(f"action must be 1-{MAX_ACTION_LENGTH} characters")
        detail = detail or {}
        actor_id = actor.actor_id if actor else None
        actor_role = getattr(actor.role, "value", actor.role) if actor else None

        for attempt in range(1, MAX_APPEND_ATTEMPTS + 1):
            try:
                async with session.begin_nested():
                    return await self._append(
                        session,
                        {
                            "action": action,
                            "actor_id": actor_id,
                            "actor_role": actor_role,
                            "target_table": target_table,
                            "target_id": target_id,
                            "tenant_id": tenant_id,
                            "detail": detail,
                        },
                    )
            except IntegrityError:
                logger.info(
                    "Audit chain head moved, retrying append",
                    extra={"tenant_id": tenant_id, "attempt": attempt},
                )
            except SQLAlchemyError as exc:
                raise StoreError(f"Audit append failed: {exc.__class__.__name__}") from exc
        raise StoreError("Audit append failed: chain head kept moving")

    async def _append(self, session: AsyncSession, fields: dict[str, Any]) -> AuditEventModel:
        head = await self.get_chain_head(session, fields["tenant_id"], lock=True)
        prev_hash = head.event_hash if head else None
        fields = {**fields, "sequence": head.sequence + 1 if head else 1}
        event_hash = self._compute_event_hash(fields, prev_hash)

        event = AuditEventModel(
            **fields,
            prev_hash=prev_hash,
            event_hash=event_hash,
            signature=self._sign(event_hash),
        )
        session.add(event)
        await session.flush()
        return event

    # ── Read ──

    async def get_chain_head(
        self, session: AsyncSession, tenant_id: Optional[str], lock: bool = False,
    ) -> AuditEventModel | None:
        query = (
            select(AuditEventModel)
            .where(_tenant_filter(tenant_id))
            .order_by(AuditEventModel.sequence.desc())
            .limit(1)
        )
        if lock:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get_events(
        self,
        session: AsyncSession,
        tenant_id: Optional[str],
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEventModel]:
        """Paginated event list, newest first."""
        query = select(AuditEventModel).where(_tenant_filter(tenant_id))
        if action:
            query = query.where(AuditEventModel.action == action)
        query = (
            query.order_by(AuditEventModel.sequence.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Verify ──

    async def verify_chain(
        self, session: AsyncSession, tenant_id: Optional[str],
    ) -> dict[str, Any]:
        """Walk the chain oldest to newest, checking links, hashes and signatures."""
        result = await session.execute(
            select(AuditEventModel)
            .where(_tenant_filter(tenant_id))
            .order_by(AuditEventModel.sequence.asc())
        )
        events = list(result.scalars().all())

        prev_hash = None
        for checked, event in enumerate(events):
            expected_hash = self._compute_event_hash(
                {
                    "action": event.action,
                    "actor_id": event.actor_id,
                    "actor_role": event.actor_role,
                    "target_table": event.target_table,
                    "target_id": event.target_id,
                    "tenant_id": event.tenant_id,
                    "detail": event.detail or {},
                    "sequence": event.sequence,
                },
                event.prev_hash,
            )
            if (
                event.prev_hash != prev_hash
                or event.event_hash != expected_hash
                or not self._verify_signature(event.event_hash, event.signature)
            ):
                return {"valid": False, "events_checked": checked, "break_at": event.id}
            prev_hash = event.event_hash

        return {"valid": True, "events_checked": len(events), "break_at": None}

    # ── Internal helpers ──

    @staticmethod
    def _compute_event_hash(fields: dict[str, Any], prev_hash: str | None) -> str:
        """SHA-256 of canonical JSON of the event fields."""
        canonical = json.dumps(
            {**fields, "prev_hash": prev_hash},
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, event_hash: str) -> str:
        return hmac_mod.new(
            self.settings.current_audit_key.encode(),
            event_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, event_hash: str, signature: str) -> bool:
        """Any key in the keyring may have signed the event."""
        for _version, key in self.settings.audit_keyring.items():
            expected = hmac_mod.new(
                key.encode(), event_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
