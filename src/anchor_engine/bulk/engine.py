"""Idempotent batch anchoring.

Each row is keyed by::

    fingerprint = sha256(batch_id + ":" + normalized_email)

stored as the anchor's fingerprint. Re-running the same batch against the
same tenant finds those fingerprints and skips the rows, so any number of
retries produces one anchor per (batch_id, email) pair.

One BULK_VERIFICATION_RUN audit event is emitted per run, whatever the row
outcomes. No raw row data is persisted.
"""

import logging
import re
import time
from typing import Any, Iterable, Optional, Union

import pydantic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.anchors.service import AnchorLifecycleService
from anchor_engine.anchors.store import AnchorStore
from anchor_engine.audit.service import BULK_VERIFICATION_RUN, AuditSink
from anchor_engine.bulk.schemas import BatchResult, BulkRow, BulkRowResult, RowStatus
from anchor_engine.common.config import AnchorSettings
from anchor_engine.common.exceptions import DuplicateAnchorError, StoreError
from anchor_engine.common.security import ActorContext, UserRole
from anchor_engine.fingerprint.hasher import idempotency_fingerprint

logger = logging.getLogger(__name__)

MIN_BATCH_ID_LENGTH = 4
EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_key(raw: Optional[str]) -> str:
    return (raw or "").strip().lower()


def _raw_email(row: Any) -> Optional[str]:
    """The row's email as given, when it is a string at all."""
    if isinstance(row, BulkRow):
        email = row.email
    elif isinstance(row, dict):
        email = row.get("email")
    else:
        email = None
    return email if isinstance(email, str) else None


def batch_label(batch_id: str) -> str:
    """Anchor label derived from the batch only, never from the identity."""
    return f"bulk-{batch_id[:8]}-entry"


def _rejected(error: str, code: str) -> BatchResult:
    return BatchResult(success=False, error=error, code=code)


class BatchAnchoringEngine:
    """Runs batches of rows against the lifecycle manager for one tenant."""

    def __init__(
        self,
        settings: AnchorSettings,
        store: AnchorStore,
        lifecycle: AnchorLifecycleService,
        audit_sink: AuditSink,
    ):
        self.settings = settings
        self.store = store
        self.lifecycle = lifecycle
        self.audit_sink = audit_sink

    def check_preconditions(
        self, batch_id: object, actor: Optional[ActorContext], row_count: int,
    ) -> Optional[BatchResult]:
        """Return a rejection if the whole batch must abort before any row runs."""
        if actor is None:
            return _rejected("Not authenticated.", "NOT_AUTHENTICATED")
        if actor.role != UserRole.ORG_ADMIN:
            return _rejected("Forbidden.", "FORBIDDEN")
        if not actor.tenant_id:
            return _rejected("No organisation linked to your account.", "NO_TENANT")
        if not isinstance(batch_id, str) or len(batch_id) < MIN_BATCH_ID_LENGTH:
            return _rejected("Invalid batch_id.", "VALIDATION_ERROR")
        if row_count > self.settings.batch_max_rows:
            return _rejected(
                f"Too many rows (max {self.settings.batch_max_rows}).", "VALIDATION_ERROR",
            )
        return None

    async def run_batch(
        self,
        session: AsyncSession,
        batch_id: str,
        actor: Optional[ActorContext],
        rows: Iterable[Union[BulkRow, dict[str, Any]]],
        deadline_seconds: Optional[float] = None,
    ) -> BatchResult:
        rows = list(rows)
        rejection = self.check_preconditions(batch_id, actor, len(rows))
        if rejection is not None:
            logger.info("Batch rejected", extra={"code": rejection.code})
            return rejection

        tenant_id = actor.tenant_id
        if deadline_seconds is None:
            deadline_seconds = self.settings.batch_deadline_seconds
        deadline = None if deadline_seconds is None else time.monotonic() + deadline_seconds

        results: list[BulkRowResult] = []
        truncated = False
        for row in rows:
            if deadline is not None and time.monotonic() > deadline:
                truncated = True
            if truncated:
                results.append(BulkRowResult(
                    email=normalize_key(_raw_email(row)) or _raw_email(row),
                    status=RowStatus.ERROR,
                    error="deadline exceeded; row not attempted",
                ))
                continue
            results.append(await self._run_row(session, batch_id, actor, tenant_id, row))

        processed = sum(1 for r in results if r.status == RowStatus.PROCESSED)
        skipped = sum(1 for r in results if r.status == RowStatus.SKIPPED)
        errors = len(results) - processed - skipped

        audit_error = await self._emit_audit(
            session, actor, tenant_id,
            {
                "batch_id": batch_id,
                "rows": len(results),
                "processed": processed,
                "skipped": skipped,
                "errors": errors,
                "truncated": truncated,
            },
        )
        logger.info(
            "Batch run complete",
            extra={
                "tenant_id": tenant_id,
                "processed": processed,
                "skipped": skipped,
                "errors": errors,
                "truncated": truncated,
            },
        )
        return BatchResult(
            success=True,
            processed=processed,
            skipped=skipped,
            errors=errors,
            rows=results,
            truncated=truncated,
            audit_error=audit_error,
        )

    async def _run_row(
        self,
        session: AsyncSession,
        batch_id: str,
        actor: ActorContext,
        tenant_id: str,
        row: Union[BulkRow, dict[str, Any]],
    ) -> BulkRowResult:
        """One row's check-then-insert, isolated in its own SAVEPOINT."""
        if not isinstance(row, BulkRow):
            try:
                row = BulkRow.model_validate(row)
            except pydantic.ValidationError:
                return BulkRowResult(
                    email=_raw_email(row), status=RowStatus.ERROR, error="email is malformed",
                )
        email = normalize_key(row.email)
        if not email:
            return BulkRowResult(email=row.email, status=RowStatus.ERROR, error="email is required")
        if not EMAIL_SHAPE.match(email):
            return BulkRowResult(email=email, status=RowStatus.ERROR, error="email is malformed")

        fingerprint = idempotency_fingerprint(batch_id, email)
        try:
            async with session.begin_nested():
                existing = await self.store.find_by_fingerprint(session, tenant_id, fingerprint)
                if existing is not None:
                    return BulkRowResult(
                        email=email, status=RowStatus.SKIPPED, anchor_id=existing.id,
                    )
                anchor = await self.lifecycle.create_secured_anchor(
                    session,
                    owner_id=actor.actor_id,
                    tenant_id=tenant_id,
                    fingerprint=fingerprint,
                    label=batch_label(batch_id),
                )
                return BulkRowResult(email=email, status=RowStatus.PROCESSED, anchor_id=anchor.id)
        except DuplicateAnchorError:
            # A concurrent writer inserted the same key first: same outcome as a skip.
            return await self._resolve_duplicate(session, tenant_id, fingerprint, email)
        except StoreError as exc:
            logger.warning("Batch row failed", extra={"tenant_id": tenant_id, "code": exc.code})
            return BulkRowResult(email=email, status=RowStatus.ERROR, error=exc.message)

    async def _resolve_duplicate(
        self, session: AsyncSession, tenant_id: str, fingerprint: str, email: str,
    ) -> BulkRowResult:
        try:
            winner = await self.store.find_by_fingerprint(session, tenant_id, fingerprint)
        except StoreError as exc:
            return BulkRowResult(email=email, status=RowStatus.ERROR, error=exc.message)
        if winner is None:
            return BulkRowResult(email=email, status=RowStatus.ERROR, error="Insert failed")
        return BulkRowResult(email=email, status=RowStatus.SKIPPED, anchor_id=winner.id)

    async def _emit_audit(
        self,
        session: AsyncSession,
        actor: ActorContext,
        tenant_id: str,
        detail: dict,
    ) -> Optional[str]:
        """Emit the run's single audit event. Failure is reported, anchors stay."""
        try:
            async with session.begin_nested():
                await self.audit_sink.record_event(
                    session,
                    action=BULK_VERIFICATION_RUN,
                    target_table="anchors",
                    target_id=None,
                    tenant_id=tenant_id,
                    actor=actor,
                    detail=detail,
                )
        except (SQLAlchemyError, StoreError) as exc:
            logger.warning(
                "Batch audit emission failed",
                extra={"tenant_id": tenant_id, "error": exc.__class__.__name__},
            )
            return "Audit event could not be recorded"
        return None
