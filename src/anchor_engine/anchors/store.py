"""Anchor persistence contract and its SQLAlchemy implementation."""

from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.anchors.models import AnchorEventModel, AnchorModel
from anchor_engine.anchors.schemas import AnchorStatus
from anchor_engine.common.exceptions import (
    AlreadyTerminalError,
    DuplicateAnchorError,
    StoreError,
)


class AnchorStore(Protocol):
    """What the lifecycle manager and batch engine need from storage.

    Every method takes the caller's session as its unit of work.
    """

    async def insert_anchor(self, session: AsyncSession, **fields: Any) -> AnchorModel: ...

    async def find_by_fingerprint(
        self, session: AsyncSession, tenant_id: Optional[str], fingerprint: str,
    ) -> Optional[AnchorModel]: ...

    async def get_by_id(self, session: AsyncSession, anchor_id: str) -> Optional[AnchorModel]: ...

    async def get_by_public_id(
        self, session: AsyncSession, public_id: str,
    ) -> Optional[AnchorModel]: ...

    async def update_status(
        self, session: AsyncSession, anchor_id: str, tenant_id: str, new_status: AnchorStatus,
    ) -> bool: ...

    async def list_for_owner(self, session: AsyncSession, owner_id: str) -> list[AnchorModel]: ...

    async def list_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[AnchorModel], int]: ...

    async def record_event(
        self,
        session: AsyncSession,
        anchor_id: str,
        event_type: str,
        actor_id: Optional[str] = None,
        detail: Optional[dict[str, Any]] = None,
    ) -> AnchorEventModel: ...

    async def list_events(self, session: AsyncSession, anchor_id: str) -> list[AnchorEventModel]: ...

    async def record_attestation(
        self,
        session: AsyncSession,
        anchor_id: str,
        receipt_id: str,
        observed_at: datetime,
        position: Optional[int] = None,
        network: Optional[str] = None,
    ) -> AnchorModel: ...


class SqlAnchorStore:
    """AnchorStore over async SQLAlchemy.

    IntegrityError on insert becomes DuplicateAnchorError; any other
    SQLAlchemyError becomes StoreError.
    """

    # ── Write ──

    async def insert_anchor(self, session: AsyncSession, **fields: Any) -> AnchorModel:
        anchor = AnchorModel(**fields)
        try:
            session.add(anchor)
            await session.flush()
        except IntegrityError as exc:
            raise DuplicateAnchorError() from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Insert failed: {exc.__class__.__name__}") from exc
        return anchor

    async def update_status(
        self, session: AsyncSession, anchor_id: str, tenant_id: str, new_status: AnchorStatus,
    ) -> bool:
        """Scoped update; returns False when the row is gone or already terminal."""
        try:
            result = await session.execute(
                update(AnchorModel)
                .where(
                    AnchorModel.id == anchor_id,
                    AnchorModel.tenant_id == tenant_id,
                    AnchorModel.status != AnchorStatus.REVOKED.value,
                )
                .values(status=AnchorStatus(new_status).value)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise StoreError(f"Status update failed: {exc.__class__.__name__}") from exc
        return result.rowcount == 1

    async def record_event(
        self,
        session: AsyncSession,
        anchor_id: str,
        event_type: str,
        actor_id: Optional[str] = None,
        detail: Optional[dict[str, Any]] = None,
    ) -> AnchorEventModel:
        try:
            count = await session.execute(
                select(func.count(AnchorEventModel.id))
                .where(AnchorEventModel.anchor_id == anchor_id)
            )
            event = AnchorEventModel(
                anchor_id=anchor_id,
                event_type=event_type,
                actor_id=actor_id,
                detail=detail or {},
                seq=(count.scalar() or 0) + 1,
            )
            session.add(event)
            await session.flush()
        except SQLAlchemyError as exc:
            raise StoreError(f"Event insert failed: {exc.__class__.__name__}") from exc
        return event

    async def record_attestation(
        self,
        session: AsyncSession,
        anchor_id: str,
        receipt_id: str,
        observed_at: datetime,
        position: Optional[int] = None,
        network: Optional[str] = None,
    ) -> AnchorModel:
        """Attestation write path; a PENDING anchor is promoted to SECURED.

        Revoked anchors are terminal and take no attestation.
        """
        anchor = await self.get_by_id(session, anchor_id)
        if anchor is None:
            raise StoreError(f"Anchor {anchor_id} does not exist")
        if anchor.status == AnchorStatus.REVOKED:
            raise AlreadyTerminalError()
        anchor.attestation_receipt_id = receipt_id
        anchor.attestation_observed_at = observed_at
        anchor.attestation_position = position
        anchor.attestation_network = network
        if anchor.status == AnchorStatus.PENDING:
            anchor.status = AnchorStatus.SECURED.value
        await session.flush()
        await self.record_event(
            session, anchor_id, "ATTESTED",
            detail={"receipt_id": receipt_id, "network": network},
        )
        return anchor

    # ── Read ──

    async def find_by_fingerprint(
        self, session: AsyncSession, tenant_id: Optional[str], fingerprint: str,
    ) -> Optional[AnchorModel]:
        query = select(AnchorModel).where(AnchorModel.fingerprint == fingerprint)
        if tenant_id is not None:
            query = query.where(AnchorModel.tenant_id == tenant_id)
        else:
            query = query.where(AnchorModel.tenant_id.is_(None))
        try:
            result = await session.execute(query.limit(1))
        except SQLAlchemyError as exc:
            raise StoreError(f"Lookup failed: {exc.__class__.__name__}") from exc
        return result.scalar_one_or_none()

    async def get_by_id(self, session: AsyncSession, anchor_id: str) -> Optional[AnchorModel]:
        result = await session.execute(
            select(AnchorModel).where(AnchorModel.id == anchor_id)
        )
        return result.scalar_one_or_none()

    async def get_by_public_id(
        self, session: AsyncSession, public_id: str,
    ) -> Optional[AnchorModel]:
        result = await session.execute(
            select(AnchorModel).where(AnchorModel.public_id == public_id)
        )
        return result.scalar_one_or_none()

    async def list_for_owner(self, session: AsyncSession, owner_id: str) -> list[AnchorModel]:
        result = await session.execute(
            select(AnchorModel)
            .where(
                AnchorModel.owner_id == owner_id,
                AnchorModel.deleted_at.is_(None),
            )
            .order_by(AnchorModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[AnchorModel], int]:
        """Tenant anchors newest first. Returns (items, total_count)."""
        base_filter = [
            AnchorModel.tenant_id == tenant_id,
            AnchorModel.deleted_at.is_(None),
        ]
        if status:
            base_filter.append(AnchorModel.status == status)
        if search:
            base_filter.append(or_(
                AnchorModel.display_name.ilike(f"%{search}%"),
                AnchorModel.id.ilike(f"{search}%"),
            ))

        count_result = await session.execute(
            select(func.count(AnchorModel.id)).where(*base_filter)
        )
        total = count_result.scalar() or 0

        query = (
            select(AnchorModel)
            .where(*base_filter)
            .order_by(AnchorModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all()), total

    async def list_events(self, session: AsyncSession, anchor_id: str) -> list[AnchorEventModel]:
        result = await session.execute(
            select(AnchorEventModel)
            .where(AnchorEventModel.anchor_id == anchor_id)
            .order_by(AnchorEventModel.seq.asc())
        )
        return list(result.scalars().all())
