"""Audit trail API router. Org admins see their own tenant's chain."""

from fastapi import APIRouter, Depends, HTTPException, Query

from anchor_engine.audit.schemas import AuditChainVerification, AuditEventResponse
from anchor_engine.common.security import ActorContext, require_actor

router = APIRouter()


def _get_service():
    from anchor_engine.deps import get_audit_service
    return get_audit_service()


def _get_db():
    from anchor_engine.deps import get_db
    return get_db()


def _tenant_of(actor: ActorContext) -> str:
    if not actor.is_org_admin or not actor.tenant_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor.tenant_id


@router.get("/audit", response_model=list[AuditEventResponse])
async def get_audit_events(
    action: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: ActorContext = Depends(require_actor),
):
    tenant_id = _tenant_of(actor)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        events = await svc.get_events(
            session, tenant_id, action=action, limit=limit, offset=offset,
        )
        return [AuditEventResponse.model_validate(e) for e in events]


@router.get("/audit/verify", response_model=AuditChainVerification)
async def verify_audit_chain(actor: ActorContext = Depends(require_actor)):
    tenant_id = _tenant_of(actor)
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        result = await svc.verify_chain(session, tenant_id)
        return AuditChainVerification(**result)
