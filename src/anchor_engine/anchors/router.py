"""Anchor API router."""

from fastapi import APIRouter, Depends, HTTPException

from anchor_engine.anchors.schemas import (
    AnchorCreate,
    AnchorResponse,
    RevokeRequest,
    anchor_response,
)
from anchor_engine.common.exceptions import (
    AlreadyTerminalError,
    DuplicateAnchorError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from anchor_engine.common.security import ActorContext, require_actor

router = APIRouter()


def _get_service():
    from anchor_engine.deps import get_lifecycle_service
    return get_lifecycle_service()


def _get_db():
    from anchor_engine.deps import get_db
    return get_db()


@router.post("/anchors", response_model=AnchorResponse, status_code=201)
async def create_anchor(body: AnchorCreate, actor: ActorContext = Depends(require_actor)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            anchor = await svc.create_anchor(
                session,
                owner_id=actor.actor_id,
                fingerprint=body.fingerprint,
                metadata=body.model_dump(exclude={"fingerprint"}),
                tenant_id=actor.tenant_id,
            )
            return anchor_response(anchor)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except DuplicateAnchorError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/anchors", response_model=list[AnchorResponse])
async def list_my_anchors(actor: ActorContext = Depends(require_actor)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        anchors = await svc.list_own_anchors(session, actor)
        return [anchor_response(a) for a in anchors]


@router.get("/anchors/{anchor_id}", response_model=AnchorResponse)
async def get_anchor(anchor_id: str, actor: ActorContext = Depends(require_actor)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            anchor = await svc.get_anchor(session, anchor_id, actor)
            return anchor_response(anchor)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/anchors/{anchor_id}/revoke", response_model=AnchorResponse)
async def revoke_anchor(
    anchor_id: str,
    body: RevokeRequest | None = None,
    actor: ActorContext = Depends(require_actor),
):
    svc = _get_service()
    db = _get_db()
    new_status = body.status if body else RevokeRequest().status
    try:
        async with db.get_session() as session:
            anchor = await svc.revise_status(session, anchor_id, actor, new_status)
            return anchor_response(anchor)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except AlreadyTerminalError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=e.message)
