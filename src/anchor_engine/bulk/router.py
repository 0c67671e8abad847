"""Batch anchoring API router."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from anchor_engine.bulk.schemas import BatchRequest, BatchResult
from anchor_engine.common.security import ActorContext, resolve_actor

router = APIRouter()

_REJECTION_STATUS = {
    "NOT_AUTHENTICATED": 401,
    "FORBIDDEN": 403,
    "NO_TENANT": 403,
    "VALIDATION_ERROR": 422,
}


def _get_engine():
    from anchor_engine.deps import get_batch_engine
    return get_batch_engine()


def _get_db():
    from anchor_engine.deps import get_db
    return get_db()


@router.post("/bulk/runs", response_model=BatchResult)
async def run_batch(
    body: BatchRequest,
    actor: Optional[ActorContext] = Depends(resolve_actor),
):
    engine = _get_engine()
    db = _get_db()
    async with db.get_session() as session:
        result = await engine.run_batch(session, body.batch_id, actor, body.rows)
    if not result.success:
        return JSONResponse(
            status_code=_REJECTION_STATUS.get(result.code, 400),
            content=result.model_dump(mode="json"),
        )
    return result
