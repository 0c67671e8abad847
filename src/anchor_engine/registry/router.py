"""Organization registry router, org admins only."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from anchor_engine.anchors.schemas import anchor_response
from anchor_engine.common.config import get_settings
from anchor_engine.common.exceptions import ForbiddenError
from anchor_engine.common.schemas import PaginationParams
from anchor_engine.common.security import ActorContext, require_actor
from anchor_engine.registry.schemas import RegistryPage

router = APIRouter(prefix="/org/registry")


def _get_service():
    from anchor_engine.deps import get_registry_service
    return get_registry_service()


def _get_db():
    from anchor_engine.deps import get_db
    return get_db()


@router.get("", response_model=RegistryPage)
async def list_registry(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    pagination: PaginationParams = Depends(),
    actor: ActorContext = Depends(require_actor),
):
    pagination = pagination.bounded(get_settings())
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            items, total = await svc.list_registry(
                session, actor, status=status, search=search,
                offset=pagination.offset, limit=pagination.page_size,
            )
            return RegistryPage(
                items=[anchor_response(a) for a in items],
                total=total,
                page=pagination.page,
                page_size=pagination.page_size,
                pages=(total + pagination.page_size - 1) // pagination.page_size,
            )
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message)


@router.get("/export")
async def export_registry(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    actor: ActorContext = Depends(require_actor),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            body = await svc.export_csv(session, actor, status=status, search=search)
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=e.message)
    filename = f"registry-{date.today().isoformat()}.csv"
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
