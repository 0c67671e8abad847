"""Public verification router. No authentication."""

from fastapi import APIRouter, HTTPException

from anchor_engine.verification.schemas import VerificationResult

router = APIRouter()


def _get_resolver():
    from anchor_engine.deps import get_verification_resolver
    return get_verification_resolver()


def _get_db():
    from anchor_engine.deps import get_db
    return get_db()


@router.get("/verify/{public_id}", response_model=VerificationResult)
async def verify(public_id: str):
    resolver = _get_resolver()
    db = _get_db()
    async with db.get_session() as session:
        result = await resolver.resolve(session, public_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="Record not found")
    return result
