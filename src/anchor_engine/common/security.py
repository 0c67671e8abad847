"""Gateway authentication and actor resolution.

Credential checks happen upstream. The gateway proves itself with the
shared API key and forwards the already-authenticated identity in headers;
this module turns those into an explicit ActorContext that is passed to
every service call.
"""

import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Header, HTTPException


class UserRole(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    ORG_ADMIN = "ORG_ADMIN"


@dataclass(frozen=True)
class ActorContext:
    """Authenticated caller: who, in which role, bound to which tenant."""
    actor_id: str
    role: Optional[str] = None
    tenant_id: Optional[str] = None

    @property
    def is_org_admin(self) -> bool:
        return self.role == UserRole.ORG_ADMIN


async def require_api_key(
    x_anchor_api_key: str = Header(..., alias="X-Anchor-Api-Key"),
) -> str:
    """FastAPI dependency that validates the gateway API key from header."""
    from anchor_engine.common.config import get_settings

    settings = get_settings()
    if not hmac.compare_digest(x_anchor_api_key, settings.api_key):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_anchor_api_key


async def resolve_actor(
    x_anchor_api_key: str = Header(..., alias="X-Anchor-Api-Key"),
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
) -> Optional[ActorContext]:
    """Resolve the forwarded identity, or None when the caller is anonymous."""
    await require_api_key(x_anchor_api_key)
    if not x_actor_id:
        return None
    return ActorContext(
        actor_id=x_actor_id,
        role=x_actor_role or None,
        tenant_id=x_tenant_id or None,
    )


async def require_actor(
    x_anchor_api_key: str = Header(..., alias="X-Anchor-Api-Key"),
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
) -> ActorContext:
    """Like resolve_actor, but anonymous callers get a 401."""
    actor = await resolve_actor(x_anchor_api_key, x_actor_id, x_actor_role, x_tenant_id)
    if actor is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return actor
