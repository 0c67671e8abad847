"""Organization registry: tenant-wide anchor listing and CSV export."""

import csv
import io
import re
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.anchors.models import AnchorModel
from anchor_engine.anchors.schemas import AnchorStatus
from anchor_engine.anchors.store import AnchorStore
from anchor_engine.common.exceptions import ForbiddenError
from anchor_engine.common.models import as_utc
from anchor_engine.common.security import ActorContext

CSV_COLUMNS = ("anchor_id", "display_name", "fingerprint", "status", "created_at_utc")

_SEARCH_STRIP = re.compile(r"[%_'\"\\]")
_STATUSES = {s.value for s in AnchorStatus}


def sanitize_search(search: Optional[str]) -> Optional[str]:
    """Drop LIKE wildcards and quotes; None when nothing is left."""
    if not search:
        return None
    cleaned = _SEARCH_STRIP.sub("", search).strip()
    return cleaned or None


def build_registry_csv(anchors: Iterable[AnchorModel]) -> str:
    """RFC 4180 CSV of non-sensitive anchor fields, CRLF terminated rows."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_COLUMNS)
    for a in anchors:
        created = as_utc(a.created_at)
        writer.writerow([
            a.id,
            a.display_name,
            a.fingerprint,
            a.status,
            created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
        ])
    return buf.getvalue()


class RegistryService:
    """Read-only views over one tenant's anchors for its org admins."""

    def __init__(self, store: AnchorStore):
        self.store = store

    @staticmethod
    def _require_org_admin(actor: ActorContext) -> str:
        if not actor.is_org_admin or not actor.tenant_id:
            raise ForbiddenError()
        return actor.tenant_id

    async def list_registry(
        self,
        session: AsyncSession,
        actor: ActorContext,
        status: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[AnchorModel], int]:
        tenant_id = self._require_org_admin(actor)
        if status not in _STATUSES:
            status = None
        return await self.store.list_for_tenant(
            session,
            tenant_id,
            status=status,
            search=sanitize_search(search),
            offset=offset,
            limit=limit,
        )

    async def export_csv(
        self,
        session: AsyncSession,
        actor: ActorContext,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> str:
        anchors, _ = await self.list_registry(session, actor, status=status, search=search)
        return build_registry_csv(anchors)
