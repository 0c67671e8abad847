"""Public verification resolver: stateless, read-only, unauthenticated."""

from sqlalchemy.ext.asyncio import AsyncSession

from anchor_engine.anchors.service import AnchorLifecycleService
from anchor_engine.fingerprint.hasher import fingerprints_match
from anchor_engine.verification.schemas import HEADLINES, VerificationResult


class VerificationResolver:
    """Maps a public identifier to a redacted lifecycle view plus a headline.

    The resolver only exposes the stored fingerprint. Comparing it with a
    document is done by the caller against a locally computed digest.
    """

    def __init__(self, lifecycle: AnchorLifecycleService):
        self.lifecycle = lifecycle

    async def resolve(self, session: AsyncSession, public_id: str) -> VerificationResult:
        result = await self.lifecycle.read_for_verification(session, public_id)
        if not result.found:
            return result
        return result.model_copy(update={"headline": HEADLINES[result.status]})

    @staticmethod
    def matches(result: VerificationResult, local_fingerprint: str) -> bool:
        """True when a found record's fingerprint equals the caller's digest."""
        return result.found and fingerprints_match(result.fingerprint, local_fingerprint)
