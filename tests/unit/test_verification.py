"""Tests for the public verification resolver."""

from datetime import datetime, timezone

import pytest

from anchor_engine.anchors.schemas import AnchorStatus
from anchor_engine.anchors.service import AnchorLifecycleService
from anchor_engine.anchors.store import SqlAnchorStore
from anchor_engine.audit.service import AuditService
from anchor_engine.common.config import AnchorSettings
from anchor_engine.common.database import DatabaseManager
from anchor_engine.common.exceptions import AlreadyTerminalError
from anchor_engine.common.security import ActorContext
from anchor_engine.fingerprint.hasher import fingerprint_bytes
from anchor_engine.verification.resolver import VerificationResolver
from anchor_engine.verification.schemas import NOT_FOUND


AUDIT_KEY = "test-audit-key-for-unit-tests"
ADMIN_A = ActorContext(actor_id="admin-a", role="ORG_ADMIN", tenant_id="tenant-a")
CONTENT = b"board minutes 2026-03"
FP = fingerprint_bytes(CONTENT)


def make_settings() -> AnchorSettings:
    return AnchorSettings(audit_hmac_key=AUDIT_KEY, db_url="sqlite+aiosqlite://")


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def lifecycle():
    settings = make_settings()
    return AnchorLifecycleService(settings, SqlAnchorStore(), audit_sink=AuditService(settings))


@pytest.fixture
def resolver(lifecycle):
    return VerificationResolver(lifecycle)


@pytest.fixture
async def anchor(db, lifecycle):
    async with db.get_session() as session:
        return await lifecycle.create_anchor(
            session,
            "member-a",
            FP,
            {"display_name": "minutes.pdf", "size_bytes": len(CONTENT), "media_type": "application/pdf"},
            tenant_id="tenant-a",
        )


async def _resolve(db, resolver, public_id):
    async with db.get_session() as session:
        return await resolver.resolve(session, public_id)


class TestHeadlines:
    async def test_pending(self, db, resolver, anchor):
        result = await _resolve(db, resolver, anchor.public_id)
        assert result.status == AnchorStatus.PENDING
        assert result.headline == "pending"
        assert result.attestation is None

    async def test_attested_becomes_verified(self, db, lifecycle, resolver, anchor):
        observed = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        async with db.get_session() as session:
            await lifecycle.store.record_attestation(
                session, anchor.id, "rcpt-42", observed, position=900001, network="mainnet",
            )
        result = await _resolve(db, resolver, anchor.public_id)
        assert result.status == AnchorStatus.SECURED
        assert result.headline == "verified"
        assert result.attestation.receipt_id == "rcpt-42"
        assert result.attestation.position == 900001
        assert [e.event_type for e in result.events] == ["CREATED", "ATTESTED"]

    async def test_revoked(self, db, lifecycle, resolver, anchor):
        async with db.get_session() as session:
            await lifecycle.revise_status(session, anchor.id, ADMIN_A)
        result = await _resolve(db, resolver, anchor.public_id)
        assert result.headline == "revoked"
        assert result.fingerprint == FP

    async def test_unknown(self, db, resolver):
        result = await _resolve(db, resolver, "f" * 32)
        assert result == NOT_FOUND
        assert result.headline is None


class TestMatches:
    async def test_local_digest_matches(self, db, resolver, anchor):
        result = await _resolve(db, resolver, anchor.public_id)
        assert VerificationResolver.matches(result, fingerprint_bytes(CONTENT))
        assert not VerificationResolver.matches(result, fingerprint_bytes(b"tampered"))

    def test_not_found_never_matches(self):
        assert not VerificationResolver.matches(NOT_FOUND, FP)


class TestAttestation:
    async def test_revoked_anchor_takes_no_attestation(self, db, lifecycle, resolver, anchor):
        async with db.get_session() as session:
            await lifecycle.revise_status(session, anchor.id, ADMIN_A)
        with pytest.raises(AlreadyTerminalError):
            async with db.get_session() as session:
                await lifecycle.store.record_attestation(
                    session, anchor.id, "rcpt-late", datetime(2026, 3, 2, tzinfo=timezone.utc),
                )
        result = await _resolve(db, resolver, anchor.public_id)
        assert result.status == AnchorStatus.REVOKED
        assert result.attestation is None
        assert [e.event_type for e in result.events] == ["CREATED", "REVOKED"]
