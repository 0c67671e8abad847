"""Integration tests for audit trail endpoints."""

import hashlib


async def _revoked_anchor(client, member_headers, admin_headers) -> str:
    resp = await client.post("/anchors", json={
        "fingerprint": hashlib.sha256(b"audited").hexdigest(),
        "display_name": "audited.txt",
        "size_bytes": 7,
        "media_type": "text/plain",
    }, headers=member_headers)
    anchor_id = resp.json()["id"]
    await client.post(f"/anchors/{anchor_id}/revoke", headers=admin_headers)
    return anchor_id


class TestAuditRouter:
    async def test_revocation_recorded(self, client, member_headers, admin_headers):
        anchor_id = await _revoked_anchor(client, member_headers, admin_headers)
        resp = await client.get("/audit", headers=admin_headers)
        assert resp.status_code == 200
        events = resp.json()
        assert len(events) == 1
        assert events[0]["action"] == "ANCHOR_REVOKED"
        assert events[0]["target_id"] == anchor_id
        assert events[0]["actor_id"] == "admin-a"

    async def test_chain_verifies(self, client, member_headers, admin_headers):
        await _revoked_anchor(client, member_headers, admin_headers)
        await client.post(
            "/bulk/runs", json={"batch_id": "batch-001", "rows": []}, headers=admin_headers,
        )
        resp = await client.get("/audit/verify", headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["events_checked"] == 2

    async def test_tenants_see_only_their_chain(self, client, member_headers, admin_headers, other_admin_headers):
        await _revoked_anchor(client, member_headers, admin_headers)
        resp = await client.get("/audit", headers=other_admin_headers)
        assert resp.json() == []

    async def test_members_forbidden(self, client, member_headers):
        resp = await client.get("/audit", headers=member_headers)
        assert resp.status_code == 403
