"""Tests for client.py — VerificationClient SDK with resilience."""

import json
from unittest.mock import MagicMock, patch

import httpx

from anchor_engine.client import VerificationClient
from anchor_engine.fingerprint.hasher import fingerprint_bytes

PUBLIC_ID = "0123456789abcdef0123456789abcdef"


def _mock_response(data: dict, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    return resp


def _found(fingerprint: str, **overrides) -> dict:
    data = {
        "found": True,
        "public_id": PUBLIC_ID,
        "status": "SECURED",
        "headline": "verified",
        "fingerprint": fingerprint,
        "display_name": "contract.pdf",
        "created_at": "2026-01-02T03:04:05Z",
        "jurisdiction": "US",
        "attestation": {
            "receipt_id": "rcpt-1",
            "observed_at": "2026-01-02T04:00:00+00:00",
            "position": 812345,
            "network": "mainnet",
        },
        "events": [{"event_type": "CREATED", "occurred_at": "2026-01-02T03:04:05Z"}],
    }
    data.update(overrides)
    return data


class TestVerificationClientInit:
    def test_defaults(self):
        client = VerificationClient()
        assert client.server_url == "http://localhost:8080"
        assert client.max_retries == 3
        client.close()

    def test_trailing_slash_stripped(self):
        with VerificationClient(server_url="http://custom:9090/", max_retries=5) as client:
            assert client.server_url == "http://custom:9090"
            assert client.max_retries == 5


class TestClientVerify:
    def test_found(self):
        client = VerificationClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(_found("ab" * 32))

        result = client.verify(PUBLIC_ID)
        assert result.found is True
        assert result.code == "OK"
        assert result.headline == "verified"
        assert result.created_at.year == 2026
        assert result.created_at.tzinfo is not None
        assert result.attestation.receipt_id == "rcpt-1"
        assert result.attestation.position == 812345
        client._http.get.assert_called_once_with(f"/verify/{PUBLIC_ID}")
        client.close()

    def test_without_attestation(self):
        client = VerificationClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(
            _found("ab" * 32, status="PENDING", headline="pending", attestation=None)
        )

        result = client.verify(PUBLIC_ID)
        assert result.found is True
        assert result.attestation is None
        client.close()

    def test_not_found(self):
        client = VerificationClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.return_value = _mock_response({"found": False}, status_code=404)

        result = client.verify(PUBLIC_ID)
        assert result.found is False
        assert result.code == "NOT_FOUND"
        assert client._http.get.call_count == 1
        client.close()


class TestClientVerifyFile:
    def test_match(self, tmp_path):
        path = tmp_path / "contract.pdf"
        path.write_bytes(b"signed contract")
        client = VerificationClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(
            _found(fingerprint_bytes(b"signed contract").upper())
        )

        result = client.verify_file(PUBLIC_ID, path)
        assert result.local_fingerprint == fingerprint_bytes(b"signed contract")
        assert result.matches is True
        client.close()

    def test_mismatch(self, tmp_path):
        path = tmp_path / "contract.pdf"
        path.write_bytes(b"altered contract")
        client = VerificationClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response(
            _found(fingerprint_bytes(b"signed contract"))
        )

        result = client.verify_file(PUBLIC_ID, path)
        assert result.found is True
        assert result.matches is False
        client.close()

    def test_not_found_never_matches(self, tmp_path):
        path = tmp_path / "contract.pdf"
        path.write_bytes(b"signed contract")
        client = VerificationClient()
        client._http = MagicMock()
        client._http.get.return_value = _mock_response({}, status_code=404)

        result = client.verify_file(PUBLIC_ID, path)
        assert result.matches is False
        client.close()


# ── Resilience ──


class TestRetryOnTimeout:
    @patch("anchor_engine.client.time.sleep")
    def test_retry_on_timeout(self, mock_sleep):
        client = VerificationClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.side_effect = httpx.TimeoutException("timeout")

        result = client.verify(PUBLIC_ID)
        assert result.found is False
        assert result.code == "CONNECTION_ERROR"
        assert client._http.get.call_count == 3
        client.close()


class TestNoRetryOn4xx:
    def test_no_retry_on_403(self):
        client = VerificationClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.return_value = _mock_response({}, status_code=403)

        result = client._request("get", "/verify/x")
        assert result["code"] == "CLIENT_ERROR"
        assert client._http.get.call_count == 1
        client.close()


class TestRetryOn5xx:
    @patch("anchor_engine.client.time.sleep")
    def test_retry_on_500(self, mock_sleep):
        client = VerificationClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.return_value = _mock_response({}, status_code=500)

        result = client._request("get", "/verify/x")
        assert result["code"] == "SERVER_ERROR"
        assert client._http.get.call_count == 3
        assert mock_sleep.call_count == 2
        client.close()

    @patch("anchor_engine.client.time.sleep")
    def test_recovers_after_429(self, mock_sleep):
        client = VerificationClient(max_retries=3)
        client._http = MagicMock()
        client._http.get.side_effect = [
            _mock_response({}, status_code=429),
            _mock_response(_found("ab" * 32)),
        ]

        result = client.verify(PUBLIC_ID)
        assert result.found is True
        assert client._http.get.call_count == 2
        client.close()


class TestRetriesExhausted:
    @patch("anchor_engine.client.time.sleep")
    def test_all_retries_exhausted(self, mock_sleep):
        client = VerificationClient(max_retries=2)
        client._http = MagicMock()
        client._http.get.side_effect = httpx.ConnectError("refused")

        result = client._request("get", "/verify/x")
        assert result["code"] == "CONNECTION_ERROR"
        assert "2 retries exhausted" in result["error"]
        client.close()


class TestJsonDecodeError:
    def test_json_decode_error(self):
        client = VerificationClient()
        client._http = MagicMock()
        mock_resp = MagicMock()
        mock_resp.status_code = 200
        mock_resp.json.side_effect = json.JSONDecodeError("err", "", 0)
        client._http.get.return_value = mock_resp

        result = client._request("get", "/verify/x")
        assert result["code"] == "JSON_ERROR"
        client.close()
