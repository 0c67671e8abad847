"""Tests for the anchor CLI."""

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from anchor_engine.cli import app
from anchor_engine.client import ClientVerification
from anchor_engine.fingerprint.hasher import fingerprint_bytes

runner = CliRunner()


def _client_returning(result: ClientVerification) -> MagicMock:
    client = MagicMock()
    client.__enter__.return_value = client
    client.verify.return_value = result
    client.verify_file.return_value = result
    return client


class TestFingerprintCommand:
    def test_prints_digest(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello")
        result = runner.invoke(app, ["fingerprint", str(path)])
        assert result.exit_code == 0
        assert fingerprint_bytes(b"hello") in result.output
        assert "notes.txt" in result.output


class TestVerifyCommand:
    def test_not_found_exits_1(self):
        client = _client_returning(ClientVerification(found=False, code="NOT_FOUND"))
        with patch("anchor_engine.client.VerificationClient", return_value=client):
            result = runner.invoke(app, ["verify", "f" * 32])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_found(self):
        client = _client_returning(ClientVerification(
            found=True, headline="verified", display_name="lease.pdf", fingerprint="ab" * 32,
        ))
        with patch("anchor_engine.client.VerificationClient", return_value=client):
            result = runner.invoke(app, ["verify", "f" * 32])
        assert result.exit_code == 0
        assert "VERIFIED" in result.output

    def test_file_mismatch_exits_2(self, tmp_path):
        path = tmp_path / "lease.pdf"
        path.write_bytes(b"altered")
        client = _client_returning(ClientVerification(
            found=True, headline="verified", display_name="lease.pdf",
            fingerprint="ab" * 32, matches=False,
        ))
        with patch("anchor_engine.client.VerificationClient", return_value=client):
            result = runner.invoke(app, ["verify", "f" * 32, "--file", str(path)])
        assert result.exit_code == 2
        assert "MISMATCH" in result.output
