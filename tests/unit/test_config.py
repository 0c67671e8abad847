"""Tests for settings and the audit keyring."""

import pytest

from anchor_engine.common.config import AnchorSettings


class TestAuditKeyring:
    def test_scalar_key_is_version_zero(self):
        settings = AnchorSettings(audit_hmac_key="k0")
        assert settings.audit_keyring == {0: "k0"}
        assert settings.current_audit_key == "k0"

    def test_json_keyring_uses_highest_version(self):
        settings = AnchorSettings(audit_hmac_keys='{"0": "old", "2": "newest", "1": "mid"}')
        assert settings.audit_keyring == {0: "old", 1: "mid", 2: "newest"}
        assert settings.current_audit_key == "newest"

    def test_bad_json_raises(self):
        settings = AnchorSettings(audit_hmac_keys="not json")
        with pytest.raises(ValueError):
            settings.audit_keyring


class TestValidateForProduction:
    def test_development_defaults_warn(self):
        with pytest.warns(UserWarning):
            AnchorSettings(environment="development").validate_for_production()

    def test_production_defaults_raise(self):
        settings = AnchorSettings(environment="production")
        with pytest.raises(RuntimeError, match="ANCHOR_API_KEY"):
            settings.validate_for_production()

    def test_production_with_secrets_passes(self):
        settings = AnchorSettings(
            environment="production",
            api_key="real-gateway-key",
            audit_hmac_key="real-audit-key",
        )
        settings.validate_for_production()

    def test_keyring_replaces_scalar_key(self):
        settings = AnchorSettings(
            environment="production",
            api_key="real-gateway-key",
            audit_hmac_keys='{"1": "rotated"}',
        )
        settings.validate_for_production()


class TestEnvironment:
    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("ANCHOR_BATCH_MAX_ROWS", "25")
        monkeypatch.setenv("ANCHOR_BATCH_DEADLINE_SECONDS", "1.5")
        settings = AnchorSettings()
        assert settings.batch_max_rows == 25
        assert settings.batch_deadline_seconds == 1.5
