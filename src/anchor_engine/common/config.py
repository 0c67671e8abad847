"""Anchor-Engine configuration via pydantic-settings."""

import json
import warnings
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "api_key": "insecure-gateway-key-change-me",
    "audit_hmac_key": "insecure-audit-key-change-me",
}

# 5 GiB
MAX_FILE_SIZE_BYTES = 5_368_709_120


class AnchorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ANCHOR_")

    environment: str = "development"

    # Audit chain signing key.  AUDIT_HMAC_KEYS is a JSON dict mapping
    # version (int) to key string, e.g. '{"0": "old-key", "1": "new-key"}'.
    # When set, audit_hmac_key is ignored.
    audit_hmac_key: str = "insecure-audit-key-change-me"
    audit_hmac_keys: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/anchors.db"

    # API
    api_title: str = "Anchor-Engine"
    api_version: str = "0.1.0"
    api_key: str = "insecure-gateway-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Anchors
    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES

    # Batch anchoring
    batch_max_rows: int = 10_000
    batch_deadline_seconds: Optional[float] = None

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 500

    @property
    def audit_keyring(self) -> dict[int, str]:
        """Return the audit signing keyring as {version_int: key_str}.

        Falls back to the scalar audit_hmac_key as version 0.
        """
        if self.audit_hmac_keys:
            try:
                raw = json.loads(self.audit_hmac_keys)
            except (json.JSONDecodeError, TypeError) as exc:
                raise ValueError(
                    f"ANCHOR_AUDIT_HMAC_KEYS must be valid JSON (e.g. '{{\"0\": \"key\"}}'), "
                    f"got: {self.audit_hmac_keys!r}"
                ) from exc
            return {int(k): v for k, v in raw.items()}
        return {0: self.audit_hmac_key}

    @property
    def current_audit_key(self) -> str:
        ring = self.audit_keyring
        return ring[max(ring.keys())]

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]
        if self.audit_hmac_keys and "audit_hmac_key" in insecure_fields:
            insecure_fields.remove("audit_hmac_key")

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"ANCHOR_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}."
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys; set ANCHOR_API_KEY and "
                "ANCHOR_AUDIT_HMAC_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> AnchorSettings:
    settings = AnchorSettings()
    settings.validate_for_production()
    return settings
