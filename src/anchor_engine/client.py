"""
VerificationClient SDK — sync client for the public verification endpoint.

Files are hashed locally; only the public id travels over the wire.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx

from anchor_engine.fingerprint.hasher import fingerprint_file, fingerprints_match


@dataclass
class ClientAttestation:
    receipt_id: str
    observed_at: Optional[datetime] = None
    position: Optional[int] = None
    network: Optional[str] = None


@dataclass
class ClientVerification:
    """Result of verify()/verify_file()."""

    found: bool
    public_id: Optional[str] = None
    status: Optional[str] = None
    headline: Optional[str] = None
    fingerprint: Optional[str] = None
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    jurisdiction: Optional[str] = None
    attestation: Optional[ClientAttestation] = None
    events: list[dict[str, Any]] = field(default_factory=list)
    code: str = ""
    error: str = ""
    # Set by verify_file() only
    local_fingerprint: Optional[str] = None
    matches: Optional[bool] = None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class VerificationClient:
    """
    Synchronous HTTP client for Anchor-Engine verification.

    Can be wrapped in async by consumers; designed for simplicity in sync contexts.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
    ):
        self.server_url = server_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(base_url=self.server_url, timeout=timeout)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """HTTP call with retry on timeouts, 5xx and 429. Other 4xx are final."""
        last_error = None
        for attempt in range(self.max_retries):
            try:
                resp = getattr(self._http, method)(path, **kwargs)
                if resp.status_code >= 500 or resp.status_code == 429:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                    return {"error": f"Server error: {resp.status_code}", "code": "SERVER_ERROR"}
                if resp.status_code == 404:
                    return {"found": False, "code": "NOT_FOUND"}
                if resp.status_code >= 400:
                    return {"error": f"Client error: {resp.status_code}", "code": "CLIENT_ERROR"}
                return resp.json()
            except httpx.TimeoutException:
                last_error = "timeout"
            except httpx.HTTPError as e:
                last_error = str(e)
            except json.JSONDecodeError:
                return {"error": "Invalid JSON response", "code": "JSON_ERROR"}
            if attempt < self.max_retries - 1:
                time.sleep(self.retry_backoff_base * (2 ** attempt))

        return {
            "error": f"All {self.max_retries} retries exhausted: {last_error}",
            "code": "CONNECTION_ERROR",
        }

    def verify(self, public_id: str) -> ClientVerification:
        data = self._request("get", f"/verify/{public_id}")
        if "error" in data:
            return ClientVerification(found=False, code=data.get("code", ""), error=data["error"])
        if not data.get("found"):
            return ClientVerification(found=False, code=data.get("code", "NOT_FOUND"))

        att = data.get("attestation")
        return ClientVerification(
            found=True,
            public_id=data.get("public_id"),
            status=data.get("status"),
            headline=data.get("headline"),
            fingerprint=data.get("fingerprint"),
            display_name=data.get("display_name"),
            created_at=_parse_dt(data.get("created_at")),
            jurisdiction=data.get("jurisdiction"),
            attestation=ClientAttestation(
                receipt_id=att["receipt_id"],
                observed_at=_parse_dt(att.get("observed_at")),
                position=att.get("position"),
                network=att.get("network"),
            ) if att else None,
            events=data.get("events", []),
            code="OK",
        )

    def verify_file(self, public_id: str, path: str | Path) -> ClientVerification:
        """Hash a local file and compare it against the anchored fingerprint."""
        local = fingerprint_file(path).fingerprint
        result = self.verify(public_id)
        result.local_fingerprint = local
        result.matches = result.found and fingerprints_match(result.fingerprint, local)
        return result

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
