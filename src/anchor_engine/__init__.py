"""Anchor-Engine: document fingerprint anchoring with idempotent batch registration."""

from anchor_engine.client import VerificationClient
from anchor_engine.fingerprint.hasher import (
    fingerprint_bytes,
    fingerprint_file,
    fingerprints_match,
    idempotency_fingerprint,
)

__all__ = [
    "VerificationClient",
    "fingerprint_bytes",
    "fingerprint_file",
    "fingerprints_match",
    "idempotency_fingerprint",
]
__version__ = "0.1.0"
