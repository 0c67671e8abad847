"""Content fingerprinting.

Pure helpers: nothing here touches the network or the database. A
fingerprint is the lowercase hex SHA-256 of the content; the same primitive
derives the batch idempotency keys.
"""

import hashlib
import hmac
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path

FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")
DEFAULT_MEDIA_TYPE = "application/octet-stream"
_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class FileFingerprint:
    fingerprint: str
    display_name: str
    size_bytes: int
    media_type: str


def fingerprint_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def fingerprint_file(path: str | Path, chunk_size: int = _CHUNK_SIZE) -> FileFingerprint:
    """Stream a file through SHA-256 and collect the metadata an anchor needs."""
    path = Path(path)
    digest = hashlib.sha256()
    size = 0
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            digest.update(chunk)
            size += len(chunk)
    media_type, _ = mimetypes.guess_type(path.name)
    return FileFingerprint(
        fingerprint=digest.hexdigest(),
        display_name=path.name,
        size_bytes=size,
        media_type=media_type or DEFAULT_MEDIA_TYPE,
    )


def idempotency_fingerprint(batch_id: str, normalized_key: str) -> str:
    """Deterministic fingerprint for one (batch, natural key) pair."""
    return fingerprint_bytes(f"{batch_id}:{normalized_key}".encode("utf-8"))


def is_fingerprint(value: str) -> bool:
    return bool(FINGERPRINT_RE.match(value))


def fingerprints_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a.strip().lower(), b.strip().lower())


def format_bytes(num_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.50 KB'."""
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{value:.2f} {units[i]}"
