"""Tests for the fingerprint utility."""

import hashlib

from anchor_engine.fingerprint.hasher import (
    DEFAULT_MEDIA_TYPE,
    fingerprint_bytes,
    fingerprint_file,
    fingerprints_match,
    format_bytes,
    idempotency_fingerprint,
    is_fingerprint,
)

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
HELLO_SHA256 = "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


class TestFingerprintBytes:
    def test_empty(self):
        assert fingerprint_bytes(b"") == EMPTY_SHA256

    def test_lowercase_hex_shape(self):
        fp = fingerprint_bytes(b"anything")
        assert is_fingerprint(fp)
        assert fp == fp.lower()


class TestFingerprintFile:
    def test_digest_and_metadata(self, tmp_path):
        path = tmp_path / "quarterly_report.pdf"
        path.write_bytes(b"hello")
        fp = fingerprint_file(path)
        assert fp.fingerprint == HELLO_SHA256
        assert fp.display_name == "quarterly_report.pdf"
        assert fp.size_bytes == 5
        assert fp.media_type == "application/pdf"

    def test_small_chunks_same_digest(self, tmp_path):
        path = tmp_path / "blob.bin"
        data = bytes(range(256)) * 50
        path.write_bytes(data)
        assert fingerprint_file(path, chunk_size=7).fingerprint == hashlib.sha256(data).hexdigest()

    def test_unknown_extension_falls_back(self, tmp_path):
        path = tmp_path / "mystery.zzqx"
        path.write_bytes(b"x")
        assert fingerprint_file(path).media_type == DEFAULT_MEDIA_TYPE


class TestIdempotencyFingerprint:
    def test_matches_plain_digest_of_joined_key(self):
        assert idempotency_fingerprint("batch-001", "a@x.com") == fingerprint_bytes(
            b"batch-001:a@x.com"
        )

    def test_batch_namespaces_differ(self):
        assert idempotency_fingerprint("batch-001", "a@x.com") != idempotency_fingerprint(
            "batch-002", "a@x.com"
        )


class TestMatchAndFormat:
    def test_match_is_case_insensitive(self):
        assert fingerprints_match(HELLO_SHA256, HELLO_SHA256.upper())

    def test_mismatch_and_missing(self):
        assert not fingerprints_match(HELLO_SHA256, EMPTY_SHA256)
        assert not fingerprints_match(None, HELLO_SHA256)
        assert not fingerprints_match(HELLO_SHA256, "")

    def test_format_bytes(self):
        assert format_bytes(0) == "0 B"
        assert format_bytes(1) == "1.00 B"
        assert format_bytes(1536) == "1.50 KB"
        assert format_bytes(5 * 1024 ** 3) == "5.00 GB"
