"""Tests for content fingerprinting."""

import hashlib
import io

import pytest

from errors import ContentUnreadable, InvalidInput
from hashing import (
    ContentFingerprint,
    compute_fingerprint,
    fingerprint_file,
    fingerprint_stream,
    fingerprints_match,
)


class TestComputeFingerprint:
    def test_is_sha256(self):
        data = b"breaking news"
        assert compute_fingerprint(data).digest == hashlib.sha256(data).digest()

    def test_deterministic(self, sample_content):
        assert compute_fingerprint(sample_content) == compute_fingerprint(sample_content)

    def test_fixed_width(self):
        for data in (b"", b"a", b"x" * 10_000):
            fingerprint = compute_fingerprint(data)
            assert len(fingerprint.digest) == 32
            assert len(fingerprint.hex) == 64

    def test_single_bit_flip_changes_fingerprint(self, sample_content):
        flipped = bytearray(sample_content)
        flipped[0] ^= 0x01
        assert compute_fingerprint(bytes(flipped)) != compute_fingerprint(sample_content)

    def test_distinct_inputs_distinct_fingerprints(self):
        fingerprints = {compute_fingerprint(str(i).encode()).hex for i in range(500)}
        assert len(fingerprints) == 500


class TestContentFingerprint:
    def test_hex_roundtrip(self, sample_content):
        fingerprint = compute_fingerprint(sample_content)
        assert ContentFingerprint.from_hex(fingerprint.hex) == fingerprint

    def test_from_hex_accepts_0x_prefix(self, sample_content):
        fingerprint = compute_fingerprint(sample_content)
        assert ContentFingerprint.from_hex("0x" + fingerprint.hex) == fingerprint

    def test_from_hex_rejects_garbage(self):
        with pytest.raises(InvalidInput):
            ContentFingerprint.from_hex("not-hex")

    def test_rejects_wrong_length(self):
        with pytest.raises(InvalidInput):
            ContentFingerprint(b"\x00" * 16)

    def test_str_is_hex(self, sample_content):
        fingerprint = compute_fingerprint(sample_content)
        assert str(fingerprint) == fingerprint.hex


class TestStreamsAndFiles:
    def test_stream_matches_bytes(self, sample_content):
        assert fingerprint_stream(io.BytesIO(sample_content)) == compute_fingerprint(sample_content)

    def test_file_matches_bytes(self, tmp_path, sample_content):
        path = tmp_path / "upload.png"
        path.write_bytes(sample_content)
        assert fingerprint_file(path) == compute_fingerprint(sample_content)

    def test_missing_file_is_unreadable(self, tmp_path):
        with pytest.raises(ContentUnreadable):
            fingerprint_file(tmp_path / "missing.png")

    def test_failing_stream_is_unreadable(self):
        class BrokenStream:
            def read(self, size):
                raise OSError("disk error")

        with pytest.raises(ContentUnreadable, match="disk error"):
            fingerprint_stream(BrokenStream())


def test_fingerprints_match():
    a = compute_fingerprint(b"a")
    assert fingerprints_match(a, compute_fingerprint(b"a"))
    assert not fingerprints_match(a, compute_fingerprint(b"b"))
