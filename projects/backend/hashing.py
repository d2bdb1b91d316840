"""
NewsProof — Content Fingerprinting Module
==========================================
Computes the SHA-256 fingerprint that identifies a piece of news content
on-chain.

The fingerprint must change if even a single bit of the content changes:
a verifier re-hashes the bytes it was handed and compares them against the
on-chain record, and any mismatch is treated as tampering. A 256-bit
cryptographic digest gives exactly that property.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from errors import ContentUnreadable, InvalidInput

logger = logging.getLogger(__name__)

FINGERPRINT_SIZE = 32  # bytes (SHA-256)
READ_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ContentFingerprint:
    """Immutable 32-byte content digest."""

    digest: bytes

    def __post_init__(self) -> None:
        if len(self.digest) != FINGERPRINT_SIZE:
            raise InvalidInput(
                f"Fingerprint must be {FINGERPRINT_SIZE} bytes, got {len(self.digest)}"
            )

    @property
    def hex(self) -> str:
        """64-char lowercase hex string, e.g. for display and JSON."""
        return self.digest.hex()

    @classmethod
    def from_hex(cls, value: str) -> "ContentFingerprint":
        try:
            digest = bytes.fromhex(value.strip().removeprefix("0x"))
        except (ValueError, AttributeError) as e:
            raise InvalidInput(f"Invalid fingerprint hex: {value!r}") from e
        return cls(digest)

    def __str__(self) -> str:
        return self.hex


def compute_fingerprint(content: bytes) -> ContentFingerprint:
    """
    Compute the fingerprint of raw content bytes.

    Args:
        content: Raw bytes of the uploaded media or document.

    Returns:
        ContentFingerprint wrapping the SHA-256 digest.
    """
    fingerprint = ContentFingerprint(hashlib.sha256(content).digest())
    logger.debug(f"Computed fingerprint: {fingerprint.hex} ({len(content)} bytes)")
    return fingerprint


def fingerprint_stream(stream: BinaryIO) -> ContentFingerprint:
    """
    Hash a binary file-like handle chunk by chunk.

    Raises:
        ContentUnreadable: If reading from the handle fails.
    """
    hasher = hashlib.sha256()
    try:
        for chunk in iter(lambda: stream.read(READ_CHUNK_SIZE), b""):
            hasher.update(chunk)
    except OSError as e:
        logger.error(f"Failed to read content stream: {e}")
        raise ContentUnreadable(f"Could not read content: {e}") from e
    return ContentFingerprint(hasher.digest())


def fingerprint_file(path: Union[str, Path]) -> ContentFingerprint:
    """
    Hash a file on disk.

    Raises:
        ContentUnreadable: If the file is missing or cannot be opened.
    """
    try:
        with open(path, "rb") as handle:
            return fingerprint_stream(handle)
    except ContentUnreadable:
        raise
    except OSError as e:
        logger.error(f"Failed to open content file {path}: {e}")
        raise ContentUnreadable(f"Could not read {path}: {e}") from e


def fingerprints_match(a: ContentFingerprint, b: ContentFingerprint) -> bool:
    """Constant-time fingerprint comparison."""
    return hmac.compare_digest(a.digest, b.digest)
