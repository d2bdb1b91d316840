"""
NewsProof — Verification Request Builder
=========================================
Pairs a content fingerprint with the metadata a reporter supplies at upload
time and produces the canonical payload that is written on-chain.

Canonical form: compact JSON, keys sorted, UTF-8. Two requests with the same
metadata always serialize to the same bytes.
"""

import json
import logging
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from errors import InvalidInput
from hashing import ContentFingerprint

logger = logging.getLogger(__name__)

# Must match the assertion in the NewsRegistry contract
MAX_METADATA_BYTES = 900
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class VerificationMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    location: Optional[str] = None
    content_type: str
    creator_identity: str
    submitted_at_epoch_millis: int


class VerificationRequest(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    fingerprint: ContentFingerprint
    metadata: VerificationMetadata
    payload: str


def now_epoch_millis() -> int:
    return int(time.time() * 1000)


def serialize_metadata(metadata: VerificationMetadata) -> str:
    """Canonical JSON encoding of the metadata (sorted keys, no whitespace)."""
    return json.dumps(
        metadata.model_dump(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def parse_metadata(payload: str) -> VerificationMetadata:
    """
    Decode a metadata payload read back from the ledger.

    Raises:
        InvalidInput: If the payload is not valid NewsProof metadata JSON.
    """
    try:
        return VerificationMetadata.model_validate_json(payload)
    except ValidationError as e:
        raise InvalidInput(f"Malformed verification metadata: {e}") from e


def build_verification_request(
    fingerprint: ContentFingerprint,
    title: str,
    content_type: str,
    creator_identity: str,
    location: Optional[str] = None,
    submitted_at_epoch_millis: Optional[int] = None,
) -> VerificationRequest:
    """
    Assemble a verification request for already-fingerprinted content.

    Args:
        fingerprint       : Fingerprint of the content bytes
        title             : Headline, required and not blank
        content_type      : MIME type of the upload (e.g. "image/jpeg")
        creator_identity  : Address of the signing identity submitting the content
        location          : Optional place the content was captured
        submitted_at_epoch_millis: Defaults to the current time

    Returns:
        VerificationRequest with the canonical serialized payload.

    Raises:
        InvalidInput: Empty title, missing creator, or payload over the
                      contract's metadata limit.
    """
    title = (title or "").strip()
    if not title:
        raise InvalidInput("A title is required to verify content")
    if not creator_identity:
        raise InvalidInput("A creator identity is required to verify content")

    metadata = VerificationMetadata(
        title=title,
        location=(location or "").strip() or None,
        content_type=(content_type or "").strip() or DEFAULT_CONTENT_TYPE,
        creator_identity=creator_identity,
        submitted_at_epoch_millis=(
            submitted_at_epoch_millis
            if submitted_at_epoch_millis is not None
            else now_epoch_millis()
        ),
    )
    payload = serialize_metadata(metadata)

    size = len(payload.encode("utf-8"))
    if size > MAX_METADATA_BYTES:
        raise InvalidInput(
            f"Metadata is {size} bytes; the registry accepts at most {MAX_METADATA_BYTES}"
        )

    logger.debug(f"Built verification request: fingerprint={fingerprint.hex} title={title!r}")
    return VerificationRequest(fingerprint=fingerprint, metadata=metadata, payload=payload)
