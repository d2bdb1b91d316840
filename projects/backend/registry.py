"""
NewsProof — Verification Registry View
=======================================
Read path over the NewsRegistry contract: look up a verification by id and
check a copy of the content against what was recorded on-chain.

A verifier never trusts a fingerprint it is handed. It re-hashes the bytes
itself and compares them with the on-chain record.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from algorand import MAX_VERIFICATION_ID, LedgerClient
from errors import FingerprintMismatch, InvalidInput, LedgerUnavailable, NotFound
from hashing import ContentFingerprint, compute_fingerprint, fingerprints_match
from verification_request import VerificationMetadata, parse_metadata

logger = logging.getLogger(__name__)


class RegistryEntry(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    verification_id: int
    fingerprint: ContentFingerprint
    metadata: Optional[VerificationMetadata] = None
    raw_metadata: str
    creator_address: str
    timestamp: int  # Unix seconds of the confirming block
    verified: bool

    def to_dict(self) -> dict:
        return {
            "verification_id": self.verification_id,
            "fingerprint": self.fingerprint.hex,
            "metadata": self.metadata.model_dump() if self.metadata else None,
            "raw_metadata": self.raw_metadata,
            "creator_address": self.creator_address,
            "timestamp": self.timestamp,
            "timestamp_utc": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).strftime(
                "%Y-%m-%d %H:%M:%S UTC"
            ),
            "verified": self.verified,
        }


class CheckStatus(str, enum.Enum):
    AUTHENTIC = "authentic"
    TAMPERED = "tampered"
    REVOKED = "revoked"


class ContentCheck(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    verification_id: int
    status: CheckStatus
    expected: ContentFingerprint
    actual: ContentFingerprint

    @property
    def matches(self) -> bool:
        return fingerprints_match(self.expected, self.actual)

    def require_authentic(self) -> "ContentCheck":
        if not self.matches:
            raise FingerprintMismatch(
                f"Content does not match verification {self.verification_id}: "
                f"expected {self.expected.hex}, got {self.actual.hex}"
            )
        return self

    def to_dict(self) -> dict:
        return {
            "verification_id": self.verification_id,
            "status": self.status.value,
            "matches": self.matches,
            "expected_fingerprint": self.expected.hex,
            "actual_fingerprint": self.actual.hex,
        }


class VerificationStats(BaseModel):
    total: int = 0
    verified: int = 0
    revoked: int = 0

    @property
    def verification_rate(self) -> float:
        """Percentage of entries still carrying the verified flag."""
        if not self.total:
            return 0.0
        return round(100.0 * self.verified / self.total, 1)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "verified": self.verified,
            "revoked": self.revoked,
            "verification_rate": self.verification_rate,
        }


def lookup_verification(
    ledger: LedgerClient,
    verification_id: int,
    reader_address: Optional[str] = None,
) -> RegistryEntry:
    """
    Read a verification record from the ledger.

    Args:
        ledger          : LedgerClient for the deployed NewsRegistry
        verification_id : Identifier returned by a prior submission
        reader_address  : Optional sender for the simulated read call

    Raises:
        NotFound          : The contract has no entry for this id.
        LedgerUnavailable : The read itself failed.
    """
    # Ids are uint64 on-chain; anything outside that range was never issued
    if not 0 <= verification_id <= MAX_VERIFICATION_ID:
        raise NotFound(f"No verification with id {verification_id}")

    try:
        on_chain = ledger.read(verification_id, reader_address)
    except Exception as e:
        logger.error(f"Verification lookup failed: id={verification_id}: {e}", exc_info=True)
        raise LedgerUnavailable(f"Could not read verification {verification_id}: {e}") from e

    if on_chain is None:
        raise NotFound(f"No verification with id {verification_id}")

    try:
        metadata = parse_metadata(on_chain.metadata)
    except InvalidInput:
        # Entries written by other clients may carry free-form metadata
        logger.warning(f"Verification {verification_id} has non-NewsProof metadata")
        metadata = None

    return RegistryEntry(
        verification_id=on_chain.verification_id,
        fingerprint=ContentFingerprint(on_chain.fingerprint),
        metadata=metadata,
        raw_metadata=on_chain.metadata,
        creator_address=on_chain.creator_address,
        timestamp=on_chain.timestamp,
        verified=on_chain.verified,
    )


def check_content(entry: RegistryEntry, content: bytes) -> ContentCheck:
    """
    Compare content bytes against an on-chain entry.

    A fingerprint mismatch is reported as TAMPERED regardless of the verified
    flag; matching content whose entry was revoked is REVOKED.
    """
    actual = compute_fingerprint(content)
    if not fingerprints_match(entry.fingerprint, actual):
        status = CheckStatus.TAMPERED
    elif not entry.verified:
        status = CheckStatus.REVOKED
    else:
        status = CheckStatus.AUTHENTIC

    logger.info(f"Content check: id={entry.verification_id} status={status.value}")
    return ContentCheck(
        verification_id=entry.verification_id,
        status=status,
        expected=entry.fingerprint,
        actual=actual,
    )


def summarize(entries: Iterable[RegistryEntry]) -> VerificationStats:
    stats = VerificationStats()
    for entry in entries:
        stats.total += 1
        if entry.verified:
            stats.verified += 1
        else:
            stats.revoked += 1
    return stats


def list_verifications(ledger: LedgerClient) -> list[RegistryEntry]:
    """
    Every entry in the registry, oldest first.

    Raises:
        LedgerUnavailable : Listing the application's boxes failed, or a
                            lookup of a listed id did.
    """
    try:
        verification_ids = ledger.list_verification_ids()
    except Exception as e:
        logger.error(f"Listing verifications failed: {e}", exc_info=True)
        raise LedgerUnavailable(f"Could not list verifications: {e}") from e

    return [lookup_verification(ledger, verification_id) for verification_id in verification_ids]
