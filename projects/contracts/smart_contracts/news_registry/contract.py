"""
NewsRegistry Smart Contract — Verified News Content Registry
=============================================================
Deployed on Algorand TestNet via AlgoKit + Puya compiler.

Every piece of news content a reporter uploads is registered here with its
SHA-256 fingerprint and the metadata captured at upload time (title,
location, content type, creator). Anyone can later look the record up by its
verification id and re-hash their copy of the content to detect tampering.

Architecture:
  - Box storage: one entry per verification, keyed by a sequential uint64 id
    (namespace: "ver_")
  - Global state: total_verifications, which is also the next id handed out
  - Each submission pays the box storage cost of its own entry

ARC Standards:
  - ARC-4: Smart contract ABI (method signatures, struct types)
  - ARC-4 Box Storage: O(1) lookup by id without an indexer
"""

from algopy import (
    ARC4Contract,
    BoxMap,
    Global,
    Txn,
    UInt64,
    arc4,
    gtxn,
)
from algopy.arc4 import abimethod

FINGERPRINT_LENGTH = 32
MAX_METADATA_BYTES = 900

# Box MBR: 2500 per box + 400 per byte of key and value. An entry is the 12-byte
# key plus 81 bytes of struct encoding plus the metadata.
BOX_FLAT_MBR = 2_500
BOX_BYTE_MBR = 400
ENTRY_FIXED_BYTES = 93


# ─────────────────────────────────────────────────────────────────────────────
# ARC-4 Data Structures
# ─────────────────────────────────────────────────────────────────────────────


class VerificationEntry(arc4.Struct):
    """
    ARC-4 encoded verification record, stored in a box keyed by its id.

    Field encoding:
        fingerprint → arc4.DynamicBytes (2-byte length prefix + 32-byte digest)
        metadata    → arc4.String       (canonical JSON, 2-byte length prefix)
        creator     → arc4.Address      (fixed 32 bytes)
        timestamp   → arc4.UInt64       (Unix seconds of the confirming block)
        verified    → arc4.Bool         (cleared when the creator revokes)
    """

    fingerprint: arc4.DynamicBytes
    metadata: arc4.String
    creator: arc4.Address
    timestamp: arc4.UInt64
    verified: arc4.Bool


# ─────────────────────────────────────────────────────────────────────────────
# Main Contract
# ─────────────────────────────────────────────────────────────────────────────


class NewsRegistry(ARC4Contract):
    """
    NewsRegistry — append-only registry of verified news content.

    Submission flow:
      1. Reporter uploads content; the backend computes its SHA-256 fingerprint
      2. Backend builds canonical metadata JSON
      3. Reporter's wallet signs a payment for the entry's box storage and
         submit_verification() as one atomic group
      4. The entry is stored in box storage; the id is returned

    Verification flow:
      1. Reader asks for an id via get_verification() (read-only, simulated)
      2. Reader re-hashes their copy of the content
      3. A fingerprint mismatch means the content was altered

    Entries are never deleted. The only mutation after submission is the
    creator clearing the verified flag with revoke_verification().
    """

    total_verifications: UInt64

    def __init__(self) -> None:
        # BoxMap: arc4.UInt64 (verification id) → VerificationEntry
        # Box keys are: b"ver_" + 8-byte big-endian id
        self.entries = BoxMap(arc4.UInt64, VerificationEntry, key_prefix=b"ver_")
        self.total_verifications = UInt64(0)

    @abimethod()
    def submit_verification(
        self,
        fingerprint: arc4.DynamicBytes,
        metadata: arc4.String,
        pay_txn: gtxn.PaymentTransaction,
    ) -> arc4.UInt64:
        """
        Record a content fingerprint with its metadata.

        Args:
            fingerprint : 32-byte SHA-256 digest of the content
            metadata    : Canonical metadata JSON (1 to 900 bytes)
            pay_txn     : Payment to the contract covering the entry's box MBR

        Returns:
            The verification id assigned to this entry.

        Errors:
            • "Fingerprint must be 32 bytes"
            • "Metadata is required"
            • "Metadata exceeds 900 bytes"
            • "Payment must be directed to the NewsRegistry contract"
            • "Payment does not cover the entry's box storage"
        """
        assert fingerprint.length == FINGERPRINT_LENGTH, "Fingerprint must be 32 bytes"
        metadata_size = metadata.native.bytes.length
        assert metadata_size > 0, "Metadata is required"
        assert metadata_size <= MAX_METADATA_BYTES, "Metadata exceeds 900 bytes"

        # ── Each entry funds its own box storage ─────────────────────────────
        assert pay_txn.receiver == Global.current_application_address, (
            "Payment must be directed to the NewsRegistry contract"
        )
        storage_cost = UInt64(BOX_FLAT_MBR) + UInt64(BOX_BYTE_MBR) * (
            UInt64(ENTRY_FIXED_BYTES) + metadata_size
        )
        assert pay_txn.amount >= storage_cost, "Payment does not cover the entry's box storage"

        verification_id = self.total_verifications
        self.entries[arc4.UInt64(verification_id)] = VerificationEntry(
            fingerprint=fingerprint.copy(),
            metadata=metadata,
            creator=arc4.Address(Txn.sender),
            timestamp=arc4.UInt64(Global.latest_timestamp),
            verified=arc4.Bool(True),
        )
        self.total_verifications = verification_id + 1

        return arc4.UInt64(verification_id)

    @abimethod(readonly=True)
    def get_verification(
        self,
        verification_id: arc4.UInt64,
    ) -> tuple[arc4.Bool, VerificationEntry]:
        """
        Look up a verification by id.

        Returns:
            (found, entry):
                found=True  → entry holds the stored record
                found=False → unknown id; entry is an empty sentinel
        """
        if verification_id in self.entries:
            return arc4.Bool(True), self.entries[verification_id].copy()

        return arc4.Bool(False), VerificationEntry(
            fingerprint=arc4.DynamicBytes(),
            metadata=arc4.String(""),
            creator=arc4.Address(Global.zero_address),
            timestamp=arc4.UInt64(0),
            verified=arc4.Bool(False),
        )

    @abimethod()
    def revoke_verification(self, verification_id: arc4.UInt64) -> None:
        """
        Clear the verified flag of an entry. Only its creator may do this.

        Errors:
            • "Verification not found"
            • "Only the creator can revoke a verification"
        """
        assert verification_id in self.entries, "Verification not found"
        entry = self.entries[verification_id].copy()
        assert entry.creator == arc4.Address(Txn.sender), (
            "Only the creator can revoke a verification"
        )
        entry.verified = arc4.Bool(False)
        self.entries[verification_id] = entry.copy()
