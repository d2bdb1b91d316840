"""
NewsProof — Chain Submission Client
====================================
Drives one verification submission from request to on-chain record.

State machine:

    IDLE ──submit()──▶ SUBMITTING ──confirmed──▶ CONFIRMED
                           │
                           └──any failure──▶ FAILED ──submit()──▶ SUBMITTING

Nothing is retried automatically. A FAILED submission stays failed until the
caller calls submit() again.

A submission the ledger has accepted never goes to FAILED. If only the block
time lookup fails it stays SUBMITTING with its receipt, and submit() finishes
the confirmation without sending anything.
"""

import enum
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from algorand import LedgerClient, LedgerReceipt
from errors import InvalidState, LedgerUnavailable, SubmissionFailed
from hashing import ContentFingerprint, compute_fingerprint
from verification_request import (
    VerificationMetadata,
    VerificationRequest,
    build_verification_request,
)
from wallet import WalletSession

logger = logging.getLogger(__name__)


class SubmissionState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class VerificationRecord(BaseModel):
    """A verification the ledger has accepted. Never built from a failed submission."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    verification_id: int
    fingerprint: ContentFingerprint
    metadata: VerificationMetadata
    transaction_id: str
    ledger_block_number: int
    confirmed_at_epoch_millis: int

    def to_dict(self) -> dict:
        return {
            "verification_id": self.verification_id,
            "fingerprint": self.fingerprint.hex,
            "metadata": self.metadata.model_dump(),
            "transaction_id": self.transaction_id,
            "ledger_block_number": self.ledger_block_number,
            "confirmed_at_epoch_millis": self.confirmed_at_epoch_millis,
        }


class VerificationSubmission:
    """One verification workflow. Holds its own state; share nothing between instances."""

    def __init__(self, request: VerificationRequest, ledger: LedgerClient):
        self.request = request
        self.ledger = ledger
        self._state = SubmissionState.IDLE
        self._record: Optional[VerificationRecord] = None
        self._error: Optional[SubmissionFailed] = None
        self._receipt: Optional[LedgerReceipt] = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def record(self) -> Optional[VerificationRecord]:
        return self._record

    @property
    def receipt(self) -> Optional[LedgerReceipt]:
        return self._receipt

    @property
    def error(self) -> Optional[SubmissionFailed]:
        return self._error

    def submit(self, session: WalletSession) -> VerificationRecord:
        """
        Submit the request and block until the ledger confirms it.

        Once the ledger has accepted the request its receipt is kept. If the
        confirmation time cannot be read afterwards, calling submit() again
        only re-reads it and never writes a second entry.

        Raises:
            NotConnected      : No signing identity; no ledger call is made.
            InvalidState      : Already submitting or already confirmed.
            SubmissionFailed  : Signature rejected, network error or contract
                                revert. The submission moves to FAILED.
            LedgerUnavailable : The entry is on-chain but its block time could
                                not be read. The submission stays SUBMITTING.
        """
        session.require_signer()

        if self._receipt is not None and self._state is SubmissionState.SUBMITTING:
            return self._confirm(self._receipt)

        if self._state not in (SubmissionState.IDLE, SubmissionState.FAILED):
            raise InvalidState(f"Cannot submit a verification in state {self._state.value}")

        self._state = SubmissionState.SUBMITTING
        self._error = None
        fingerprint = self.request.fingerprint

        try:
            receipt = self.ledger.submit(session, fingerprint, self.request.payload)
        except Exception as e:
            self._state = SubmissionState.FAILED
            self._error = SubmissionFailed(f"Verification submission failed: {e}")
            logger.error(
                f"Verification submission failed: fingerprint={fingerprint.hex}: {e}",
                exc_info=True,
            )
            raise self._error from e

        self._receipt = receipt
        return self._confirm(receipt)

    def _confirm(self, receipt: LedgerReceipt) -> VerificationRecord:
        try:
            confirmed_at = self.ledger.block_timestamp_millis(receipt.confirmed_round)
        except Exception as e:
            logger.error(
                f"Verification {receipt.verification_id} confirmed in round "
                f"{receipt.confirmed_round} but its block time is unavailable: {e}",
                exc_info=True,
            )
            raise LedgerUnavailable(
                f"Verification {receipt.verification_id} was confirmed in round "
                f"{receipt.confirmed_round} (tx {receipt.tx_id}) but its block time "
                f"could not be read: {e}"
            ) from e

        fingerprint = self.request.fingerprint
        self._record = VerificationRecord(
            verification_id=receipt.verification_id,
            fingerprint=fingerprint,
            metadata=self.request.metadata,
            transaction_id=receipt.tx_id,
            ledger_block_number=receipt.confirmed_round,
            confirmed_at_epoch_millis=confirmed_at,
        )
        self._state = SubmissionState.CONFIRMED
        logger.info(
            f"Verification confirmed: id={receipt.verification_id} "
            f"fingerprint={fingerprint.hex} round={receipt.confirmed_round}"
        )
        return self._record


def submit_content(
    session: WalletSession,
    ledger: LedgerClient,
    content: bytes,
    title: str,
    content_type: str,
    location: Optional[str] = None,
) -> VerificationRecord:
    """
    Fingerprint raw content and register it on the ledger in one call.

    The wallet and the metadata are validated before any network interaction.

    Args:
        session      : Connected wallet session
        ledger       : LedgerClient for the deployed NewsRegistry
        content      : Raw content bytes
        title        : Required headline
        content_type : MIME type of the content
        location     : Optional capture location

    Returns:
        The confirmed VerificationRecord.
    """
    creator = session.require_address()
    request = build_verification_request(
        fingerprint=compute_fingerprint(content),
        title=title,
        content_type=content_type,
        creator_identity=creator,
        location=location,
    )
    return VerificationSubmission(request, ledger).submit(session)
