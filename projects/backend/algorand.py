"""
NewsProof — Algorand Ledger Module
===================================
All NewsRegistry contract calls, built with algosdk's AtomicTransactionComposer.

ABI method signatures (from the NewsRegistry contract definition):
  submit_verification(byte[],string,pay)uint64
  get_verification(uint64)(bool,(byte[],string,address,uint64,bool))
  revoke_verification(uint64)void

VerificationEntry struct ABI type: (byte[],string,address,uint64,bool)
  Index 0: fingerprint  (byte[] → 32-byte SHA-256 digest)
  Index 1: metadata     (string, canonical JSON)
  Index 2: creator      (address)
  Index 3: timestamp    (uint64, Unix seconds of the confirming block)
  Index 4: verified     (bool, cleared when the creator revokes)

Box references:
  Entries live in boxes named b"ver_" + uint64 id. The id of a new submission
  is the contract's total_verifications counter at execution time, so the
  composer references a small window of ids starting from the counter value
  read just before submission.

Storage payment:
  Every submission is an atomic group of [0] a payment to the application
  account covering the new box MBR and [1] the submit_verification call.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import Optional

import algosdk
from algosdk import abi
from algosdk.atomic_transaction_composer import (
    AtomicTransactionComposer,
    EmptySigner,
    TransactionWithSigner,
)
from algosdk.transaction import PaymentTxn
from algosdk.v2client import algod
from algosdk.v2client.models import SimulateRequest

from errors import LedgerNotConfigured
from hashing import ContentFingerprint
from wallet import WalletSession

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# ABI Method Definitions
# ─────────────────────────────────────────────────────────────────────────────

VERIFICATION_ENTRY_TYPE = "(byte[],string,address,uint64,bool)"

SUBMIT_METHOD = abi.Method.from_signature("submit_verification(byte[],string,pay)uint64")

GET_METHOD = abi.Method.from_signature(
    f"get_verification(uint64)(bool,{VERIFICATION_ENTRY_TYPE})"
)

REVOKE_METHOD = abi.Method.from_signature("revoke_verification(uint64)void")

BOX_PREFIX = b"ver_"
COUNTER_KEY = b"total_verifications"

# Ids referenced per submission; covers this many concurrent submitters racing
# for the same counter value.
SUBMIT_BOX_WINDOW = 4

# Largest id the contract can hand out (arc4.UInt64)
MAX_VERIFICATION_ID = 2**64 - 1

# Box MBR in microAlgos, mirroring the NewsRegistry contract: 2500 per box plus
# 400 per byte of the 12-byte key, 81 bytes of struct encoding and the metadata.
BOX_FLAT_MBR = 2_500
BOX_BYTE_MBR = 400
ENTRY_FIXED_BYTES = 93


def box_name(verification_id: int) -> bytes:
    """Box key the contract's BoxMap uses for a given verification id."""
    return BOX_PREFIX + verification_id.to_bytes(8, "big")


def entry_storage_cost(payload: str) -> int:
    """Payment, in microAlgos, that funds the box of an entry with this metadata."""
    return BOX_FLAT_MBR + BOX_BYTE_MBR * (ENTRY_FIXED_BYTES + len(payload.encode("utf-8")))


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────


def get_algod_client() -> algod.AlgodClient:
    """Create and return an AlgodClient connected to the configured network."""
    server = os.getenv("ALGORAND_ALGOD_SERVER", "https://testnet-api.algonode.cloud")
    port = os.getenv("ALGORAND_ALGOD_PORT", "")
    token = os.getenv(
        "ALGORAND_ALGOD_TOKEN",
        "a" * 64,  # AlgoNode public endpoint accepts any token
    )
    url = f"{server}:{port}" if port else server
    return algod.AlgodClient(token, url)


def get_app_id() -> int:
    """Load the deployed NewsRegistry App ID from environment."""
    app_id_str = os.getenv("NEWS_REGISTRY_APP_ID", "0")
    try:
        app_id = int(app_id_str)
    except ValueError as e:
        raise LedgerNotConfigured(f"NEWS_REGISTRY_APP_ID is not an integer: {app_id_str!r}") from e
    if app_id == 0:
        raise LedgerNotConfigured(
            "NEWS_REGISTRY_APP_ID is not set. Deploy the contract first with: "
            "algokit project deploy testnet"
        )
    return app_id


def get_wait_rounds() -> int:
    return int(os.getenv("CONFIRMATION_WAIT_ROUNDS", "4"))


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LedgerReceipt:
    tx_id: str
    verification_id: int
    confirmed_round: int


@dataclass(frozen=True)
class OnChainVerification:
    verification_id: int
    fingerprint: bytes
    metadata: str
    creator_address: str
    timestamp: int
    verified: bool


# ─────────────────────────────────────────────────────────────────────────────
# Ledger client
# ─────────────────────────────────────────────────────────────────────────────


class LedgerClient:
    """Thin wrapper over one deployed NewsRegistry application."""

    def __init__(self, algod_client: algod.AlgodClient, app_id: int, wait_rounds: int = 4):
        self.algod_client = algod_client
        self.app_id = app_id
        self.wait_rounds = wait_rounds

    @classmethod
    def from_environment(cls) -> "LedgerClient":
        return cls(get_algod_client(), get_app_id(), get_wait_rounds())

    @property
    def app_address(self) -> str:
        """Deterministic contract escrow address for the App ID."""
        return algosdk.logic.get_application_address(self.app_id)

    def next_verification_id(self) -> int:
        """Current value of the contract's total_verifications counter."""
        info = self.algod_client.application_info(self.app_id)
        for item in info.get("params", {}).get("global-state", []):
            if base64.b64decode(item["key"]) == COUNTER_KEY:
                return int(item["value"].get("uint", 0))
        return 0

    def list_verification_ids(self) -> list[int]:
        """Ids of every entry box the application holds, in ascending order."""
        response = self.algod_client.application_boxes(self.app_id)
        ids = []
        for box in response.get("boxes", []):
            name = base64.b64decode(box["name"])
            if name.startswith(BOX_PREFIX) and len(name) == len(BOX_PREFIX) + 8:
                ids.append(int.from_bytes(name[len(BOX_PREFIX):], "big"))
        logger.info(f"Found {len(ids)} verification box(es) in app {self.app_id}")
        return sorted(ids)

    def submit(
        self,
        session: WalletSession,
        fingerprint: ContentFingerprint,
        payload: str,
    ) -> LedgerReceipt:
        """
        Sign the storage payment and submit_verification() as one group and
        wait for it to be confirmed in a block.

        Args:
            session     : Connected wallet session that signs the call
            fingerprint : Content fingerprint (32 bytes)
            payload     : Canonical metadata JSON

        Returns:
            LedgerReceipt with the method-call tx id, the id assigned by the
            contract and the confirmed round.

        Raises:
            NotConnected: If the session has no signer.
            Any algosdk error raised while building, signing or confirming.
        """
        signer = session.require_signer()
        sender = session.require_address()

        first_id = self.next_verification_id()
        boxes = [(0, box_name(first_id + i)) for i in range(SUBMIT_BOX_WINDOW)]

        sp = self.algod_client.suggested_params()

        # Payment covering the new entry's box MBR
        pay_txn = PaymentTxn(
            sender=sender,
            sp=sp,
            receiver=self.app_address,
            amt=entry_storage_cost(payload),
        )

        atc = AtomicTransactionComposer()
        atc.add_method_call(
            app_id=self.app_id,
            method=SUBMIT_METHOD,
            sender=sender,
            sp=sp,
            signer=signer,
            method_args=[
                fingerprint.digest,
                payload,
                TransactionWithSigner(pay_txn, signer),
            ],
            boxes=boxes,
        )

        result = atc.execute(self.algod_client, wait_rounds=self.wait_rounds)
        verification_id = int(result.abi_results[0].return_value)
        tx_id = result.tx_ids[1]  # Method call txn ID (index 1, after the pay txn)

        logger.info(
            f"Submitted verification on-chain: id={verification_id} "
            f"fingerprint={fingerprint.hex} tx={tx_id} round={result.confirmed_round}"
        )
        return LedgerReceipt(
            tx_id=tx_id,
            verification_id=verification_id,
            confirmed_round=int(result.confirmed_round),
        )

    def read(self, verification_id: int, sender: Optional[str] = None) -> Optional[OnChainVerification]:
        """
        Look up a verification by id via the algod simulate endpoint
        (get_verification is readonly: no fees, no state change, no signature).

        Args:
            verification_id : Identifier returned at submission time
            sender          : Account the simulated call is sent from; defaults
                              to the funded application account

        Returns:
            OnChainVerification, or None if the contract does not know the id.
        """
        sp = self.algod_client.suggested_params()
        sp.flat_fee = True
        sp.fee = 1000

        atc = AtomicTransactionComposer()
        atc.add_method_call(
            app_id=self.app_id,
            method=GET_METHOD,
            sender=sender or self.app_address,
            sp=sp,
            signer=EmptySigner(),
            method_args=[verification_id],
            boxes=[(0, box_name(verification_id))],
        )

        simulate_result = atc.simulate(
            self.algod_client,
            SimulateRequest(txn_groups=[], allow_empty_signatures=True),
        )
        found, entry = simulate_result.abi_results[0].return_value

        if not found:
            logger.info(f"Verification lookup: id={verification_id} found=False")
            return None

        record = OnChainVerification(
            verification_id=verification_id,
            fingerprint=bytes(entry[0]),
            metadata=str(entry[1]),
            creator_address=str(entry[2]),
            timestamp=int(entry[3]),
            verified=bool(entry[4]),
        )
        logger.info(
            f"Verification lookup: id={verification_id} found=True "
            f"creator={record.creator_address} verified={record.verified}"
        )
        return record

    def revoke(self, session: WalletSession, verification_id: int) -> str:
        """Clear the verified flag of an entry the session's wallet created."""
        signer = session.require_signer()
        sender = session.require_address()

        atc = AtomicTransactionComposer()
        atc.add_method_call(
            app_id=self.app_id,
            method=REVOKE_METHOD,
            sender=sender,
            sp=self.algod_client.suggested_params(),
            signer=signer,
            method_args=[verification_id],
            boxes=[(0, box_name(verification_id))],
        )

        result = atc.execute(self.algod_client, wait_rounds=self.wait_rounds)
        tx_id = result.tx_ids[0]
        logger.info(f"Revoked verification: id={verification_id} tx={tx_id}")
        return tx_id

    def block_timestamp_millis(self, round_number: int) -> int:
        """Timestamp of a confirmed block, in epoch milliseconds."""
        block = self.algod_client.block_info(round_number)
        return int(block["block"]["ts"]) * 1000
