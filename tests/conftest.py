"""Shared test fixtures for the NewsProof backend test suite."""

import os
from unittest.mock import MagicMock

import pytest
from algosdk import account, mnemonic

# Keep tests independent of any local .env
os.environ.pop("SIGNER_MNEMONIC", None)
os.environ["NEWS_REGISTRY_APP_ID"] = "1234"

from algorand import LedgerClient, LedgerReceipt, OnChainVerification  # noqa: E402
from hashing import compute_fingerprint  # noqa: E402
from wallet import WalletSession, connect_wallet  # noqa: E402

SAMPLE_CONTENT = b"\x89PNG\r\n\x1a\n city council meeting photo bytes"
CONFIRMED_ROUND = 18945672
BLOCK_TS = 1_700_000_000


@pytest.fixture
def sample_content() -> bytes:
    return SAMPLE_CONTENT


@pytest.fixture
def signer_mnemonic() -> str:
    private_key, _ = account.generate_account()
    return mnemonic.from_private_key(private_key)


@pytest.fixture
def session(signer_mnemonic) -> WalletSession:
    """A connected wallet session backed by a throwaway account."""
    return connect_wallet(signer_mnemonic)


@pytest.fixture
def disconnected_session() -> WalletSession:
    return WalletSession.disconnected()


@pytest.fixture
def ledger():
    """LedgerClient stand-in that confirms every submission in CONFIRMED_ROUND."""
    mock = MagicMock(spec=LedgerClient)
    mock.app_id = 1234
    mock.submit.return_value = LedgerReceipt(
        tx_id="TXID" + "A" * 48,
        verification_id=7,
        confirmed_round=CONFIRMED_ROUND,
    )
    mock.block_timestamp_millis.return_value = BLOCK_TS * 1000
    return mock


@pytest.fixture
def on_chain_entry(session):
    """What the contract returns for a verification of SAMPLE_CONTENT."""
    payload = (
        '{"content_type":"image/png","creator_identity":"%s","location":"City Hall",'
        '"submitted_at_epoch_millis":1699999999000,"title":"City Council Meeting Coverage"}'
        % session.address
    )
    return OnChainVerification(
        verification_id=7,
        fingerprint=compute_fingerprint(SAMPLE_CONTENT).digest,
        metadata=payload,
        creator_address=session.address,
        timestamp=BLOCK_TS,
        verified=True,
    )
