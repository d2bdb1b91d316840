"""Tests for the NewsRegistry ledger client, with algod and the composer mocked."""

import base64
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import algosdk
import pytest
from algosdk import transaction
from algosdk.atomic_transaction_composer import TransactionWithSigner

from algorand import (
    GET_METHOD,
    REVOKE_METHOD,
    SUBMIT_BOX_WINDOW,
    SUBMIT_METHOD,
    LedgerClient,
    LedgerReceipt,
    box_name,
    entry_storage_cost,
    get_app_id,
)
from errors import LedgerNotConfigured, NotConnected
from hashing import compute_fingerprint

APP_ID = 1234


@pytest.fixture
def algod_client():
    client = MagicMock()
    client.application_info.return_value = {
        "params": {
            "global-state": [
                {
                    "key": base64.b64encode(b"total_verifications").decode(),
                    "value": {"type": 2, "uint": 5},
                }
            ]
        }
    }
    client.block_info.return_value = {"block": {"ts": 1_700_000_000, "rnd": 100}}
    client.suggested_params.return_value = transaction.SuggestedParams(
        fee=1000,
        first=1,
        last=1001,
        gh="SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
        gen="testnet-v1.0",
        flat_fee=True,
        min_fee=1000,
    )
    return client


@pytest.fixture
def client(algod_client):
    return LedgerClient(algod_client, APP_ID, wait_rounds=4)


@pytest.fixture
def composer():
    with patch("algorand.AtomicTransactionComposer") as composer_cls:
        yield composer_cls.return_value


def test_method_signatures():
    assert SUBMIT_METHOD.get_signature() == "submit_verification(byte[],string,pay)uint64"
    assert GET_METHOD.get_signature() == (
        "get_verification(uint64)(bool,(byte[],string,address,uint64,bool))"
    )
    assert REVOKE_METHOD.get_signature() == "revoke_verification(uint64)void"


def test_box_name():
    assert box_name(5) == b"ver_" + b"\x00" * 7 + b"\x05"


class TestConfiguration:
    def test_app_id_unset(self, monkeypatch):
        monkeypatch.delenv("NEWS_REGISTRY_APP_ID", raising=False)
        with pytest.raises(LedgerNotConfigured):
            get_app_id()

    def test_app_id_not_integer(self, monkeypatch):
        monkeypatch.setenv("NEWS_REGISTRY_APP_ID", "abc")
        with pytest.raises(LedgerNotConfigured):
            get_app_id()

    def test_app_id(self, monkeypatch):
        monkeypatch.setenv("NEWS_REGISTRY_APP_ID", "755806101")
        assert get_app_id() == 755806101


class TestSubmit:
    def test_submits_and_waits_for_confirmation(self, client, algod_client, composer, session, sample_content):
        composer.execute.return_value = SimpleNamespace(
            abi_results=[SimpleNamespace(return_value=5)],
            tx_ids=["PAY1", "TX1"],
            confirmed_round=100,
        )
        fingerprint = compute_fingerprint(sample_content)

        receipt = client.submit(session, fingerprint, '{"title":"x"}')

        assert receipt == LedgerReceipt(tx_id="TX1", verification_id=5, confirmed_round=100)
        kwargs = composer.add_method_call.call_args.kwargs
        assert kwargs["app_id"] == APP_ID
        assert kwargs["method"] is SUBMIT_METHOD
        assert kwargs["sender"] == session.address
        assert kwargs["method_args"][:2] == [fingerprint.digest, '{"title":"x"}']
        payment = kwargs["method_args"][2]
        assert isinstance(payment, TransactionWithSigner)
        assert payment.txn.receiver == client.app_address
        assert payment.txn.amt == entry_storage_cost('{"title":"x"}')
        assert payment.txn.sender == session.address
        assert kwargs["boxes"] == [(0, box_name(5 + i)) for i in range(SUBMIT_BOX_WINDOW)]
        composer.execute.assert_called_once_with(algod_client, wait_rounds=4)

    def test_requires_connected_session(self, client, composer, disconnected_session, sample_content):
        with pytest.raises(NotConnected):
            client.submit(disconnected_session, compute_fingerprint(sample_content), "{}")
        composer.execute.assert_not_called()

    def test_next_id_defaults_to_zero(self, client, algod_client):
        algod_client.application_info.return_value = {"params": {}}
        assert client.next_verification_id() == 0


class TestRead:
    def test_found(self, client, composer, session, sample_content):
        digest = compute_fingerprint(sample_content).digest
        composer.simulate.return_value = SimpleNamespace(
            abi_results=[
                SimpleNamespace(
                    return_value=[True, [list(digest), '{"title":"x"}', session.address, 1_700_000_000, True]]
                )
            ]
        )

        record = client.read(7)

        assert record.verification_id == 7
        assert record.fingerprint == digest
        assert record.metadata == '{"title":"x"}'
        assert record.creator_address == session.address
        assert record.timestamp == 1_700_000_000
        assert record.verified is True
        kwargs = composer.add_method_call.call_args.kwargs
        assert kwargs["method"] is GET_METHOD
        assert kwargs["sender"] == algosdk.logic.get_application_address(APP_ID)
        assert kwargs["boxes"] == [(0, box_name(7))]
        composer.execute.assert_not_called()

    def test_not_found(self, client, composer):
        composer.simulate.return_value = SimpleNamespace(
            abi_results=[SimpleNamespace(return_value=[False, [[], "", "A" * 58, 0, False]])]
        )
        assert client.read(99) is None


class TestRevoke:
    def test_revoke(self, client, composer, session):
        composer.execute.return_value = SimpleNamespace(
            abi_results=[], tx_ids=["TXR"], confirmed_round=101
        )
        assert client.revoke(session, 7) == "TXR"
        kwargs = composer.add_method_call.call_args.kwargs
        assert kwargs["method"] is REVOKE_METHOD
        assert kwargs["method_args"] == [7]


def test_block_timestamp_millis(client):
    assert client.block_timestamp_millis(100) == 1_700_000_000_000


def test_entry_storage_cost():
    # 2500 + 400 * (12-byte key + 81 bytes of struct + metadata)
    assert entry_storage_cost("") == 2_500 + 400 * 93
    assert entry_storage_cost("é") == 2_500 + 400 * 95
    assert entry_storage_cost("x" * 900) == 399_700


class TestListVerificationIds:
    def test_lists_entry_boxes_in_order(self, client, algod_client):
        algod_client.application_boxes.return_value = {
            "boxes": [
                {"name": base64.b64encode(box_name(3)).decode()},
                {"name": base64.b64encode(box_name(0)).decode()},
                {"name": base64.b64encode(b"unrelated").decode()},
            ]
        }
        assert client.list_verification_ids() == [0, 3]
        algod_client.application_boxes.assert_called_once_with(APP_ID)

    def test_empty_registry(self, client, algod_client):
        algod_client.application_boxes.return_value = {"boxes": []}
        assert client.list_verification_ids() == []
