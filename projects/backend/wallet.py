"""
NewsProof — Signing identity
=============================
A WalletSession is the explicit session context handed to every ledger write.
There is no module-level "current wallet": callers connect a session, pass it
down, and disconnect it when done.
"""

import logging
import os
from typing import Optional

import algosdk
from algosdk import error as algo_error
from algosdk import mnemonic as mn
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    TransactionSigner,
)

from errors import InvalidInput, NotConnected

logger = logging.getLogger(__name__)


class WalletSession:
    """Connected (or disconnected) signing identity for one caller."""

    def __init__(self, address: Optional[str] = None, signer: Optional[TransactionSigner] = None):
        if (address is None) != (signer is None):
            raise InvalidInput("A wallet session needs both an address and a signer")
        self._address = address
        self._signer = signer

    @classmethod
    def disconnected(cls) -> "WalletSession":
        return cls()

    @classmethod
    def from_environment(cls) -> "WalletSession":
        """Connect using SIGNER_MNEMONIC, or return a disconnected session if unset."""
        phrase = os.getenv("SIGNER_MNEMONIC", "")
        if not phrase:
            logger.info("SIGNER_MNEMONIC not set; wallet session is disconnected")
            return cls.disconnected()
        return connect_wallet(phrase)

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def is_connected(self) -> bool:
        return self._signer is not None

    def require_signer(self) -> TransactionSigner:
        if self._signer is None:
            raise NotConnected("Wallet not connected")
        return self._signer

    def require_address(self) -> str:
        self.require_signer()
        return self._address

    def disconnect(self) -> None:
        if self._address:
            logger.info(f"Wallet disconnected: {self._address}")
        self._address = None
        self._signer = None

    def __repr__(self) -> str:
        state = self._address if self.is_connected else "disconnected"
        return f"WalletSession({state})"


def connect_wallet(mnemonic_phrase: str) -> WalletSession:
    """
    Build a connected session from a 25-word Algorand mnemonic.

    Raises:
        InvalidInput: If the mnemonic is malformed.
    """
    try:
        private_key = mn.to_private_key(mnemonic_phrase.strip())
    except (
        algo_error.WrongChecksumError,
        algo_error.WrongMnemonicLengthError,
        ValueError,
        KeyError,
    ) as e:
        raise InvalidInput(f"Invalid wallet mnemonic: {e}") from e

    address = algosdk.account.address_from_private_key(private_key)
    logger.info(f"Wallet connected: {address}")
    return WalletSession(address, AccountTransactionSigner(private_key))
