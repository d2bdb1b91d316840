"""
NewsProof — Error taxonomy
===========================
Every failure in the verification workflow is raised to the caller as one of
these. Nothing is retried automatically: a failed submission has to be
re-initiated explicitly.
"""


class VerificationError(Exception):
    """Base class for all NewsProof verification errors."""


class NotConnected(VerificationError):
    """No signing identity (wallet) is available for this session."""


class InvalidInput(VerificationError, ValueError):
    """A request is missing required metadata or carries malformed values."""


class SubmissionFailed(VerificationError):
    """The ledger or network rejected the verification transaction."""


class NotFound(VerificationError):
    """The verification identifier is unknown to the registry contract."""


class ContentUnreadable(VerificationError, OSError):
    """The content source could not be read."""


class FingerprintMismatch(VerificationError):
    """Content bytes do not hash to the fingerprint recorded on-chain."""


class InvalidState(VerificationError):
    """A submission was driven from a state that does not allow it."""


class LedgerNotConfigured(VerificationError):
    """The registry App ID (or another ledger setting) is missing."""


class LedgerUnavailable(VerificationError):
    """A read against the ledger failed (network error, node rejection)."""
