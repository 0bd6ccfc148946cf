"""Exception types for the royalty engine.

Every rejection is terminal for the submitted operation: no partial state is
left behind and nothing is retried. `kind` is the stable, wire-visible name of
the failure (it is what `OperationResult.error_kind` carries).
"""

from __future__ import annotations


class RoyaltyError(Exception):
    """Base class for all engine rejections."""

    kind = "RoyaltyError"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.kind
        super().__init__(self.message)


class UnauthorizedError(RoyaltyError):
    kind = "Unauthorized"


class PolicyNotSetError(RoyaltyError):
    kind = "PolicyNotSet"


class PolicyAlreadySetError(RoyaltyError):
    kind = "PolicyAlreadySet"


class InvalidRateError(RoyaltyError):
    kind = "InvalidRate"


class OfferNotFoundError(RoyaltyError):
    kind = "OfferNotFound"


class InsufficientBalanceError(RoyaltyError):
    kind = "InsufficientBalance"


class MissingClawbackCapabilityError(RoyaltyError):
    kind = "MissingClawbackCapability"


class UnsafeAssetCapabilityError(RoyaltyError):
    kind = "UnsafeAssetCapability"


class InvalidBundleShapeError(RoyaltyError):
    kind = "InvalidBundleShape"


class RekeyNotAllowedError(RoyaltyError):
    kind = "RekeyNotAllowed"


class AmountExceedsOfferError(RoyaltyError):
    kind = "AmountExceedsOffer"


class RoyaltyRecipientMismatchError(RoyaltyError):
    kind = "RoyaltyRecipientMismatch"


class StaleOfferStateError(RoyaltyError):
    kind = "StaleOfferState"


class InvalidPaymentLegError(RoyaltyError):
    kind = "InvalidPaymentLeg"


class AmountOverflowError(RoyaltyError):
    kind = "AmountOverflow"


class UnknownAssetError(RoyaltyError):
    kind = "UnknownAsset"


class LedgerRejectedError(RoyaltyError):
    """Raised when the ledger refuses to finalize an atomic group."""

    kind = "LedgerRejected"


class AlreadyCreatedError(RoyaltyError):
    kind = "AlreadyCreated"


class NotCreatedError(RoyaltyError):
    kind = "NotCreated"


class InvalidSignatureError(RoyaltyError):
    kind = "InvalidSignature"


class MalformedOperationError(RoyaltyError):
    kind = "MalformedOperation"


class InvalidNonceError(RoyaltyError):
    """Envelope nonce is missing, replayed or skips ahead of the sender's sequence."""

    kind = "InvalidNonce"
