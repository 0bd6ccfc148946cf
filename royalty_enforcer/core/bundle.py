"""
Atomic bundle model.

A royalty-enforced purchase is submitted as exactly two legs: the buyer's
payment into the engine's custody and the call that asks the engine to release
the asset. Legs are tagged by `LegRole` and validated as a unit before any
transfer is issued.

`Transfer` is the ledger-level instruction the engine emits; a whole list of
them is applied all-or-nothing by the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, Tuple, Union

from ..state.accounts import NATIVE_ASSET, ZERO_ADDRESS, AssetId, Identity
from .errors import InvalidBundleShapeError

REQUIRED_BUNDLE_SIZE = 2


@unique
class LegRole(Enum):
    PAYMENT = "payment"
    ASSET_RELEASE = "asset_release"


@dataclass(frozen=True)
class Transfer:
    """
    Move `amount` units of `asset_id` from `sender` to `receiver`.

    - `revocation_target` set: clawback; units leave `revocation_target` and
      `sender` must hold the asset's clawback capability.
    - `close_to` set: after the move, the sender's remaining balance goes to
      `close_to` and the sender's holding is removed.
    - zero-amount self transfer of a non-native asset: opt-in.
    """

    sender: Identity
    receiver: Identity
    amount: int
    asset_id: AssetId = NATIVE_ASSET
    close_to: Identity = ZERO_ADDRESS
    revocation_target: Optional[Identity] = None

    @property
    def source(self) -> Identity:
        return self.revocation_target if self.revocation_target is not None else self.sender

    @property
    def is_opt_in(self) -> bool:
        return (
            self.asset_id != NATIVE_ASSET
            and self.amount == 0
            and self.sender == self.receiver
            and self.revocation_target is None
            and self.close_to == ZERO_ADDRESS
        )


@dataclass(frozen=True)
class CurrencyPayment:
    """Native-currency payment leg."""

    sender: Identity
    receiver: Identity
    amount: int
    rekey_to: Identity = ZERO_ADDRESS
    close_remainder_to: Identity = ZERO_ADDRESS

    role = LegRole.PAYMENT
    asset_id = NATIVE_ASSET

    @property
    def close_to(self) -> Identity:
        return self.close_remainder_to

    def to_transfer(self) -> Transfer:
        return Transfer(
            sender=self.sender,
            receiver=self.receiver,
            amount=self.amount,
            close_to=self.close_remainder_to,
        )


@dataclass(frozen=True)
class AssetPayment:
    """Payment leg denominated in a fungible payment asset."""

    sender: Identity
    receiver: Identity
    asset_id: AssetId
    amount: int
    rekey_to: Identity = ZERO_ADDRESS
    asset_close_to: Identity = ZERO_ADDRESS

    role = LegRole.PAYMENT

    @property
    def close_to(self) -> Identity:
        return self.asset_close_to

    def to_transfer(self) -> Transfer:
        return Transfer(
            sender=self.sender,
            receiver=self.receiver,
            amount=self.amount,
            asset_id=self.asset_id,
            close_to=self.asset_close_to,
        )


@dataclass(frozen=True)
class AssetRelease:
    """The call leg asking the engine to release the asset; `sender` is the effective caller."""

    sender: Identity

    role = LegRole.ASSET_RELEASE


PaymentLeg = Union[CurrencyPayment, AssetPayment]
Leg = Union[CurrencyPayment, AssetPayment, AssetRelease]


@dataclass(frozen=True)
class Bundle:
    legs: Tuple[Leg, ...]

    @classmethod
    def of(cls, payment: PaymentLeg, caller: Identity) -> "Bundle":
        return cls(legs=(payment, AssetRelease(sender=caller)))


def split_bundle(bundle: Bundle, caller: Identity) -> PaymentLeg:
    """
    Check the two-leg shape and return the payment leg.

    The bundle must hold exactly one payment leg followed by one release leg
    sent by `caller`.
    """
    legs = tuple(bundle.legs)
    if len(legs) != REQUIRED_BUNDLE_SIZE:
        raise InvalidBundleShapeError(f"bundle must contain exactly {REQUIRED_BUNDLE_SIZE} legs, got {len(legs)}")
    payment, release = legs
    if getattr(payment, "role", None) is not LegRole.PAYMENT:
        raise InvalidBundleShapeError("first leg must be the payment")
    if getattr(release, "role", None) is not LegRole.ASSET_RELEASE:
        raise InvalidBundleShapeError("second leg must be the asset release call")
    if release.sender != caller:
        raise InvalidBundleShapeError("release leg must be sent by the caller")
    return payment
