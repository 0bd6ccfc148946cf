"""
Transfer authorization state machine.

`plan_transfer_with_currency` / `plan_transfer_with_asset` validate a two-leg
bundle against the policy and the owner's offer, in a fixed order where the
first failing check decides the rejection:

1. policy set                                   (PolicyNotSet)
2. offer exists for (owner, asset)              (OfferNotFound)
3. bundle is exactly [payment, release]         (InvalidBundleShape)
4. caller is the offer's counterparty           (Unauthorized)
5. payment leg carries no rekey                 (RekeyNotAllowed)
6. requested amount within the offer            (AmountExceedsOffer)
7. royalty recipient claim matches policy       (RoyaltyRecipientMismatch)
8. expected offer amount matches live offer     (StaleOfferState)
9. payment leg: medium, sender, receiver, close (InvalidPaymentLeg)
10. split the payment                           (AmountOverflow)

The result is a `TransferPlan`: the ordered ledger transfers plus the post
state with the offer decremented. Nothing is applied here; the shell hands the
transfers to the ledger as one atomic group and adopts `state` only if the
ledger accepted all of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Optional, Tuple

from ..state.accounts import NATIVE_ASSET, AssetId, Identity, is_zero
from ..state.engine_state import EngineState, Offer
from .bundle import AssetPayment, Bundle, CurrencyPayment, PaymentLeg, Transfer, split_bundle
from .errors import (
    AmountExceedsOfferError,
    InvalidPaymentLegError,
    RekeyNotAllowedError,
    RoyaltyRecipientMismatchError,
    StaleOfferStateError,
    UnauthorizedError,
)
from .offers import require_amount, require_offer
from .policy import require_policy
from .split import PaymentSplit, compute_split


@unique
class Event(Enum):
    TRANSFER_WITH_CURRENCY = "TransferWithCurrency"
    TRANSFER_WITH_ASSET = "TransferWithAsset"
    ROYALTY_FREE_MOVE = "RoyaltyFreeMove"


@dataclass(frozen=True)
class TransferRequest:
    """Call arguments of a transfer; the payment travels in the bundle."""

    asset_id: AssetId
    requested_amount: int
    owner: Identity
    recipient: Identity
    royalty_recipient_claim: Identity
    expected_available_amount: int
    payment_asset: Optional[AssetId] = None


@dataclass(frozen=True)
class TransferPlan:
    event: Event
    state: EngineState
    transfers: Tuple[Transfer, ...]
    split: Optional[PaymentSplit] = None
    offer_before: Optional[Offer] = None
    offer_after: Optional[Offer] = None


def _validate_common(
    state: EngineState,
    caller: Identity,
    request: TransferRequest,
    bundle: Bundle,
) -> Tuple[Offer, PaymentLeg]:
    policy = require_policy(state)
    offer = require_offer(state, request.owner, request.asset_id)
    payment = split_bundle(bundle, caller)

    if caller != offer.authorized_counterparty:
        raise UnauthorizedError("only the offer's authorized counterparty may transfer")
    if not is_zero(payment.rekey_to):
        raise RekeyNotAllowedError("payment leg must not rekey the payer")

    require_amount(request.requested_amount, name="requested_amount")
    if request.requested_amount > offer.available_amount:
        raise AmountExceedsOfferError(
            f"requested {request.requested_amount} exceeds offered {offer.available_amount}"
        )
    if request.royalty_recipient_claim != policy.royalty_recipient:
        raise RoyaltyRecipientMismatchError("royalty recipient does not match policy")
    if request.expected_available_amount != offer.available_amount:
        raise StaleOfferStateError(
            f"expected offer amount {request.expected_available_amount}, live is {offer.available_amount}"
        )
    return offer, payment


def _validate_payment_leg(
    payment: PaymentLeg,
    offer: Offer,
    *,
    system: Identity,
    medium: Optional[AssetId],
    asset_payment: bool,
) -> AssetId:
    """Check the payment leg against the expected medium; returns the medium."""
    if not asset_payment:
        medium = NATIVE_ASSET
        if not isinstance(payment, CurrencyPayment):
            raise InvalidPaymentLegError("expected a native currency payment")
    else:
        if medium is None or medium == NATIVE_ASSET:
            raise InvalidPaymentLegError("transfer_with_asset requires a non-native payment_asset")
        if not isinstance(payment, AssetPayment):
            raise InvalidPaymentLegError("expected an asset payment")
        if payment.asset_id != medium:
            raise InvalidPaymentLegError(f"payment must be in asset {medium}, got {payment.asset_id}")
    if payment.sender != offer.authorized_counterparty:
        raise InvalidPaymentLegError("payment must come from the authorized counterparty")
    if payment.receiver != system:
        raise InvalidPaymentLegError("payment must be made to the engine's custody address")
    if not is_zero(payment.close_to):
        raise InvalidPaymentLegError("payment must not close out the payer")
    return medium


def _plan(
    event: Event,
    state: EngineState,
    caller: Identity,
    request: TransferRequest,
    bundle: Bundle,
    *,
    system: Identity,
    asset_payment: bool,
) -> TransferPlan:
    offer, payment = _validate_common(state, caller, request, bundle)
    medium = _validate_payment_leg(
        payment, offer, system=system, medium=request.payment_asset, asset_payment=asset_payment,
    )
    policy = require_policy(state)
    split = compute_split(payment.amount, policy.royalty_basis)

    transfers = [
        payment.to_transfer(),
        Transfer(sender=system, receiver=request.owner, amount=split.owner_share, asset_id=medium),
    ]
    if split.royalty_share > 0:
        transfers.append(
            Transfer(sender=system, receiver=policy.royalty_recipient, amount=split.royalty_share, asset_id=medium)
        )
    transfers.append(
        Transfer(
            sender=system,
            receiver=request.recipient,
            amount=request.requested_amount,
            asset_id=request.asset_id,
            revocation_target=request.owner,
        )
    )

    remaining = Offer(
        authorized_counterparty=offer.authorized_counterparty,
        available_amount=offer.available_amount - request.requested_amount,
    )
    return TransferPlan(
        event=event,
        state=state.with_offer(request.owner, request.asset_id, remaining),
        transfers=tuple(transfers),
        split=split,
        offer_before=offer,
        offer_after=remaining,
    )


def plan_transfer_with_currency(
    state: EngineState,
    caller: Identity,
    request: TransferRequest,
    bundle: Bundle,
    *,
    system: Identity,
) -> TransferPlan:
    return _plan(
        Event.TRANSFER_WITH_CURRENCY, state, caller, request, bundle,
        system=system, asset_payment=False,
    )


def plan_transfer_with_asset(
    state: EngineState,
    caller: Identity,
    request: TransferRequest,
    bundle: Bundle,
    *,
    system: Identity,
) -> TransferPlan:
    return _plan(
        Event.TRANSFER_WITH_ASSET, state, caller, request, bundle,
        system=system, asset_payment=True,
    )


def plan_royalty_free_move(
    state: EngineState,
    caller: Identity,
    *,
    asset_id: AssetId,
    amount: int,
    owner: Identity,
    expected_available_amount: int,
) -> TransferPlan:
    """
    Authorize a move whose royalty was settled elsewhere.

    Only checks the offer: it must exist, match `expected_available_amount`,
    cover `amount`, and name `caller`. No payment, no asset movement, and the
    offer amount is left as is.
    """
    offer = require_offer(state, owner, asset_id)
    require_amount(amount, name="amount")
    if offer.available_amount != expected_available_amount:
        raise StaleOfferStateError(
            f"expected offer amount {expected_available_amount}, live is {offer.available_amount}"
        )
    if amount > offer.available_amount:
        raise AmountExceedsOfferError(f"requested {amount} exceeds offered {offer.available_amount}")
    if caller != offer.authorized_counterparty:
        raise UnauthorizedError("only the offer's authorized counterparty may move")
    return TransferPlan(
        event=Event.ROYALTY_FREE_MOVE,
        state=state,
        transfers=(),
        offer_before=offer,
        offer_after=offer,
    )
