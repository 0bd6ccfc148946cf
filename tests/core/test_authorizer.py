"""Tests for royalty_enforcer/core/authorizer.py: ordered transfer checks and plans."""

from __future__ import annotations

from dataclasses import replace

import pytest
import hypothesis.strategies as st
from hypothesis import given

from royalty_enforcer.core.authorizer import (
    Event,
    TransferRequest,
    plan_royalty_free_move,
    plan_transfer_with_asset,
    plan_transfer_with_currency,
)
from royalty_enforcer.core.bundle import AssetPayment, AssetRelease, Bundle, CurrencyPayment
from royalty_enforcer.core.errors import (
    AmountExceedsOfferError,
    AmountOverflowError,
    InvalidBundleShapeError,
    InvalidPaymentLegError,
    OfferNotFoundError,
    PolicyNotSetError,
    RekeyNotAllowedError,
    RoyaltyRecipientMismatchError,
    StaleOfferStateError,
    UnauthorizedError,
)
from royalty_enforcer.state.accounts import MAX_UINT64, NATIVE_ASSET
from royalty_enforcer.state.engine_state import EngineState, Offer, Policy

APP = "APP"
OWNER = "OWNER"
BUYER = "BUYER"
ROYALTY = "ROYALTY"
NFT = 1000
USDC = 2000


def _state(available: int = 1) -> EngineState:
    return EngineState(
        administrator="ADMIN",
        policy=Policy(royalty_basis=500, royalty_recipient=ROYALTY),
        offers={(OWNER, NFT): Offer(authorized_counterparty=BUYER, available_amount=available)},
    )


def _request(**overrides) -> TransferRequest:
    base = TransferRequest(
        asset_id=NFT,
        requested_amount=1,
        owner=OWNER,
        recipient=BUYER,
        royalty_recipient_claim=ROYALTY,
        expected_available_amount=1,
    )
    return replace(base, **overrides)


def _bundle(amount: int = 1_000_000, **overrides) -> Bundle:
    payment = CurrencyPayment(sender=BUYER, receiver=APP, amount=amount)
    return Bundle.of(replace(payment, **overrides), BUYER)


def _plan(state=None, caller=BUYER, request=None, bundle=None):
    return plan_transfer_with_currency(
        state if state is not None else _state(),
        caller,
        request if request is not None else _request(),
        bundle if bundle is not None else _bundle(),
        system=APP,
    )


class TestCurrencyTransferPlan:
    def test_reference_scenario(self):
        plan = _plan()
        assert plan.event is Event.TRANSFER_WITH_CURRENCY
        assert plan.split.owner_share == 950_000
        assert plan.split.royalty_share == 50_000
        assert plan.state.get_offer(OWNER, NFT).available_amount == 0

        inbound, to_owner, to_royalty, release = plan.transfers
        assert (inbound.sender, inbound.receiver, inbound.amount) == (BUYER, APP, 1_000_000)
        assert (to_owner.sender, to_owner.receiver, to_owner.amount) == (APP, OWNER, 950_000)
        assert (to_royalty.receiver, to_royalty.amount) == (ROYALTY, 50_000)
        assert release.asset_id == NFT
        assert release.revocation_target == OWNER
        assert release.receiver == BUYER
        assert release.amount == 1

    def test_zero_royalty_share_skips_royalty_transfer(self):
        plan = _plan(bundle=_bundle(amount=19))  # 19 * 500 / 10000 < 1
        assert plan.split.royalty_share == 0
        assert [t.receiver for t in plan.transfers] == [APP, OWNER, BUYER]

    def test_input_state_not_mutated(self):
        s = _state()
        _plan(state=s)
        assert s.get_offer(OWNER, NFT).available_amount == 1

    @given(n=st.integers(min_value=0, max_value=1_000), k=st.integers(min_value=0, max_value=1_000))
    def test_offer_decrements_by_requested(self, n, k):
        other = Offer(authorized_counterparty="X", available_amount=5)
        s = EngineState(
            administrator="ADMIN",
            policy=Policy(royalty_basis=500, royalty_recipient=ROYALTY),
            offers={(OWNER, NFT): Offer(BUYER, n), ("OTHER", NFT): other},
        )
        req = _request(requested_amount=k, expected_available_amount=n)
        if k > n:
            with pytest.raises(AmountExceedsOfferError):
                _plan(state=s, request=req)
            return
        plan = _plan(state=s, request=req)
        assert plan.state.get_offer(OWNER, NFT).available_amount == n - k
        assert plan.state.get_offer("OTHER", NFT) == other


class TestCheckOrder:
    def test_policy_first(self):
        s = EngineState(administrator="ADMIN")
        with pytest.raises(PolicyNotSetError):
            _plan(state=s, caller="MALLORY", bundle=Bundle(legs=()))

    def test_offer_missing(self):
        with pytest.raises(OfferNotFoundError):
            _plan(request=_request(owner="NOBODY"), bundle=Bundle(legs=()))

    @pytest.mark.parametrize(
        "legs",
        [
            (),
            (CurrencyPayment(sender=BUYER, receiver=APP, amount=1),),
            (
                CurrencyPayment(sender=BUYER, receiver=APP, amount=1),
                AssetRelease(sender=BUYER),
                CurrencyPayment(sender=BUYER, receiver=APP, amount=1),
            ),
            (AssetRelease(sender=BUYER), CurrencyPayment(sender=BUYER, receiver=APP, amount=1)),
            (AssetRelease(sender=BUYER), AssetRelease(sender=BUYER)),
            (CurrencyPayment(sender=BUYER, receiver=APP, amount=1), AssetRelease(sender="MALLORY")),
        ],
    )
    def test_bundle_shape(self, legs):
        with pytest.raises(InvalidBundleShapeError):
            _plan(bundle=Bundle(legs=legs), caller="MALLORY" if not legs else BUYER)

    @pytest.mark.parametrize("requested", [0, 1, 5, MAX_UINT64])
    def test_wrong_caller_always_unauthorized(self, requested):
        bundle = Bundle.of(CurrencyPayment(sender="MALLORY", receiver=APP, amount=1), "MALLORY")
        with pytest.raises(UnauthorizedError):
            _plan(caller="MALLORY", request=_request(requested_amount=requested), bundle=bundle)

    def test_rekey_rejected(self):
        with pytest.raises(RekeyNotAllowedError):
            _plan(bundle=_bundle(rekey_to="ATTACKER"))

    def test_rekey_checked_before_amount(self):
        with pytest.raises(RekeyNotAllowedError):
            _plan(request=_request(requested_amount=2), bundle=_bundle(rekey_to="ATTACKER"))

    def test_amount_exceeds_offer(self):
        with pytest.raises(AmountExceedsOfferError):
            _plan(request=_request(requested_amount=2))

    def test_recipient_claim_mismatch(self):
        with pytest.raises(RoyaltyRecipientMismatchError):
            _plan(request=_request(royalty_recipient_claim="FORGED"))

    @pytest.mark.parametrize("expected", [0, 2, 100])
    def test_stale_expected_amount(self, expected):
        with pytest.raises(StaleOfferStateError):
            _plan(request=_request(expected_available_amount=expected))

    def test_stale_after_partial_consumption(self):
        s = _state(available=3)
        first = _plan(state=s, request=_request(expected_available_amount=3))
        with pytest.raises(StaleOfferStateError):
            _plan(state=first.state, request=_request(expected_available_amount=3))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"sender": "SOMEONE"},
            {"receiver": OWNER},
            {"close_remainder_to": "ELSEWHERE"},
        ],
    )
    def test_invalid_payment_leg(self, overrides):
        with pytest.raises(InvalidPaymentLegError):
            _plan(bundle=_bundle(**overrides))

    def test_asset_payment_in_currency_variant(self):
        leg = AssetPayment(sender=BUYER, receiver=APP, asset_id=USDC, amount=10)
        with pytest.raises(InvalidPaymentLegError):
            _plan(bundle=Bundle.of(leg, BUYER))

    def test_payment_overflow(self):
        with pytest.raises(AmountOverflowError):
            _plan(bundle=_bundle(amount=MAX_UINT64))


class TestAssetTransferPlan:
    def _asset_plan(self, leg, request=None):
        return plan_transfer_with_asset(
            _state(),
            BUYER,
            request if request is not None else _request(payment_asset=USDC),
            Bundle.of(leg, BUYER),
            system=APP,
        )

    def test_split_in_payment_asset(self):
        plan = self._asset_plan(AssetPayment(sender=BUYER, receiver=APP, asset_id=USDC, amount=2_000))
        assert plan.event is Event.TRANSFER_WITH_ASSET
        inbound, to_owner, to_royalty, release = plan.transfers
        assert inbound.asset_id == USDC
        assert (to_owner.asset_id, to_owner.amount) == (USDC, 1_900)
        assert (to_royalty.asset_id, to_royalty.amount) == (USDC, 100)
        assert release.asset_id == NFT

    def test_wrong_payment_asset(self):
        with pytest.raises(InvalidPaymentLegError):
            self._asset_plan(AssetPayment(sender=BUYER, receiver=APP, asset_id=3000, amount=2_000))

    def test_currency_leg_rejected(self):
        with pytest.raises(InvalidPaymentLegError):
            self._asset_plan(CurrencyPayment(sender=BUYER, receiver=APP, amount=2_000))

    def test_asset_close_rejected(self):
        leg = AssetPayment(sender=BUYER, receiver=APP, asset_id=USDC, amount=2_000, asset_close_to=OWNER)
        with pytest.raises(InvalidPaymentLegError):
            self._asset_plan(leg)

    def test_requires_payment_asset(self):
        leg = AssetPayment(sender=BUYER, receiver=APP, asset_id=USDC, amount=2_000)
        with pytest.raises(InvalidPaymentLegError):
            self._asset_plan(leg, request=_request(payment_asset=NATIVE_ASSET))
        with pytest.raises(InvalidPaymentLegError):
            self._asset_plan(leg, request=_request())

    def test_missing_payment_asset_does_not_mask_earlier_checks(self):
        leg = AssetPayment(sender=BUYER, receiver=APP, asset_id=USDC, amount=2_000)
        with pytest.raises(PolicyNotSetError):
            plan_transfer_with_asset(EngineState(administrator="ADMIN"), BUYER, _request(), Bundle.of(leg, BUYER), system=APP)
        with pytest.raises(OfferNotFoundError):
            plan_transfer_with_asset(_state(), BUYER, _request(owner="NOBODY"), Bundle.of(leg, BUYER), system=APP)
        with pytest.raises(UnauthorizedError):
            plan_transfer_with_asset(_state(), "MALLORY", _request(), Bundle.of(leg, "MALLORY"), system=APP)


class TestRoyaltyFreeMove:
    def _move(self, caller=BUYER, **overrides):
        kwargs = dict(asset_id=NFT, amount=1, owner=OWNER, expected_available_amount=1)
        kwargs.update(overrides)
        return plan_royalty_free_move(_state(), caller, **kwargs)

    def test_authorized_move_leaves_offer(self):
        plan = self._move()
        assert plan.event is Event.ROYALTY_FREE_MOVE
        assert plan.transfers == ()
        assert plan.state.get_offer(OWNER, NFT).available_amount == 1

    def test_missing_offer(self):
        with pytest.raises(OfferNotFoundError):
            self._move(owner="NOBODY")

    def test_stale(self):
        with pytest.raises(StaleOfferStateError):
            self._move(expected_available_amount=0)

    def test_exceeds(self):
        with pytest.raises(AmountExceedsOfferError):
            self._move(amount=2)

    def test_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            self._move(caller="MALLORY")

    def test_no_policy_needed(self):
        s = replace(_state(), policy=None)
        plan = plan_royalty_free_move(s, BUYER, asset_id=NFT, amount=1, owner=OWNER, expected_available_amount=1)
        assert plan.split is None
