"""
Per-owner offer registry.

An offer names the single counterparty allowed to trigger a royalty-enforced
transfer of the owner's units and how many units remain available.
"""

from __future__ import annotations

from typing import Optional, Tuple

from ..state.accounts import MAX_UINT64, ZERO_ADDRESS, AssetId, Identity, require_identity
from ..state.assets import AssetDescriptor
from ..state.engine_state import EngineState, Offer
from .errors import (
    AmountOverflowError,
    InsufficientBalanceError,
    MissingClawbackCapabilityError,
    OfferNotFoundError,
    StaleOfferStateError,
    UnknownAssetError,
    UnsafeAssetCapabilityError,
)
from .policy import require_policy


def require_amount(value: int, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    if value > MAX_UINT64:
        raise AmountOverflowError(f"{name} exceeds uint64: {value}")
    return value


def require_controllable_asset(asset: Optional[AssetDescriptor], *, system: Identity) -> AssetDescriptor:
    """Fail unless `system` alone controls custody of `asset`."""
    if asset is None:
        raise UnknownAssetError("asset does not exist")
    if not asset.has_custody_control_by(system):
        raise MissingClawbackCapabilityError(f"engine does not hold clawback on asset {asset.asset_id}")
    if not asset.is_safe_for(system):
        raise UnsafeAssetCapabilityError(f"asset {asset.asset_id} has a foreign freeze or manager authority")
    return asset


def offer(
    state: EngineState,
    caller: Identity,
    *,
    asset: Optional[AssetDescriptor],
    caller_balance: int,
    amount: int,
    authorized_counterparty: Identity,
    system: Identity,
    previous_counterparty: Optional[Identity] = None,
    previous_amount: Optional[int] = None,
) -> EngineState:
    """
    Create or replace the caller's offer for `asset`.

    The new offer overwrites any prior one wholesale. When `previous_counterparty`
    and `previous_amount` are given they must describe the live offer (or
    `ZERO_ADDRESS` / 0 when there is none), which lets an owner update an offer
    without racing a concurrent transfer.
    """
    require_policy(state)
    asset = require_controllable_asset(asset, system=system)
    require_amount(amount, name="amount")
    require_identity(authorized_counterparty, name="authorized_counterparty")
    if caller_balance < amount:
        raise InsufficientBalanceError(
            f"holding of asset {asset.asset_id} is {caller_balance}, offer requires {amount}"
        )

    if previous_counterparty is not None or previous_amount is not None:
        if previous_counterparty is None or previous_amount is None:
            raise ValueError("previous_counterparty and previous_amount must be given together")
        live = state.get_offer(caller, asset.asset_id)
        live_view = (ZERO_ADDRESS, 0) if live is None else (live.authorized_counterparty, live.available_amount)
        if live_view != (previous_counterparty, previous_amount):
            raise StaleOfferStateError("previous offer does not match the live offer")

    return state.with_offer(
        caller,
        asset.asset_id,
        Offer(authorized_counterparty=authorized_counterparty, available_amount=amount),
    )


def require_offer(state: EngineState, owner: Identity, asset_id: AssetId) -> Offer:
    found = state.get_offer(owner, asset_id)
    if found is None:
        raise OfferNotFoundError(f"no offer from {owner} for asset {asset_id}")
    return found


def get_offer(state: EngineState, asset_id: AssetId, owner: Identity) -> Tuple[Identity, int]:
    """Return `(authorized_counterparty, available_amount)`."""
    found = require_offer(state, owner, asset_id)
    return found.authorized_counterparty, found.available_amount
