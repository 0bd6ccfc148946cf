"""
Administrator capability gate.

A single mutable identity may change the royalty policy (once) and the
payment-asset allow list, and may hand the role to a successor.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ..state.accounts import Identity, require_identity
from ..state.assets import AssetDescriptor
from ..state.engine_state import EngineState
from .bundle import Transfer
from .errors import AlreadyCreatedError, NotCreatedError, UnauthorizedError, UnknownAssetError


def create(state: EngineState, creator: Identity) -> EngineState:
    if state.created:
        raise AlreadyCreatedError("engine already created")
    require_identity(creator, name="creator")
    return replace(state, administrator=creator)


def get_administrator(state: EngineState) -> Identity:
    if state.administrator is None:
        raise NotCreatedError("engine not created")
    return state.administrator


def require_admin(state: EngineState, caller: Identity) -> None:
    if get_administrator(state) != caller:
        raise UnauthorizedError("caller is not the administrator")


def set_administrator(state: EngineState, caller: Identity, new_admin: Identity) -> EngineState:
    require_admin(state, caller)
    require_identity(new_admin, name="new_admin")
    return replace(state, administrator=new_admin)


def plan_payment_asset_toggle(
    state: EngineState,
    caller: Identity,
    *,
    asset: Optional[AssetDescriptor],
    opted_in: bool,
    allowed: bool,
    system: Identity,
) -> Tuple[Transfer, ...]:
    """
    Transfers that make the custody address accept (or stop accepting) `asset`.

    Allowing opts in; disallowing closes the holding back to the asset's
    creator. Already in the requested state: no transfers. Which assets are
    allowed is whatever the ledger's opt-in set says; nothing is recorded here.
    """
    require_admin(state, caller)
    if asset is None:
        raise UnknownAssetError("payment asset does not exist")
    if allowed and not opted_in:
        return (Transfer(sender=system, receiver=system, amount=0, asset_id=asset.asset_id),)
    if not allowed and opted_in:
        return (
            Transfer(
                sender=system,
                receiver=asset.creator,
                amount=0,
                asset_id=asset.asset_id,
                close_to=asset.creator,
            ),
        )
    return ()
