"""
Write-once royalty policy store.

The policy is the buyers' trust anchor: once `(rate, recipient)` is set there
is no update path, so terms cannot change under offers already made.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from ..state.accounts import Identity, require_identity
from ..state.engine_state import BASIS_POINT_DENOM, EngineState, Policy
from .admin import require_admin
from .errors import InvalidRateError, PolicyAlreadySetError, PolicyNotSetError


def set_policy(state: EngineState, caller: Identity, rate: int, recipient: Identity) -> EngineState:
    require_admin(state, caller)
    if state.policy is not None:
        raise PolicyAlreadySetError("royalty policy has already been set")
    if not isinstance(rate, int) or isinstance(rate, bool):
        raise TypeError("rate must be an int")
    if rate < 0 or rate > BASIS_POINT_DENOM:
        raise InvalidRateError(f"royalty basis must be in [0, {BASIS_POINT_DENOM}]: {rate}")
    require_identity(recipient, name="recipient")
    return replace(state, policy=Policy(royalty_basis=rate, royalty_recipient=recipient))


def require_policy(state: EngineState) -> Policy:
    if state.policy is None:
        raise PolicyNotSetError("royalty policy not set")
    return state.policy


def get_policy(state: EngineState) -> Tuple[Identity, int]:
    """Return `(recipient, rate)`."""
    policy = require_policy(state)
    return policy.royalty_recipient, policy.royalty_basis
