"""
Replay protection for operation envelopes.

Nonces are strict and sequential per sender: the first accepted envelope of a
sender carries nonce 1, each later one exactly the previous nonce plus one.
"""

from __future__ import annotations

from ..state.accounts import MAX_UINT64, Identity
from ..state.engine_state import EngineState
from .errors import InvalidNonceError


def require_next_nonce(state: EngineState, sender: Identity, nonce: int) -> EngineState:
    """Return `state` with `nonce` recorded for `sender`, or raise `InvalidNonceError`."""
    if not isinstance(nonce, int) or isinstance(nonce, bool):
        raise TypeError("nonce must be an int")
    expected = state.last_nonce(sender) + 1
    if expected > MAX_UINT64:
        raise InvalidNonceError(f"nonce sequence of {sender} is exhausted")
    if nonce != expected:
        raise InvalidNonceError(f"expected nonce {expected} for {sender}, got {nonce}")
    return state.with_nonce(sender, nonce)
