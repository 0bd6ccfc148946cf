"""
Engine state: administrator, royalty policy and the offer registry.

All types are frozen dataclasses. Core operations never mutate a state; they
return a new one, and the shell swaps it in only after the whole operation
succeeded.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .accounts import MAX_UINT64, AssetId, Identity


BASIS_POINT_DENOM = 10_000

OfferKey = Tuple[Identity, AssetId]


def _require_uint(value: Any, *, name: str, hi: int = MAX_UINT64) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (0 <= value <= hi):
        raise ValueError(f"{name} must be in [0, {hi}]: {value}")
    return value


@dataclass(frozen=True)
class Policy:
    """Write-once royalty terms."""

    royalty_basis: int
    royalty_recipient: Identity

    def __post_init__(self) -> None:
        _require_uint(self.royalty_basis, name="royalty_basis", hi=BASIS_POINT_DENOM)


@dataclass(frozen=True)
class Offer:
    """Standing authorisation for one counterparty to buy up to `available_amount` units."""

    authorized_counterparty: Identity
    available_amount: int

    def __post_init__(self) -> None:
        _require_uint(self.available_amount, name="available_amount")


@dataclass(frozen=True)
class EngineState:
    administrator: Optional[Identity] = None
    policy: Optional[Policy] = None
    offers: Mapping[OfferKey, Offer] = field(default_factory=dict)
    # sender -> last accepted envelope nonce
    nonces: Mapping[Identity, int] = field(default_factory=dict)

    @property
    def created(self) -> bool:
        return self.administrator is not None

    def get_offer(self, owner: Identity, asset: AssetId) -> Optional[Offer]:
        return self.offers.get((owner, asset))

    def with_offer(self, owner: Identity, asset: AssetId, offer: Offer) -> "EngineState":
        offers = dict(self.offers)
        offers[(owner, asset)] = offer
        return replace(self, offers=offers)

    def last_nonce(self, sender: Identity) -> int:
        return self.nonces.get(sender, 0)

    def with_nonce(self, sender: Identity, nonce: int) -> "EngineState":
        nonces = dict(self.nonces)
        nonces[sender] = _require_uint(nonce, name="nonce")
        return replace(self, nonces=nonces)


def initial_state() -> EngineState:
    return EngineState()


def state_to_dict(state: EngineState) -> Dict[str, Any]:
    """Serialize to a JSON-ready dict. Offers are sorted by (owner, asset)."""
    policy = None
    if state.policy is not None:
        policy = {
            "royalty_basis": state.policy.royalty_basis,
            "royalty_recipient": state.policy.royalty_recipient,
        }
    offers = [
        {
            "owner": owner,
            "asset_id": asset,
            "authorized_counterparty": o.authorized_counterparty,
            "available_amount": o.available_amount,
        }
        for (owner, asset), o in sorted(state.offers.items())
    ]
    nonces = [{"sender": s, "last_nonce": n} for s, n in sorted(state.nonces.items())]
    return {"administrator": state.administrator, "policy": policy, "offers": offers, "nonces": nonces}


def state_from_dict(d: Mapping[str, Any]) -> EngineState:
    """Deserialize a dict produced by `state_to_dict`. Raises KeyError on missing fields."""
    admin = d["administrator"]
    if admin is not None and not isinstance(admin, str):
        raise TypeError("administrator must be a string or null")

    policy = None
    raw_policy = d["policy"]
    if raw_policy is not None:
        policy = Policy(
            royalty_basis=raw_policy["royalty_basis"],
            royalty_recipient=raw_policy["royalty_recipient"],
        )

    offers: Dict[OfferKey, Offer] = {}
    for entry in d["offers"]:
        key = (entry["owner"], _require_uint(entry["asset_id"], name="asset_id"))
        if key in offers:
            raise ValueError(f"duplicate offer for {key}")
        offers[key] = Offer(
            authorized_counterparty=entry["authorized_counterparty"],
            available_amount=entry["available_amount"],
        )
    nonces: Dict[Identity, int] = {}
    for entry in d.get("nonces", []):
        sender = entry["sender"]
        if sender in nonces:
            raise ValueError(f"duplicate nonce entry for {sender}")
        nonces[sender] = _require_uint(entry["last_nonce"], name="last_nonce")
    return EngineState(administrator=admin, policy=policy, offers=offers, nonces=nonces)
