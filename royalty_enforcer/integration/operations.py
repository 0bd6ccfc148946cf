"""
Operation envelope parsing.

An envelope is a JSON object naming one public engine method:

    {
      "method": "transfer_with_currency",
      "sender": "<identity>",
      "args": {"asset_id": 1000, "requested_amount": 1, ...},
      "legs": [
        {"type": "pay", "sender": "...", "receiver": "...", "amount": 1000000},
        {"type": "release", "sender": "..."}
      ],
      "nonce": 1,                     # optional; required with signatures
      "signature": "0x..."            # optional, see signatures.py
    }

`legs` is only read for the two transfer methods. A present `nonce` must be the
sender's next one (see core/replay.py). Parsing failures raise
`MalformedOperationError`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..core.bundle import AssetPayment, AssetRelease, Bundle, CurrencyPayment, Leg
from ..core.errors import MalformedOperationError
from ..state.accounts import ZERO_ADDRESS
from ..state.canonical import has_surrogates

# Argument kinds: "identity", "uint", "bool", with an "?" suffix for optional.
METHOD_ARGS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "create": (),
    "set_administrator": (("new_admin", "identity"),),
    "set_policy": (("royalty_basis", "uint"), ("royalty_recipient", "identity")),
    "set_payment_asset_allowed": (("payment_asset", "uint"), ("allowed", "bool")),
    "offer": (
        ("asset_id", "uint"),
        ("amount", "uint"),
        ("authorized_counterparty", "identity"),
        ("previous_counterparty", "identity?"),
        ("previous_amount", "uint?"),
    ),
    "get_offer": (("asset_id", "uint"), ("owner", "identity")),
    "get_policy": (),
    "get_administrator": (),
    "transfer_with_currency": (
        ("asset_id", "uint"),
        ("requested_amount", "uint"),
        ("owner", "identity"),
        ("recipient", "identity"),
        ("royalty_recipient_claim", "identity"),
        ("expected_available_amount", "uint"),
    ),
    "transfer_with_asset": (
        ("asset_id", "uint"),
        ("requested_amount", "uint"),
        ("owner", "identity"),
        ("recipient", "identity"),
        ("royalty_recipient_claim", "identity"),
        ("expected_available_amount", "uint"),
        ("payment_asset", "uint"),
    ),
    "royalty_free_move": (
        ("asset_id", "uint"),
        ("amount", "uint"),
        ("owner", "identity"),
        ("recipient", "identity"),
        ("expected_available_amount", "uint"),
    ),
}

BUNDLE_METHODS = frozenset({"transfer_with_currency", "transfer_with_asset"})
MAX_LEGS = 16


@dataclass(frozen=True)
class Operation:
    method: str
    sender: str
    args: Mapping[str, Any]
    bundle: Optional[Bundle] = None
    nonce: Optional[int] = None


def _require_str(value: Any, *, name: str, max_len: int = 256) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    if has_surrogates(value):
        raise ValueError(f"{name} must not contain surrogate code points")
    return value


def _require_int(value: Any, *, name: str) -> int:
    # Range checks belong to the core (negative -> ValueError, > uint64 -> AmountOverflow).
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    return int(value)


def _require_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a bool")
    return value


def _parse_arg(raw: Mapping[str, Any], name: str, kind: str) -> Any:
    optional = kind.endswith("?")
    base = kind.rstrip("?")
    if name not in raw or raw[name] is None:
        if optional:
            return None
        raise ValueError(f"missing argument {name!r}")
    value = raw[name]
    if base == "identity":
        return _require_str(value, name=name)
    if base == "uint":
        return _require_int(value, name=name)
    if base == "bool":
        return _require_bool(value, name=name)
    raise ValueError(f"unknown argument kind {kind!r}")


def _parse_leg(raw: Any) -> Leg:
    if not isinstance(raw, Mapping):
        raise ValueError("leg must be an object")
    kind = raw.get("type")
    sender = _require_str(raw.get("sender"), name="leg.sender")
    if kind == "release":
        return AssetRelease(sender=sender)
    receiver = _require_str(raw.get("receiver"), name="leg.receiver")
    amount = _require_int(raw.get("amount"), name="leg.amount")
    rekey_to = _require_str(raw.get("rekey_to", ZERO_ADDRESS), name="leg.rekey_to")
    close_to = _require_str(raw.get("close_to", ZERO_ADDRESS), name="leg.close_to")
    if kind == "pay":
        return CurrencyPayment(
            sender=sender, receiver=receiver, amount=amount,
            rekey_to=rekey_to, close_remainder_to=close_to,
        )
    if kind == "axfer":
        return AssetPayment(
            sender=sender, receiver=receiver,
            asset_id=_require_int(raw.get("asset_id"), name="leg.asset_id"),
            amount=amount, rekey_to=rekey_to, asset_close_to=close_to,
        )
    raise ValueError(f"unknown leg type {kind!r}")


def parse_operation(envelope: Any) -> Operation:
    """
    Parse an envelope object into an `Operation`.

    Raises:
        MalformedOperationError: If the envelope structure is invalid
    """
    try:
        if not isinstance(envelope, Mapping):
            raise ValueError(f"operation must be an object, got {type(envelope).__name__}")
        method = _require_str(envelope.get("method"), name="method")
        if method not in METHOD_ARGS:
            raise ValueError(f"unknown method {method!r}")
        sender = _require_str(envelope.get("sender"), name="sender")

        raw_args = envelope.get("args", {})
        if not isinstance(raw_args, Mapping):
            raise ValueError("args must be an object")
        spec = METHOD_ARGS[method]
        known = {name for name, _ in spec}
        extra = sorted(set(raw_args) - known)
        if extra:
            raise ValueError(f"unexpected arguments for {method}: {extra}")
        args = {name: _parse_arg(raw_args, name, kind) for name, kind in spec}

        nonce = None
        if envelope.get("nonce") is not None:
            nonce = _require_int(envelope["nonce"], name="nonce")

        bundle = None
        if method in BUNDLE_METHODS:
            raw_legs = envelope.get("legs")
            if not isinstance(raw_legs, list):
                raise ValueError("legs must be a list")
            if len(raw_legs) > MAX_LEGS:
                raise ValueError("too many legs")
            legs: List[Leg] = []
            for i, raw_leg in enumerate(raw_legs):
                try:
                    legs.append(_parse_leg(raw_leg))
                except ValueError as exc:
                    raise ValueError(f"leg {i}: {exc}") from exc
            bundle = Bundle(legs=tuple(legs))
    except ValueError as exc:
        raise MalformedOperationError(str(exc)) from exc

    return Operation(method=method, sender=sender, args=args, bundle=bundle, nonce=nonce)


def parse_operation_json(raw: Union[str, bytes], *, max_bytes: int) -> Dict[str, Any]:
    """Decode a raw envelope, enforcing `max_bytes` before parsing."""
    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
    if len(data) > max_bytes:
        raise MalformedOperationError(f"operation exceeds {max_bytes} bytes")
    try:
        decoded = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedOperationError(f"invalid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise MalformedOperationError("operation must be a JSON object")
    return decoded


def leg_to_dict(leg: Leg) -> Dict[str, Any]:
    """Inverse of `_parse_leg` (used by clients and the demo)."""
    if isinstance(leg, AssetRelease):
        return {"type": "release", "sender": leg.sender}
    out: Dict[str, Any] = {
        "sender": leg.sender,
        "receiver": leg.receiver,
        "amount": leg.amount,
        "rekey_to": leg.rekey_to,
        "close_to": leg.close_to,
    }
    if isinstance(leg, AssetPayment):
        out["type"] = "axfer"
        out["asset_id"] = leg.asset_id
    else:
        out["type"] = "pay"
    return out


def map_identities(op: Operation, fn: Callable[[str], str]) -> Operation:
    """Apply `fn` to the sender, every identity argument and every leg address."""
    kinds = dict(METHOD_ARGS[op.method])
    args = {
        name: fn(value) if value is not None and kinds[name].rstrip("?") == "identity" else value
        for name, value in op.args.items()
    }
    bundle = None
    if op.bundle is not None:
        legs: List[Leg] = []
        for leg in op.bundle.legs:
            if isinstance(leg, AssetRelease):
                legs.append(AssetRelease(sender=fn(leg.sender)))
            elif isinstance(leg, AssetPayment):
                legs.append(replace(
                    leg, sender=fn(leg.sender), receiver=fn(leg.receiver),
                    rekey_to=fn(leg.rekey_to), asset_close_to=fn(leg.asset_close_to),
                ))
            else:
                legs.append(replace(
                    leg, sender=fn(leg.sender), receiver=fn(leg.receiver),
                    rekey_to=fn(leg.rekey_to), close_remainder_to=fn(leg.close_remainder_to),
                ))
        bundle = Bundle(legs=tuple(legs))
    return replace(op, sender=fn(op.sender), args=args, bundle=bundle)
