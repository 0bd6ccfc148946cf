"""
Deterministic state root hashing (v1).

Two engines that processed the same bundles in the same order report the same
root, which makes replicas and audit logs cheap to compare.
"""

from __future__ import annotations

from .canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from .engine_state import EngineState, state_to_dict


STATE_ROOT_VERSION = 1


def compute_state_root(state: EngineState) -> str:
    payload = canonical_json_bytes(state_to_dict(state))
    return sha256_hex(domain_sep_bytes("state_root", version=STATE_ROOT_VERSION) + payload)
