"""
Engine configuration.

`EngineConfig()` defaults are safe for tests and the offline demo;
`EngineConfig.from_env()` is what deployments use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_APP_ADDRESS = "ROYALTYENGINECUSTODYADDRESS"


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineConfig:
    # Custody identity of the engine: payments land here, and assets must name
    # it as clawback (and as freeze/manager, if those are set).
    app_address: str = DEFAULT_APP_ADDRESS

    # Bound into every signed operation so signatures cannot be replayed on
    # another deployment.
    chain_id: str = "royalty-local"

    # If True, `apply_operation` only accepts envelopes carrying a valid BLS
    # signature by their declared sender and the sender's next nonce
    # (identities are then hex pubkeys).
    require_signatures: bool = False

    # DoS limit on raw operation envelopes (applied before JSON parsing).
    max_operation_bytes: int = 64_000

    def __post_init__(self) -> None:
        if not isinstance(self.app_address, str) or not self.app_address:
            raise ValueError("app_address must be a non-empty string")
        if not isinstance(self.chain_id, str) or not self.chain_id:
            raise ValueError("chain_id must be a non-empty string")
        if not isinstance(self.max_operation_bytes, int) or self.max_operation_bytes <= 0:
            raise ValueError("max_operation_bytes must be a positive int")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            app_address=_env_str("ROYALTY_APP_ADDRESS", DEFAULT_APP_ADDRESS),
            chain_id=_env_str("ROYALTY_CHAIN_ID", "royalty-local"),
            require_signatures=_env_bool("ROYALTY_REQUIRE_SIGNATURES", False),
            max_operation_bytes=_env_int("ROYALTY_MAX_OPERATION_BYTES", 64_000, lo=1_024, hi=1_048_576),
        )
