"""
Asset descriptors as seen by the engine.

An asset is owned and configured by the external ledger; the engine only reads
its control addresses. A descriptor is fetched once per operation and all
capability checks go through the helpers below.
"""

from __future__ import annotations

from dataclasses import dataclass

from .accounts import MAX_UINT64, ZERO_ADDRESS, AssetId, Identity


@dataclass(frozen=True)
class AssetDescriptor:
    asset_id: AssetId
    creator: Identity
    total: int = 1
    decimals: int = 0
    clawback: Identity = ZERO_ADDRESS
    freeze: Identity = ZERO_ADDRESS
    manager: Identity = ZERO_ADDRESS
    reserve: Identity = ZERO_ADDRESS
    default_frozen: bool = False
    unit_name: str = ""
    name: str = ""
    url: str = ""

    def __post_init__(self) -> None:
        for name, v in (("asset_id", self.asset_id), ("total", self.total), ("decimals", self.decimals)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if self.asset_id <= 0:
            raise ValueError(f"asset_id must be positive: {self.asset_id}")
        if not (0 <= self.total <= MAX_UINT64):
            raise ValueError(f"total out of range: {self.total}")
        if not (0 <= self.decimals <= 19):
            raise ValueError(f"decimals must be in [0, 19]: {self.decimals}")

    def has_custody_control_by(self, system: Identity) -> bool:
        """True iff `system` holds the clawback capability."""
        return self.clawback == system

    @property
    def freeze_authority(self) -> Identity | None:
        return None if self.freeze == ZERO_ADDRESS else self.freeze

    @property
    def manage_authority(self) -> Identity | None:
        return None if self.manager == ZERO_ADDRESS else self.manager

    def is_safe_for(self, system: Identity) -> bool:
        """
        True iff no third party can freeze or reconfigure the asset.

        Freeze and manager must each be unset or held by `system`.
        """
        for authority in (self.freeze_authority, self.manage_authority):
            if authority is not None and authority != system:
                return False
        return True
