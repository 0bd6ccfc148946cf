"""
State management for the royalty engine
"""

from .accounts import MAX_UINT64, NATIVE_ASSET, ZERO_ADDRESS, AssetId, HoldingTable, Identity
from .assets import AssetDescriptor
from .engine_state import BASIS_POINT_DENOM, EngineState, Offer, Policy, initial_state

__all__ = [
    "MAX_UINT64",
    "NATIVE_ASSET",
    "ZERO_ADDRESS",
    "AssetId",
    "HoldingTable",
    "Identity",
    "AssetDescriptor",
    "BASIS_POINT_DENOM",
    "EngineState",
    "Offer",
    "Policy",
    "initial_state",
]
