"""
Core royalty enforcement: pure validation and bookkeeping over `EngineState`.
"""

from .admin import create, get_administrator, set_administrator
from .authorizer import (
    Event,
    TransferPlan,
    TransferRequest,
    plan_royalty_free_move,
    plan_transfer_with_asset,
    plan_transfer_with_currency,
)
from .bundle import AssetPayment, AssetRelease, Bundle, CurrencyPayment, LegRole, Transfer
from .errors import RoyaltyError
from .offers import get_offer, offer
from .policy import get_policy, set_policy
from .split import PaymentSplit, compute_split, royalty_amount

__all__ = [
    "create",
    "get_administrator",
    "set_administrator",
    "Event",
    "TransferPlan",
    "TransferRequest",
    "plan_royalty_free_move",
    "plan_transfer_with_asset",
    "plan_transfer_with_currency",
    "AssetPayment",
    "AssetRelease",
    "Bundle",
    "CurrencyPayment",
    "LegRole",
    "Transfer",
    "RoyaltyError",
    "get_offer",
    "offer",
    "get_policy",
    "set_policy",
    "PaymentSplit",
    "compute_split",
    "royalty_amount",
]
