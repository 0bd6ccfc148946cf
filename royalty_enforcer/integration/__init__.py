"""
Integration layer: ledger boundary, configuration and the engine facade.
"""

from .config import EngineConfig
from .engine import OperationResult, Receipt, RoyaltyEngine
from .ledger import InMemoryLedger, Ledger
from .operations import Operation, parse_operation

__all__ = [
    "EngineConfig",
    "OperationResult",
    "Receipt",
    "RoyaltyEngine",
    "InMemoryLedger",
    "Ledger",
    "Operation",
    "parse_operation",
]
