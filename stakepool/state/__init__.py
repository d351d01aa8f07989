"""
Ledger state tables for stake pools
"""

from .accumulator import RewardAccumulator
from .balances import BalanceBook
from .positions import PositionLedger
from .registry import PoolRegistry

__all__ = [
    "BalanceBook",
    "PoolRegistry",
    "PositionLedger",
    "RewardAccumulator",
]
