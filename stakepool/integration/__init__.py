"""
Pool engine and its external collaborators (token ledgers, access gate)
"""

from .access import AccessGate, OperatorGate, require_privileged
from .engine import PoolEngine
from .snapshot import POOL_SNAPSHOT_VERSION, PoolSnapshot, restore_engine, snapshot_from_engine
from .token_ledger import InMemoryTokenLedger, LedgerResolver, TokenBank, TokenLedger

__all__ = [
    "AccessGate",
    "OperatorGate",
    "require_privileged",
    "PoolEngine",
    "POOL_SNAPSHOT_VERSION",
    "PoolSnapshot",
    "restore_engine",
    "snapshot_from_engine",
    "InMemoryTokenLedger",
    "LedgerResolver",
    "TokenBank",
    "TokenLedger",
]
