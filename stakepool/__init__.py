"""`stakepool`: pro-rata reward pools over an accumulated-reward-per-unit ledger.

Depositors stake a token, an operator periodically distributes a lump-sum
reward, and each depositor's share is settled lazily on claim/withdraw:
- `distribute` is O(1) and never iterates depositors,
- integer-only arithmetic with floor rounding (dust is lost, never created),
- every operation is atomic over engine state and re-entrancy guarded.

Public API:
- `PoolEngine` (deposit / claim / withdraw / distribute / preview_claim / sweep)
- `EngineConfig`, `load_engine_config()`, `build_engine()`
- `TokenBank` (in-memory ledgers), `OperatorGate`
"""

from .config import ConfigError, EngineConfig, build_engine, config_from_mapping, load_engine_config
from .core import (
    SCALE,
    ClaimPreview,
    DistributionWithNoStake,
    Event,
    InsufficientPosition,
    InvariantViolation,
    OpResult,
    PoolEvent,
    PoolState,
    PositionState,
    ReentrantCall,
    RewardTokenNotSet,
    StakePoolError,
    TokenNotAllowed,
    TransferFailed,
    Unauthorized,
    UnsupportedOperation,
    Variant,
    ZeroAmount,
)
from .integration import OperatorGate, PoolEngine, TokenBank

__all__ = [
    "SCALE",
    "ConfigError",
    "EngineConfig",
    "build_engine",
    "config_from_mapping",
    "load_engine_config",
    "ClaimPreview",
    "Event",
    "OpResult",
    "PoolEvent",
    "PoolState",
    "PositionState",
    "Variant",
    "OperatorGate",
    "PoolEngine",
    "TokenBank",
    "StakePoolError",
    "Unauthorized",
    "TokenNotAllowed",
    "ZeroAmount",
    "DistributionWithNoStake",
    "TransferFailed",
    "InsufficientPosition",
    "RewardTokenNotSet",
    "UnsupportedOperation",
    "ReentrantCall",
    "InvariantViolation",
]
