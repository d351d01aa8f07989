"""
Core reward-accounting types and arithmetic
"""

from .errors import (
    DistributionWithNoStake,
    InsufficientPosition,
    InvariantViolation,
    ReentrantCall,
    RewardTokenNotSet,
    StakePoolError,
    TokenNotAllowed,
    TransferFailed,
    Unauthorized,
    UnsupportedOperation,
    ZeroAmount,
)
from .invariants import INVARIANT_REGISTRY, check_all, check_step
from .math import SCALE, claimable, owed_per_unit, reward_per_unit_delta
from .types import (
    AccountId,
    AccumulatorState,
    ClaimPreview,
    Event,
    OpResult,
    PoolEvent,
    PoolState,
    PositionState,
    RegistryEntry,
    TokenId,
    Variant,
)

__all__ = [
    "SCALE",
    "claimable",
    "owed_per_unit",
    "reward_per_unit_delta",
    "INVARIANT_REGISTRY",
    "check_all",
    "check_step",
    "AccountId",
    "AccumulatorState",
    "ClaimPreview",
    "Event",
    "OpResult",
    "PoolEvent",
    "PoolState",
    "PositionState",
    "RegistryEntry",
    "TokenId",
    "Variant",
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
