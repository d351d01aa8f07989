"""Data types for the stake-pool engine.

All record types are frozen dataclasses (immutable); tables hold them by key
and replace them wholesale on update.

Units/conventions:
- token amounts are non-negative integers in the token's base units,
- ``*_per_unit`` values are reward units per unit of stake, scaled by ``SCALE``,
- ``TokenId`` and ``AccountId`` are opaque strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Optional


TokenId = str
AccountId = str


@unique
class Variant(Enum):
    """Which token a pool pays its rewards in."""
    STAKING = "staking"  # rewards paid in the staked token
    FARMING = "farming"  # rewards paid in a per-pool reward token


@unique
class Event(Enum):
    """One member per observable engine event."""
    POOL_ALLOWED = "PoolAllowed"
    POOL_DISALLOWED = "PoolDisallowed"
    REWARD_TOKEN_SET = "RewardTokenSet"
    DISTRIBUTED = "Distributed"
    DEPOSITED = "Deposited"
    CLAIMED = "Claimed"
    WITHDRAWN = "Withdrawn"
    SWEPT = "Swept"


@dataclass(frozen=True)
class RegistryEntry:
    """Allow-list flag and (farming) payout token for one pool."""

    allowed: bool = False
    reward_token: Optional[TokenId] = None


@dataclass(frozen=True)
class AccumulatorState:
    """Accumulator counters for one pool. Only `distribute` grows the accumulator."""

    total_staked: int = 0
    cumulative_reward_per_unit: int = 0

    # Bookkeeping in whole reward units (conservation check only).
    total_distributed: int = 0
    total_claimed: int = 0

    def __post_init__(self) -> None:
        for name in ("total_staked", "cumulative_reward_per_unit", "total_distributed", "total_claimed"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class PositionState:
    """One depositor's stake and settlement snapshot within a pool."""

    staked_amount: int = 0
    settled_reward_per_unit: int = 0

    def __post_init__(self) -> None:
        if self.staked_amount < 0:
            raise ValueError("staked_amount must be non-negative")
        if self.settled_reward_per_unit < 0:
            raise ValueError("settled_reward_per_unit must be non-negative")

    @property
    def is_empty(self) -> bool:
        return self.staked_amount == 0


@dataclass(frozen=True)
class ClaimPreview:
    """Read-only view of what ``claim`` would pay right now."""

    staked_amount: int
    owed_per_unit: int
    claimable: int


@dataclass(frozen=True)
class PoolEvent:
    """Event emitted after an operation commits. Unused fields stay None/0."""

    event: Event
    pool: TokenId
    account: Optional[AccountId] = None
    amount: int = 0
    receiver: Optional[AccountId] = None
    token: Optional[TokenId] = None  # token actually moved (payout / sweep)


@dataclass(frozen=True)
class OpResult:
    """Result of ``PoolEngine.try_call``."""

    ok: bool
    value: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PoolState:
    """Combined read-only view of one pool (registry entry + accumulator)."""

    token: TokenId
    allowed: bool
    reward_token: Optional[TokenId]
    total_staked: int
    cumulative_reward_per_unit: int
    total_distributed: int
    total_claimed: int
