"""
Reward accumulator: per-pool cumulative reward-per-unit-stake and total stake.

``distribute`` is O(1): it bumps one counter and never looks at positions.
Each depositor later settles against the accumulator growth since their own
snapshot (see ``core.math.claimable``), which credits them for exactly the
distributions they were staked through.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Optional

from ..core.errors import DistributionWithNoStake, ZeroAmount
from ..core.math import SCALE, require_amount, reward_per_unit_delta
from ..core.types import AccumulatorState, TokenId


class RewardAccumulator:
    """Table mapping token -> ``AccumulatorState``."""

    def __init__(self, scale: int = SCALE) -> None:
        self.scale = scale
        self._pools: Dict[TokenId, AccumulatorState] = {}

    def get(self, token: TokenId) -> AccumulatorState:
        return self._pools.get(token, AccumulatorState())

    def cumulative(self, token: TokenId) -> int:
        return self.get(token).cumulative_reward_per_unit

    def total_staked(self, token: TokenId) -> int:
        return self.get(token).total_staked

    def distribute(self, token: TokenId, reward_amount: int) -> int:
        """Spread *reward_amount* over the pool's current stake.

        Returns the accumulator delta (scaled reward units per unit of stake).

        Raises:
            ZeroAmount: reward_amount is 0.
            DistributionWithNoStake: nobody is staked in the pool.
        """
        reward_amount = require_amount(reward_amount, name="reward_amount")
        if reward_amount == 0:
            raise ZeroAmount("distribute amount must be non-zero")
        state = self.get(token)
        if state.total_staked == 0:
            raise DistributionWithNoStake(f"pool {token!r} has no stake")

        delta = reward_per_unit_delta(reward_amount, state.total_staked, self.scale)
        self._pools[token] = replace(
            state,
            cumulative_reward_per_unit=state.cumulative_reward_per_unit + delta,
            total_distributed=state.total_distributed + reward_amount,
        )
        return delta

    def add_stake(self, token: TokenId, amount: int) -> None:
        state = self.get(token)
        self._pools[token] = replace(state, total_staked=state.total_staked + amount)

    def remove_stake(self, token: TokenId, amount: int) -> None:
        state = self.get(token)
        if amount > state.total_staked:
            raise ValueError(f"cannot remove {amount} from total stake {state.total_staked}")
        self._pools[token] = replace(state, total_staked=state.total_staked - amount)

    def record_claim(self, token: TokenId, amount: int) -> None:
        state = self.get(token)
        self._pools[token] = replace(state, total_claimed=state.total_claimed + amount)

    def get_all(self) -> Dict[TokenId, AccumulatorState]:
        return dict(self._pools)

    def snapshot(self, token: TokenId) -> Optional[AccumulatorState]:
        return self._pools.get(token)

    def restore(self, token: TokenId, snap: Optional[AccumulatorState]) -> None:
        if snap is None:
            self._pools.pop(token, None)
        else:
            self._pools[token] = snap

    def __repr__(self) -> str:
        return f"RewardAccumulator({len(self._pools)} pools, scale={self.scale})"
