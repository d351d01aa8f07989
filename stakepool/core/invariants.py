"""Invariant checkers for the pool ledger.

Each function returns True when the invariant holds, and ``check_all()``
returns the list of violated invariant IDs (empty = all pass).

These are global checks over every pool and position, so they are O(n) in the
number of positions. The engine runs them only on demand
(``PoolEngine.check_invariants``) and when restoring a snapshot. After each
step it runs ``check_step`` instead, which looks at the pool totals and the
positions that step touched.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Mapping, Tuple

from .types import AccountId, AccumulatorState, PositionState, TokenId

Pools = Mapping[TokenId, AccumulatorState]
Positions = Mapping[Tuple[TokenId, AccountId], PositionState]


def inv_total_matches_positions(pools: Pools, positions: Positions) -> bool:
    sums: dict[TokenId, int] = defaultdict(int)
    for (token, _account), pos in positions.items():
        sums[token] += pos.staked_amount
    for token in set(pools) | set(sums):
        pool = pools.get(token)
        total = pool.total_staked if pool is not None else 0
        if total != sums.get(token, 0):
            return False
    return True


def inv_settled_not_ahead(pools: Pools, positions: Positions) -> bool:
    for (token, _account), pos in positions.items():
        pool = pools.get(token)
        cumulative = pool.cumulative_reward_per_unit if pool is not None else 0
        if pos.settled_reward_per_unit > cumulative:
            return False
    return True


def inv_claimed_within_distributed(pools: Pools, positions: Positions) -> bool:
    return all(p.total_claimed <= p.total_distributed for p in pools.values())


INVARIANT_REGISTRY: dict[str, Callable[[Pools, Positions], bool]] = {
    "inv_total_matches_positions": inv_total_matches_positions,
    "inv_settled_not_ahead": inv_settled_not_ahead,
    "inv_claimed_within_distributed": inv_claimed_within_distributed,
}


def check_all(pools: Pools, positions: Positions) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(pools, positions)
    ]


def check_step(
    before: AccumulatorState,
    after: AccumulatorState,
    touched_before: Mapping[AccountId, PositionState],
    touched_after: Mapping[AccountId, PositionState],
) -> list[str]:
    """
    Incremental form of ``check_all`` for one step on one pool.

    Assumes the pool was healthy before the step and that only the positions
    in *touched_before* / *touched_after* (same keys) changed. Cost is
    O(touched positions), so a distribution (no positions) is O(1).
    """
    violations: list[str] = []

    stake_delta = sum(
        touched_after[account].staked_amount - touched_before[account].staked_amount
        for account in touched_after
    )
    if after.total_staked - before.total_staked != stake_delta:
        violations.append("inv_total_matches_positions")

    # Untouched positions stay behind the accumulator only if it never moves back.
    if after.cumulative_reward_per_unit < before.cumulative_reward_per_unit or any(
        pos.settled_reward_per_unit > after.cumulative_reward_per_unit for pos in touched_after.values()
    ):
        violations.append("inv_settled_not_ahead")

    if after.total_claimed > after.total_distributed:
        violations.append("inv_claimed_within_distributed")
    return violations
