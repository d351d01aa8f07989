"""Pure fixed-point arithmetic for the reward accumulator.

Every function is stateless and operates on plain Python ints. Rounding is
always floor (``//``) so value can be lost to dust but never created:

- ``distribute`` loses at most ``total_staked - 1`` units in the scaled domain,
- ``claimable`` loses strictly less than one whole reward unit per settlement.

``claimable`` is the single payout formula; both the mutating claim path and
the read-only preview call it, so the two cannot drift apart.
"""

from __future__ import annotations

SCALE: int = 10**18


def require_amount(value: object, *, name: str) -> int:
    """Return *value* as a non-negative int or raise."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def require_scale(scale: object) -> int:
    if not isinstance(scale, int) or isinstance(scale, bool) or scale <= 0:
        raise ValueError("scale must be a positive int")
    return int(scale)


def reward_per_unit_delta(reward_amount: int, total_staked: int, scale: int = SCALE) -> int:
    """Accumulator increase for distributing *reward_amount* over *total_staked*.

    ``reward_amount * scale // total_staked``. Raises on zero stake: the
    proportional split is undefined.
    """
    if total_staked <= 0:
        raise ZeroDivisionError("cannot distribute over zero stake")
    return (reward_amount * scale) // total_staked


def owed_per_unit(cumulative: int, settled: int) -> int:
    """Accumulator growth since the depositor last settled."""
    if settled > cumulative:
        raise ValueError("settled snapshot is ahead of the accumulator")
    return cumulative - settled


def claimable(staked_amount: int, cumulative: int, settled: int, scale: int = SCALE) -> int:
    """Whole reward units owed to a position.

    A position with no stake is owed nothing, whatever its snapshot says.
    """
    if staked_amount == 0:
        return 0
    return (staked_amount * owed_per_unit(cumulative, settled)) // scale


def distribution_dust(reward_amount: int, total_staked: int, scale: int = SCALE) -> int:
    """Reward units (scaled) forfeited to floor division by one distribution."""
    delta = reward_per_unit_delta(reward_amount, total_staked, scale)
    return reward_amount * scale - delta * total_staked
