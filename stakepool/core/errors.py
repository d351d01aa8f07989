"""Exception types for the stake-pool engine.

Every operation raises one of these on rejection, after rolling back any
partial state change. ``PoolEngine.try_call()`` converts them into an
``OpResult`` for callers that prefer result inspection.
"""

from __future__ import annotations


class StakePoolError(Exception):
    """Base class for all rejected pool operations."""


class Unauthorized(StakePoolError):
    """Raised when a non-privileged caller invokes an admin operation."""


class TokenNotAllowed(StakePoolError):
    """Raised for an operation on a pool that is not currently allowed."""


class ZeroAmount(StakePoolError):
    """Raised when deposit/withdraw/distribute/sweep is called with amount 0."""


class DistributionWithNoStake(StakePoolError):
    """Raised when distributing to a pool whose total stake is zero."""


class TransferFailed(StakePoolError):
    """Raised when the external token ledger reports a failed transfer."""


class InsufficientPosition(StakePoolError):
    """Raised when a withdrawal exceeds the depositor's staked amount."""


class RewardTokenNotSet(StakePoolError):
    """Raised when a farming pool must pay a reward but has no reward token."""


class UnsupportedOperation(StakePoolError):
    """Raised for an operation the configured pool variant does not offer."""


class ReentrantCall(StakePoolError):
    """Raised when a pool operation is re-entered before the outer call returns."""


class InvariantViolation(StakePoolError):
    """Raised when a post-state violates one or more ledger invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
