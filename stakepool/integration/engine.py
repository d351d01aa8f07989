"""
Pool engine: deposit / claim / withdraw / distribute over the ledger tables.

This is the imperative shell around the pure accounting in `core.math`:
- state lives in three tables (registry, accumulator, positions),
- value moves through an external `TokenLedger` per token,
- admin operations go through an `AccessGate`.

Atomicity: every mutating step snapshots the records it touches (the pool
entry, its accumulator and the caller's position) and restores them if anything
raises, including a failed ledger transfer. Events are published only after
the step commits; a failing subscriber is logged and cannot undo the step.

Re-entrancy: each pool has a guard; a ledger that calls back into the engine
for the same pool gets `ReentrantCall`. Independently of the guard, `claim`
settles the depositor's snapshot *before* paying, so a re-entered claim would
see nothing owed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Iterator, List, Optional, Tuple

from ..core.errors import (
    InsufficientPosition,
    InvariantViolation,
    RewardTokenNotSet,
    ReentrantCall,
    StakePoolError,
    TokenNotAllowed,
    TransferFailed,
    UnsupportedOperation,
    ZeroAmount,
)
from ..core.invariants import check_all, check_step
from ..core.math import SCALE, claimable, owed_per_unit, require_amount, require_scale
from ..core.types import (
    AccountId,
    ClaimPreview,
    Event,
    OpResult,
    PoolEvent,
    PoolState,
    PositionState,
    TokenId,
    Variant,
)
from ..state.accumulator import RewardAccumulator
from ..state.positions import PositionLedger
from ..state.registry import PoolRegistry
from .access import AccessGate, require_privileged
from .token_ledger import LedgerResolver

logger = logging.getLogger(__name__)

EventCallback = Callable[[PoolEvent], None]

# Operations reachable through `try_call`.
_OPERATIONS = frozenset(
    {
        "allow",
        "disallow",
        "set_reward_token",
        "distribute",
        "deposit",
        "claim",
        "withdraw",
        "sweep",
    }
)


def _require_id(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


class PoolEngine:
    """
    One engine instance owns every pool of one variant.

    Args:
        ledgers: resolves a token id to the ledger that moves it.
        gate: answers whether a caller may run admin operations.
        custody_account: the account holding staked principal and reward funds.
        variant: `Variant.STAKING` pays rewards in the staked token,
            `Variant.FARMING` in the pool's configured reward token.
        scale: fixed-point scale of the accumulator.
        check_invariants: re-check the pool totals and touched positions after every step.
    """

    def __init__(
        self,
        *,
        ledgers: LedgerResolver,
        gate: AccessGate,
        custody_account: AccountId,
        variant: Variant = Variant.STAKING,
        scale: int = SCALE,
        check_invariants: bool = True,
    ) -> None:
        self.ledgers = ledgers
        self.gate = gate
        self.custody_account = _require_id(custody_account, name="custody_account")
        self.variant = variant
        self.scale = require_scale(scale)
        self.check_invariants_on_step = check_invariants

        self.registry = PoolRegistry()
        self.accumulator = RewardAccumulator(self.scale)
        self.positions = PositionLedger()

        self.events: List[PoolEvent] = []
        self._subscribers: List[EventCallback] = []
        self._locked: set[TokenId] = set()

    # -- plumbing ------------------------------------------------------------

    def subscribe(self, callback: EventCallback) -> None:
        """Call *callback* with every event after its operation commits."""
        self._subscribers.append(callback)

    def _publish(self, events: List[PoolEvent]) -> None:
        for ev in events:
            self.events.append(ev)
            for cb in self._subscribers:
                try:
                    cb(ev)
                except Exception:
                    # The step has committed; a subscriber cannot turn it into a failure.
                    logger.exception("subscriber %r failed on %s event", cb, ev.event.value)

    @contextmanager
    def _guard(self, pool: TokenId) -> Iterator[None]:
        if pool in self._locked:
            raise ReentrantCall(f"pool {pool!r} is busy")
        self._locked.add(pool)
        try:
            yield
        finally:
            self._locked.discard(pool)

    @contextmanager
    def _atomic(
        self, pool: TokenId, op: str, accounts: Tuple[AccountId, ...] = ()
    ) -> Iterator[List[PoolEvent]]:
        """
        Run a step against *pool*; restore its records if anything raises.

        *accounts* names every position the step may write. Only those are
        saved and checked, so a step that writes none (``distribute``) costs
        O(1) whatever the number of depositors.
        """
        saved = (
            self.registry.snapshot(pool),
            self.accumulator.snapshot(pool),
            self.positions.snapshot(pool, accounts),
        )
        acc_before = self.accumulator.get(pool)
        positions_before = {a: self.positions.get(pool, a) for a in accounts}
        pending: List[PoolEvent] = []
        try:
            yield pending
            if self.check_invariants_on_step:
                violations = check_step(
                    acc_before,
                    self.accumulator.get(pool),
                    positions_before,
                    {a: self.positions.get(pool, a) for a in accounts},
                )
                if violations:
                    raise InvariantViolation(violations)
        except Exception as exc:
            self.registry.restore(pool, saved[0])
            self.accumulator.restore(pool, saved[1])
            self.positions.restore(pool, saved[2])
            logger.warning("%s on pool %s rolled back: %s", op, pool, exc)
            raise
        self._publish(pending)

    def _require_allowed(self, pool: TokenId) -> None:
        if not self.registry.is_allowed(pool):
            raise TokenNotAllowed(f"pool {pool!r} is not allowed")

    def _call_ledger(self, token: TokenId, fn: str, *args: Any) -> None:
        ledger = self.ledgers(token)
        try:
            ok = getattr(ledger, fn)(*args)
        except StakePoolError:
            raise
        except Exception as exc:
            raise TransferFailed(f"{fn} of {token!r} raised: {exc}") from exc
        if not ok:
            raise TransferFailed(f"{fn} of {token!r} failed")

    def _pay(self, token: TokenId, to: AccountId, amount: int) -> None:
        self._call_ledger(token, "transfer", to, amount)

    def _pull(self, token: TokenId, owner: AccountId, amount: int) -> None:
        self._call_ledger(token, "transfer_from", owner, self.custody_account, amount)

    # -- registry administration --------------------------------------------

    def allow(self, caller: AccountId, token: TokenId) -> None:
        """Open *token* for deposits, claims and distributions."""
        require_privileged(self.gate, caller)
        _require_id(token, name="token")
        with self._guard(token), self._atomic(token, "allow") as pending:
            self.registry.allow(token)
            pending.append(PoolEvent(Event.POOL_ALLOWED, token, account=caller))
        logger.info("pool %s allowed by %s", token, caller)

    def disallow(self, caller: AccountId, token: TokenId) -> None:
        """Close *token*. Existing positions and accumulator history are kept."""
        require_privileged(self.gate, caller)
        _require_id(token, name="token")
        with self._guard(token), self._atomic(token, "disallow") as pending:
            self.registry.disallow(token)
            pending.append(PoolEvent(Event.POOL_DISALLOWED, token, account=caller))
        logger.info("pool %s disallowed by %s", token, caller)

    def set_reward_token(self, caller: AccountId, pool: TokenId, reward_token: TokenId) -> None:
        """
        Choose the token a farming pool pays rewards in.

        The accumulator counts abstract reward units, not a currency. Switching
        the reward token does not reprice anything already accrued: every unit
        still owed is paid, at claim time, in whichever token is configured
        then. Operators changing this must fund custody in the new token.
        """
        require_privileged(self.gate, caller)
        if self.variant is not Variant.FARMING:
            raise UnsupportedOperation("staking pools pay rewards in the staked token")
        _require_id(reward_token, name="reward_token")
        with self._guard(pool), self._atomic(pool, "set_reward_token") as pending:
            self._require_allowed(pool)
            self.registry.set_reward_token(pool, reward_token)
            pending.append(PoolEvent(Event.REWARD_TOKEN_SET, pool, account=caller, token=reward_token))
        logger.info("pool %s reward token set to %s by %s", pool, reward_token, caller)

    # -- rewards --------------------------------------------------------------

    def distribute(self, caller: AccountId, pool: TokenId, reward_amount: int) -> int:
        """
        Credit *reward_amount* to everyone staked in *pool*, pro rata.

        O(1): only the pool accumulator changes. Returns the accumulator delta.
        Custody must already hold (or later receive) the reward tokens.
        """
        require_privileged(self.gate, caller)
        with self._guard(pool), self._atomic(pool, "distribute") as pending:
            self._require_allowed(pool)
            delta = self.accumulator.distribute(pool, reward_amount)
            pending.append(PoolEvent(Event.DISTRIBUTED, pool, account=caller, amount=reward_amount))
        logger.info(
            "distributed %d to pool %s (total_staked=%d, delta_per_unit=%d)",
            reward_amount, pool, self.accumulator.total_staked(pool), delta,
        )
        return delta

    def payout_token(self, pool: TokenId) -> Optional[TokenId]:
        """Token a claim on *pool* pays in right now (None: farming pool not configured)."""
        if self.variant is Variant.STAKING:
            return pool
        return self.registry.reward_token(pool)

    # -- depositor operations -------------------------------------------------

    def deposit(self, caller: AccountId, pool: TokenId, amount: int) -> None:
        """
        Stake *amount* of *pool* from *caller*.

        The principal is pulled first; nothing else happens unless the pull
        succeeds. A fresh position is then anchored at the current accumulator,
        so it earns nothing from earlier distributions. Topping up an active
        position also pays out everything owed to the caller; if that payout
        fails, the pulled principal is refunded and the deposit leaves no trace.
        """
        _require_id(caller, name="caller")
        amount = require_amount(amount, name="amount")
        with self._guard(pool):
            self._require_allowed(pool)
            if amount == 0:
                raise ZeroAmount("deposit amount must be non-zero")

            with self._atomic(pool, "deposit", (caller,)) as pending:
                self._pull(pool, caller, amount)
                if not self.positions.get(pool, caller).is_empty:
                    try:
                        self._settle(caller, pool, caller, pending)
                    except Exception:
                        self._refund(pool, caller, amount)
                        raise

                pos = self.positions.get(pool, caller)
                if pos.is_empty:
                    new_pos = PositionState(
                        staked_amount=amount,
                        settled_reward_per_unit=self.accumulator.cumulative(pool),
                    )
                else:
                    new_pos = replace(pos, staked_amount=pos.staked_amount + amount)
                self.positions.set(pool, caller, new_pos)
                self.accumulator.add_stake(pool, amount)
                pending.append(PoolEvent(Event.DEPOSITED, pool, account=caller, amount=amount))
        logger.debug("deposit %s %d by %s", pool, amount, caller)

    def _refund(self, pool: TokenId, to: AccountId, amount: int) -> None:
        """Return principal pulled by a deposit that is being rolled back."""
        try:
            self._pay(pool, to, amount)
        except StakePoolError:
            # The deposit's own error is what the caller sees.
            logger.exception("refund of %d %s to %s failed", amount, pool, to)

    def claim(self, caller: AccountId, pool: TokenId, receiver: Optional[AccountId] = None) -> int:
        """Pay *caller*'s accrued reward to *receiver* (default: the caller). Returns the payout."""
        _require_id(caller, name="caller")
        if receiver is not None:
            _require_id(receiver, name="receiver")
        with self._guard(pool):
            return self._claim(caller, pool, receiver)

    def _claim(self, caller: AccountId, pool: TokenId, receiver: Optional[AccountId]) -> int:
        self._require_allowed(pool)
        to = receiver if receiver is not None else caller
        with self._atomic(pool, "claim", (caller,)) as pending:
            payout = self._settle(caller, pool, to, pending)
        logger.debug("claim %s %d by %s to %s", pool, payout, caller, to)
        return payout

    def _settle(self, caller: AccountId, pool: TokenId, to: AccountId, pending: List[PoolEvent]) -> int:
        """Settle *caller*'s position and pay what it is owed. Runs inside an `_atomic` step."""
        pos = self.positions.get(pool, caller)
        cumulative = self.accumulator.cumulative(pool)
        payout = claimable(pos.staked_amount, cumulative, pos.settled_reward_per_unit, self.scale)

        # Settle before paying.
        if not pos.is_empty:
            self.positions.set(pool, caller, replace(pos, settled_reward_per_unit=cumulative))

        token: Optional[TokenId] = None
        if payout > 0:
            token = self.payout_token(pool)
            if token is None:
                raise RewardTokenNotSet(f"pool {pool!r} has no reward token")
            self.accumulator.record_claim(pool, payout)
            self._pay(token, to, payout)
        pending.append(PoolEvent(Event.CLAIMED, pool, account=caller, amount=payout, receiver=to, token=token))
        return payout

    def withdraw(self, caller: AccountId, pool: TokenId, amount: int) -> None:
        """
        Return *amount* of principal to *caller*, after claiming all accrued reward.

        The claim commits on its own; if the principal transfer then fails,
        only the principal step is rolled back.
        """
        _require_id(caller, name="caller")
        amount = require_amount(amount, name="amount")
        with self._guard(pool):
            self._require_allowed(pool)
            staked = self.positions.get(pool, caller).staked_amount
            if staked == 0:
                raise InsufficientPosition(f"{caller!r} has no stake in {pool!r}")
            if amount == 0:
                raise ZeroAmount("withdraw amount must be non-zero")
            if amount > staked:
                raise InsufficientPosition(f"withdraw {amount} exceeds stake {staked}")

            self._claim(caller, pool, None)

            with self._atomic(pool, "withdraw", (caller,)) as pending:
                pos = self.positions.get(pool, caller)
                self.positions.set(pool, caller, replace(pos, staked_amount=pos.staked_amount - amount))
                self.accumulator.remove_stake(pool, amount)
                self._pay(pool, caller, amount)
                pending.append(PoolEvent(Event.WITHDRAWN, pool, account=caller, amount=amount))
        logger.debug("withdraw %s %d by %s", pool, amount, caller)

    # -- escape hatch ---------------------------------------------------------

    def sweep(self, caller: AccountId, token: TokenId, amount: int, to: AccountId) -> None:
        """
        Force-transfer *amount* of *token* out of custody, bypassing all accounting.

        For operator-controlled incident recovery only: depositor records are
        left as they are, so swept principal can no longer be withdrawn.
        """
        require_privileged(self.gate, caller)
        _require_id(token, name="token")
        _require_id(to, name="to")
        amount = require_amount(amount, name="amount")
        if amount == 0:
            raise ZeroAmount("sweep amount must be non-zero")
        self._pay(token, to, amount)
        self._publish([PoolEvent(Event.SWEPT, token, account=caller, amount=amount, receiver=to, token=token)])
        logger.warning("swept %d of %s to %s by %s", amount, token, to, caller)

    # -- queries --------------------------------------------------------------

    def preview_claim(self, pool: TokenId, depositor: AccountId) -> ClaimPreview:
        """What `claim` would pay *depositor* right now. Never mutates state."""
        pos = self.positions.get(pool, depositor)
        cumulative = self.accumulator.cumulative(pool)
        return ClaimPreview(
            staked_amount=pos.staked_amount,
            owed_per_unit=owed_per_unit(cumulative, pos.settled_reward_per_unit),
            claimable=claimable(pos.staked_amount, cumulative, pos.settled_reward_per_unit, self.scale),
        )

    def position(self, pool: TokenId, depositor: AccountId) -> PositionState:
        return self.positions.get(pool, depositor)

    def pool_view(self, pool: TokenId) -> PoolState:
        entry = self.registry.get(pool)
        acc = self.accumulator.get(pool)
        return PoolState(
            token=pool,
            allowed=entry.allowed,
            reward_token=self.payout_token(pool),
            total_staked=acc.total_staked,
            cumulative_reward_per_unit=acc.cumulative_reward_per_unit,
            total_distributed=acc.total_distributed,
            total_claimed=acc.total_claimed,
        )

    def check_invariants(self) -> list[str]:
        """Violated invariant ids across every pool (empty = healthy)."""
        return check_all(self.accumulator.get_all(), self.positions.get_all())

    def try_call(self, op: str, *args: Any, **kwargs: Any) -> OpResult:
        """Like calling the operation directly, but returns an `OpResult` instead of raising."""
        if op not in _OPERATIONS:
            return OpResult(ok=False, error=f"unknown operation: {op}")
        try:
            value = getattr(self, op)(*args, **kwargs)
        except (StakePoolError, ValueError, TypeError) as exc:
            return OpResult(ok=False, error=f"{type(exc).__name__}: {exc}")
        return OpResult(ok=True, value=value)

    def __repr__(self) -> str:
        return (
            f"PoolEngine(variant={self.variant.value}, pools={len(list(self.registry.tokens()))}, "
            f"custody={self.custody_account!r})"
        )
