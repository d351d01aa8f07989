"""Tests for stakepool/integration/engine.py: PoolEngine operations end-to-end.

Every test runs against the in-memory `TokenBank`, so token balances can be
checked alongside the engine's own accounting.
"""

from __future__ import annotations

import logging

import pytest

from stakepool.core.errors import (
    DistributionWithNoStake,
    InsufficientPosition,
    RewardTokenNotSet,
    TokenNotAllowed,
    TransferFailed,
    Unauthorized,
    UnsupportedOperation,
    ZeroAmount,
)
from stakepool.core.math import SCALE
from stakepool.core.types import ClaimPreview, Event, PositionState, Variant
from stakepool.integration import OperatorGate, PoolEngine, TokenBank

OPS = "ops"
CUSTODY = "custody"
STK = "STK"
RWD = "RWD"


def _make_engine(variant: Variant = Variant.STAKING, *, tokens=(STK,)) -> tuple[PoolEngine, TokenBank]:
    bank = TokenBank(CUSTODY)
    engine = PoolEngine(
        ledgers=bank,
        gate=OperatorGate([OPS]),
        custody_account=CUSTODY,
        variant=variant,
    )
    for t in tokens:
        engine.allow(OPS, t)
    return engine, bank


def _fund(bank: TokenBank, account: str, amount: int, token: str = STK) -> None:
    bank.mint(account, token, amount)
    bank.approve(account, token, bank.book.allowance(account, CUSTODY, token) + amount)


def _stake(engine: PoolEngine, bank: TokenBank, account: str, amount: int, token: str = STK) -> None:
    _fund(bank, account, amount, token)
    engine.deposit(account, token, amount)


def _events(engine: PoolEngine, kind: Event) -> list:
    return [e for e in engine.events if e.event == kind]


# ---------------------------------------------------------------------------
# registry administration
# ---------------------------------------------------------------------------

class TestAllowDisallow:
    def test_allow_requires_operator(self):
        engine, _ = _make_engine(tokens=())
        with pytest.raises(Unauthorized):
            engine.allow("mallory", STK)
        assert not engine.pool_view(STK).allowed

    def test_allow_emits_event(self):
        engine, _ = _make_engine(tokens=())
        engine.allow(OPS, STK)
        assert engine.pool_view(STK).allowed
        assert engine.events[-1].event == Event.POOL_ALLOWED
        assert engine.events[-1].pool == STK

    def test_disallow_keeps_positions(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 50)
        engine.disallow(OPS, STK)
        view = engine.pool_view(STK)
        assert not view.allowed
        assert view.total_staked == 50
        assert engine.position(STK, "alice").staked_amount == 50

    def test_disallow_requires_operator(self):
        engine, _ = _make_engine()
        with pytest.raises(Unauthorized):
            engine.disallow("mallory", STK)
        assert engine.pool_view(STK).allowed

    def test_reallow_restores_access(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 50)
        engine.disallow(OPS, STK)
        engine.allow(OPS, STK)
        engine.withdraw("alice", STK, 50)
        assert bank.balance_of("alice", STK) == 50


class TestDisallowedPoolRejectsAllOps:
    def _disallowed(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        engine.disallow(OPS, STK)
        _fund(bank, "alice", 10)
        return engine, bank

    def test_deposit(self):
        engine, _ = self._disallowed()
        with pytest.raises(TokenNotAllowed):
            engine.deposit("alice", STK, 10)

    def test_claim(self):
        engine, _ = self._disallowed()
        with pytest.raises(TokenNotAllowed):
            engine.claim("alice", STK)

    def test_withdraw(self):
        engine, _ = self._disallowed()
        with pytest.raises(TokenNotAllowed):
            engine.withdraw("alice", STK, 10)

    def test_distribute(self):
        engine, _ = self._disallowed()
        with pytest.raises(TokenNotAllowed):
            engine.distribute(OPS, STK, 10)

    def test_never_allowed_pool(self):
        engine, bank = _make_engine(tokens=())
        _fund(bank, "alice", 10)
        with pytest.raises(TokenNotAllowed):
            engine.deposit("alice", STK, 10)


# ---------------------------------------------------------------------------
# distribute
# ---------------------------------------------------------------------------

class TestDistribute:
    def test_scenario_forty_sixty(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 40)
        _stake(engine, bank, "bob", 60)
        bank.mint(CUSTODY, STK, 10)

        delta = engine.distribute(OPS, STK, 10)
        assert delta == 10 * SCALE // 100 == 10**17
        assert engine.pool_view(STK).cumulative_reward_per_unit == 10**17

        assert engine.claim("alice", STK) == 4
        assert engine.claim("bob", STK) == 6
        assert bank.balance_of("alice", STK) == 4
        assert bank.balance_of("bob", STK) == 6

    def test_does_not_visit_positions(self, monkeypatch):
        engine, bank = _make_engine()
        for i in range(50):
            _stake(engine, bank, f"user{i}", 10)
        visited = []
        real_get = engine.positions.get

        def spy_get(token, account):
            visited.append(account)
            return real_get(token, account)

        monkeypatch.setattr(engine.positions, "get", spy_get)
        monkeypatch.setattr(engine.positions, "get_all", lambda: pytest.fail("full position scan"))
        engine.distribute(OPS, STK, 500)
        assert visited == []

        engine.claim("user7", STK)
        assert set(visited) == {"user7"}

    def test_requires_operator(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 40)
        with pytest.raises(Unauthorized):
            engine.distribute("alice", STK, 10)

    def test_empty_pool_rejected(self):
        engine, _ = _make_engine()
        with pytest.raises(DistributionWithNoStake):
            engine.distribute(OPS, STK, 10)
        assert engine.pool_view(STK).cumulative_reward_per_unit == 0
        assert _events(engine, Event.DISTRIBUTED) == []

    def test_zero_rejected(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 40)
        with pytest.raises(ZeroAmount):
            engine.distribute(OPS, STK, 0)

    def test_accumulator_monotone(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 7)
        seen = [engine.pool_view(STK).cumulative_reward_per_unit]
        for r in (1, 2, 3, 1000):
            engine.distribute(OPS, STK, r)
            seen.append(engine.pool_view(STK).cumulative_reward_per_unit)
        assert seen == sorted(seen)
        assert len(set(seen)) == len(seen)

    def test_does_not_touch_positions(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 40)
        before = engine.position(STK, "alice")
        engine.distribute(OPS, STK, 10)
        assert engine.position(STK, "alice") == before


# ---------------------------------------------------------------------------
# deposit
# ---------------------------------------------------------------------------

class TestDeposit:
    def test_fresh_position_anchored(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        engine.distribute(OPS, STK, 50)

        _stake(engine, bank, "bob", 100)
        cumulative = engine.pool_view(STK).cumulative_reward_per_unit
        assert engine.position(STK, "bob") == PositionState(100, cumulative)
        assert engine.preview_claim(STK, "bob").claimable == 0

    def test_late_joiner_gets_nothing_from_past_distribution(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        bank.mint(CUSTODY, STK, 50)
        engine.distribute(OPS, STK, 50)
        _stake(engine, bank, "bob", 100)
        assert engine.claim("bob", STK) == 0
        assert engine.claim("alice", STK) == 50

    def test_moves_tokens_and_totals(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 30)
        _stake(engine, bank, "bob", 70)
        assert bank.balance_of(CUSTODY, STK) == 100
        assert engine.pool_view(STK).total_staked == 100
        ev = _events(engine, Event.DEPOSITED)
        assert [(e.account, e.amount) for e in ev] == [("alice", 30), ("bob", 70)]

    def test_top_up_claims_first(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        bank.mint(CUSTODY, STK, 20)
        engine.distribute(OPS, STK, 20)

        _stake(engine, bank, "alice", 50)
        assert bank.balance_of("alice", STK) == 20  # reward paid out, principal pulled
        assert engine.position(STK, "alice").staked_amount == 150
        assert engine.preview_claim(STK, "alice").claimable == 0
        kinds = [e.event for e in engine.events[-2:]]
        assert kinds == [Event.CLAIMED, Event.DEPOSITED]

    def test_top_up_failed_pull_leaves_no_trace(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        bank.mint(CUSTODY, STK, 20)
        engine.distribute(OPS, STK, 20)
        before = engine.position(STK, "alice")
        n_events = len(engine.events)

        bank.mint("alice", STK, 50)  # allowance from the first deposit is spent
        with pytest.raises(TransferFailed):
            engine.deposit("alice", STK, 50)
        assert engine.position(STK, "alice") == before
        assert bank.balance_of("alice", STK) == 50
        assert engine.preview_claim(STK, "alice").claimable == 20
        assert engine.pool_view(STK).total_claimed == 0
        assert len(engine.events) == n_events

    def test_top_up_failed_reward_refunds_principal(self):
        engine, bank = _make_engine(Variant.FARMING)
        engine.set_reward_token(OPS, STK, RWD)
        _stake(engine, bank, "alice", 10)
        engine.distribute(OPS, STK, 5)  # custody holds no RWD
        before = engine.position(STK, "alice")
        n_events = len(engine.events)

        _fund(bank, "alice", 50)
        with pytest.raises(TransferFailed):
            engine.deposit("alice", STK, 50)
        assert engine.position(STK, "alice") == before
        assert engine.pool_view(STK).total_staked == 10
        assert bank.balance_of("alice", STK) == 50
        assert bank.balance_of(CUSTODY, STK) == 10
        assert len(engine.events) == n_events

    def test_zero_rejected(self):
        engine, _ = _make_engine()
        with pytest.raises(ZeroAmount):
            engine.deposit("alice", STK, 0)

    def test_bad_amount_type(self):
        engine, _ = _make_engine()
        with pytest.raises(TypeError):
            engine.deposit("alice", STK, 1.5)
        with pytest.raises(ValueError):
            engine.deposit("alice", STK, -3)

    def test_unapproved_pull_rolls_back(self):
        engine, bank = _make_engine()
        bank.mint("alice", STK, 100)  # no approval
        with pytest.raises(TransferFailed):
            engine.deposit("alice", STK, 100)
        assert engine.position(STK, "alice").is_empty
        assert engine.pool_view(STK).total_staked == 0
        assert bank.balance_of("alice", STK) == 100
        assert _events(engine, Event.DEPOSITED) == []
        assert engine.check_invariants() == []

    def test_insufficient_balance_rolls_back(self):
        engine, bank = _make_engine()
        bank.approve("alice", STK, 100)
        with pytest.raises(TransferFailed):
            engine.deposit("alice", STK, 100)
        assert engine.pool_view(STK).total_staked == 0


# ---------------------------------------------------------------------------
# claim
# ---------------------------------------------------------------------------

class TestClaim:
    def test_no_double_payout(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        bank.mint(CUSTODY, STK, 5)
        engine.distribute(OPS, STK, 5)
        assert engine.claim("alice", STK) == 5
        assert engine.claim("alice", STK) == 0
        assert bank.balance_of("alice", STK) == 5

    def test_receiver(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        bank.mint(CUSTODY, STK, 5)
        engine.distribute(OPS, STK, 5)
        assert engine.claim("alice", STK, receiver="vault") == 5
        assert bank.balance_of("vault", STK) == 5
        assert bank.balance_of("alice", STK) == 0
        ev = engine.events[-1]
        assert (ev.event, ev.account, ev.receiver, ev.amount, ev.token) == (
            Event.CLAIMED, "alice", "vault", 5, STK,
        )

    def test_zero_stake_claims_nothing(self):
        engine, _ = _make_engine()
        assert engine.claim("nobody", STK) == 0
        assert engine.events[-1].amount == 0
        assert engine.positions.get_all() == {}

    def test_accrues_across_distributions(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 25)
        _stake(engine, bank, "bob", 75)
        bank.mint(CUSTODY, STK, 400)
        engine.distribute(OPS, STK, 100)
        engine.distribute(OPS, STK, 300)
        assert engine.claim("alice", STK) == 100
        assert engine.claim("bob", STK) == 300

    def test_failed_payout_rolls_back_settlement(self):
        engine, bank = _make_engine(Variant.FARMING)
        engine.set_reward_token(OPS, STK, RWD)
        _stake(engine, bank, "alice", 10)
        engine.distribute(OPS, STK, 5)  # custody holds no RWD

        before = engine.position(STK, "alice")
        with pytest.raises(TransferFailed):
            engine.claim("alice", STK)
        assert engine.position(STK, "alice") == before
        assert engine.preview_claim(STK, "alice").claimable == 5
        assert engine.pool_view(STK).total_claimed == 0
        assert _events(engine, Event.CLAIMED) == []

        bank.mint(CUSTODY, RWD, 5)
        assert engine.claim("alice", STK) == 5

    def test_preview_matches_claim(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 3)
        _stake(engine, bank, "bob", 7)
        bank.mint(CUSTODY, STK, 1_000)
        engine.distribute(OPS, STK, 333)
        engine.distribute(OPS, STK, 17)
        for who in ("alice", "bob"):
            preview = engine.preview_claim(STK, who)
            assert engine.claim(who, STK) == preview.claimable

    def test_preview_does_not_mutate(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 40)
        _stake(engine, bank, "bob", 60)
        engine.distribute(OPS, STK, 10)
        n_events = len(engine.events)
        p1 = engine.preview_claim(STK, "alice")
        p2 = engine.preview_claim(STK, "alice")
        assert p1 == p2 == ClaimPreview(staked_amount=40, owed_per_unit=10**17, claimable=4)
        assert len(engine.events) == n_events


# ---------------------------------------------------------------------------
# withdraw
# ---------------------------------------------------------------------------

class TestWithdraw:
    def test_partial_decrements_position_and_total(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        _stake(engine, bank, "bob", 50)
        engine.withdraw("alice", STK, 30)
        assert engine.position(STK, "alice").staked_amount == 70
        assert engine.pool_view(STK).total_staked == 120
        assert bank.balance_of("alice", STK) == 30
        assert engine.check_invariants() == []

    def test_full_withdraw_empties_position(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        engine.withdraw("alice", STK, 100)
        assert engine.position(STK, "alice").is_empty
        assert engine.pool_view(STK).total_staked == 0
        assert bank.balance_of("alice", STK) == 100

    def test_pays_reward_then_principal(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 100)
        bank.mint(CUSTODY, STK, 10)
        engine.distribute(OPS, STK, 10)
        engine.withdraw("alice", STK, 100)
        assert bank.balance_of("alice", STK) == 110
        kinds = [e.event for e in engine.events[-2:]]
        assert kinds == [Event.CLAIMED, Event.WITHDRAWN]

    def test_cannot_exceed_stake(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        _stake(engine, bank, "bob", 1_000)
        with pytest.raises(InsufficientPosition):
            engine.withdraw("alice", STK, 11)
        assert engine.position(STK, "alice").staked_amount == 10
        assert bank.balance_of("alice", STK) == 0

    def test_no_stake(self):
        engine, _ = _make_engine()
        with pytest.raises(InsufficientPosition):
            engine.withdraw("alice", STK, 1)

    def test_zero_rejected(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        with pytest.raises(ZeroAmount):
            engine.withdraw("alice", STK, 0)

    def test_empty_position_excluded_from_later_distributions(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 50)
        _stake(engine, bank, "bob", 50)
        engine.withdraw("alice", STK, 50)
        bank.mint(CUSTODY, STK, 100)
        engine.distribute(OPS, STK, 100)
        assert engine.preview_claim(STK, "alice").claimable == 0

        _stake(engine, bank, "alice", 50)
        assert engine.claim("alice", STK) == 0
        assert engine.claim("bob", STK) == 100

    def test_failed_principal_transfer_keeps_claim(self):
        engine, bank = _make_engine(Variant.FARMING)
        engine.set_reward_token(OPS, STK, RWD)
        _stake(engine, bank, "alice", 10)
        bank.mint(CUSTODY, RWD, 5)
        engine.distribute(OPS, STK, 5)
        engine.sweep(OPS, STK, 10, "treasury")  # custody loses the principal

        with pytest.raises(TransferFailed):
            engine.withdraw("alice", STK, 10)
        # reward leg committed, principal leg rolled back
        assert bank.balance_of("alice", RWD) == 5
        assert engine.position(STK, "alice").staked_amount == 10
        assert engine.pool_view(STK).total_staked == 10
        assert _events(engine, Event.WITHDRAWN) == []


# ---------------------------------------------------------------------------
# farming variant
# ---------------------------------------------------------------------------

class TestFarming:
    def test_set_reward_token_staking_variant(self):
        engine, _ = _make_engine()
        with pytest.raises(UnsupportedOperation):
            engine.set_reward_token(OPS, STK, RWD)

    def test_set_reward_token_requires_allowed(self):
        engine, _ = _make_engine(Variant.FARMING, tokens=())
        with pytest.raises(TokenNotAllowed):
            engine.set_reward_token(OPS, STK, RWD)

    def test_set_reward_token_requires_operator(self):
        engine, _ = _make_engine(Variant.FARMING)
        with pytest.raises(Unauthorized):
            engine.set_reward_token("mallory", STK, RWD)

    def test_rewards_paid_in_reward_token(self):
        engine, bank = _make_engine(Variant.FARMING)
        engine.set_reward_token(OPS, STK, RWD)
        _stake(engine, bank, "alice", 40)
        _stake(engine, bank, "bob", 60)
        bank.mint(CUSTODY, RWD, 1_000)
        engine.distribute(OPS, STK, 1_000)

        assert engine.claim("alice", STK) == 400
        assert bank.balance_of("alice", RWD) == 400
        assert bank.balance_of("alice", STK) == 0
        engine.withdraw("bob", STK, 60)
        assert bank.balance_of("bob", RWD) == 600
        assert bank.balance_of("bob", STK) == 60

    def test_missing_reward_token(self):
        engine, bank = _make_engine(Variant.FARMING)
        _stake(engine, bank, "alice", 10)
        engine.distribute(OPS, STK, 5)
        with pytest.raises(RewardTokenNotSet):
            engine.claim("alice", STK)
        assert engine.preview_claim(STK, "alice").claimable == 5

    def test_switching_reward_token_changes_currency_not_units(self):
        engine, bank = _make_engine(Variant.FARMING)
        engine.set_reward_token(OPS, STK, RWD)
        _stake(engine, bank, "alice", 10)
        engine.distribute(OPS, STK, 7)

        engine.set_reward_token(OPS, STK, "RWD2")
        bank.mint(CUSTODY, "RWD2", 7)
        assert engine.claim("alice", STK) == 7
        assert bank.balance_of("alice", "RWD2") == 7
        assert bank.balance_of("alice", RWD) == 0
        assert engine.pool_view(STK).reward_token == "RWD2"


# ---------------------------------------------------------------------------
# sweep
# ---------------------------------------------------------------------------

class TestSweep:
    def test_moves_custody_funds(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        engine.sweep(OPS, STK, 4, "treasury")
        assert bank.balance_of("treasury", STK) == 4
        assert bank.balance_of(CUSTODY, STK) == 6
        # accounting untouched
        assert engine.pool_view(STK).total_staked == 10
        assert engine.events[-1].event == Event.SWEPT

    def test_requires_operator(self):
        engine, bank = _make_engine()
        bank.mint(CUSTODY, STK, 10)
        with pytest.raises(Unauthorized):
            engine.sweep("alice", STK, 10, "alice")

    def test_zero_rejected(self):
        engine, _ = _make_engine()
        with pytest.raises(ZeroAmount):
            engine.sweep(OPS, STK, 0, "treasury")

    def test_insufficient_custody(self):
        engine, _ = _make_engine()
        with pytest.raises(TransferFailed):
            engine.sweep(OPS, STK, 1, "treasury")

    def test_any_token(self):
        engine, bank = _make_engine()
        bank.mint(CUSTODY, "STRAY", 3)
        engine.sweep(OPS, "STRAY", 3, "treasury")
        assert bank.balance_of("treasury", "STRAY") == 3


# ---------------------------------------------------------------------------
# events, try_call, queries
# ---------------------------------------------------------------------------

class TestEventsAndResults:
    def test_subscriber_sees_committed_events_only(self):
        engine, bank = _make_engine()
        seen = []
        engine.subscribe(seen.append)
        bank.mint("alice", STK, 10)
        with pytest.raises(TransferFailed):
            engine.deposit("alice", STK, 10)  # not approved
        assert seen == []
        bank.approve("alice", STK, 10)
        engine.deposit("alice", STK, 10)
        assert [e.event for e in seen] == [Event.DEPOSITED]

    def test_failing_subscriber_does_not_fail_step(self, caplog):
        engine, bank = _make_engine()

        def broken(ev):
            raise RuntimeError("downstream unavailable")

        seen = []
        engine.subscribe(broken)
        engine.subscribe(seen.append)
        _fund(bank, "alice", 10)
        with caplog.at_level(logging.ERROR, logger="stakepool.integration.engine"):
            engine.deposit("alice", STK, 10)
        assert engine.position(STK, "alice") == PositionState(staked_amount=10)
        assert engine.events[-1].event == Event.DEPOSITED
        assert [e.event for e in seen] == [Event.DEPOSITED]
        assert "subscriber" in caplog.text

    def test_try_call_ok(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 10)
        res = engine.try_call("distribute", OPS, STK, 10)
        assert res.ok
        assert res.value == 10 * SCALE // 10

    def test_try_call_error(self):
        engine, _ = _make_engine()
        res = engine.try_call("distribute", OPS, STK, 10)
        assert not res.ok
        assert res.error.startswith("DistributionWithNoStake")

    def test_try_call_unknown(self):
        engine, _ = _make_engine()
        res = engine.try_call("preview_claim", STK, "alice")
        assert not res.ok
        assert "unknown operation" in res.error

    def test_pool_view_staking_reward_token_is_pool(self):
        engine, _ = _make_engine()
        assert engine.pool_view(STK).reward_token == STK
        assert engine.payout_token(STK) == STK

    def test_invariants_hold_after_mixed_flow(self):
        engine, bank = _make_engine()
        _stake(engine, bank, "alice", 13)
        _stake(engine, bank, "bob", 29)
        bank.mint(CUSTODY, STK, 1_000)
        engine.distribute(OPS, STK, 101)
        engine.withdraw("alice", STK, 5)
        engine.distribute(OPS, STK, 77)
        engine.claim("bob", STK)
        assert engine.check_invariants() == []
        view = engine.pool_view(STK)
        assert view.total_claimed <= view.total_distributed


class TestConstruction:
    def test_rejects_bad_scale(self):
        with pytest.raises(ValueError):
            PoolEngine(ledgers=TokenBank(CUSTODY), gate=OperatorGate([OPS]), custody_account=CUSTODY, scale=0)

    def test_rejects_empty_custody(self):
        with pytest.raises(ValueError):
            PoolEngine(ledgers=TokenBank(CUSTODY), gate=OperatorGate([OPS]), custody_account="")

    def test_small_scale_rounds_down(self):
        engine = PoolEngine(
            ledgers=TokenBank(CUSTODY), gate=OperatorGate([OPS]), custody_account=CUSTODY, scale=10,
        )
        bank = engine.ledgers
        engine.allow(OPS, STK)
        _stake(engine, bank, "alice", 1)
        _stake(engine, bank, "bob", 2)
        engine.distribute(OPS, STK, 1)  # delta = 10 // 3 = 3
        assert engine.preview_claim(STK, "alice").claimable == 0  # 1*3//10
        assert engine.preview_claim(STK, "bob").claimable == 0    # 2*3//10
