"""
Pool ledger snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / audit trails.
- Round-trippable into a fresh `PoolEngine`.
- Explicit versioning.

Only engine-owned state is captured (registry, accumulator, positions). Token
balances live in the external ledgers and are not part of a snapshot.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..core.errors import InvariantViolation
from ..core.invariants import check_all
from ..core.types import AccumulatorState, PositionState, RegistryEntry, Variant
from ..state.canonical import CANONICAL_ENCODING_VERSION, canonical_json_bytes, domain_sep_bytes, sha256_hex
from .access import AccessGate
from .engine import PoolEngine
from .token_ledger import LedgerResolver


POOL_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Deterministic, versioned snapshot of a `PoolEngine`'s ledger state.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("pool_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("pool_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_engine(engine: PoolEngine, *, version: int = POOL_SNAPSHOT_VERSION) -> PoolSnapshot:
    if version != POOL_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    pools = []
    for token in engine.registry.tokens():
        entry = engine.registry.get(token)
        acc = engine.accumulator.get(token)
        pools.append(
            {
                "token": token,
                "allowed": entry.allowed,
                "reward_token": entry.reward_token,
                "total_staked": acc.total_staked,
                "cumulative_reward_per_unit": acc.cumulative_reward_per_unit,
                "total_distributed": acc.total_distributed,
                "total_claimed": acc.total_claimed,
            }
        )

    positions = [
        {
            "token": token,
            "account": account,
            "staked_amount": pos.staked_amount,
            "settled_reward_per_unit": pos.settled_reward_per_unit,
        }
        for (token, account), pos in engine.positions.get_all().items()
    ]
    positions.sort(key=lambda e: (e["token"], e["account"]))

    data = {
        "canonical_encoding_version": CANONICAL_ENCODING_VERSION,
        "variant": engine.variant.value,
        "scale": engine.scale,
        "custody_account": engine.custody_account,
        "pools": pools,
        "positions": positions,
    }
    return PoolSnapshot(version=version, data=data)


def restore_engine(
    snapshot: PoolSnapshot | Mapping[str, Any],
    *,
    ledgers: LedgerResolver,
    gate: AccessGate,
    check_invariants: bool = True,
) -> PoolEngine:
    """Build a new engine holding exactly the snapshot's ledger state."""
    data: Mapping[str, Any] = snapshot.data if isinstance(snapshot, PoolSnapshot) else snapshot

    encoding = data.get("canonical_encoding_version")
    if encoding != CANONICAL_ENCODING_VERSION:
        raise ValueError(f"unsupported canonical_encoding_version: {encoding!r}")

    variant = Variant(_require_str(data.get("variant"), name="variant"))
    engine = PoolEngine(
        ledgers=ledgers,
        gate=gate,
        custody_account=_require_str(data.get("custody_account"), name="custody_account"),
        variant=variant,
        scale=_require_int(data.get("scale"), name="scale"),
        check_invariants=check_invariants,
    )

    for i, p in enumerate(data.get("pools") or []):
        token = _require_str(p.get("token"), name=f"pools[{i}].token")
        reward_token: Optional[str] = p.get("reward_token")
        if reward_token is not None:
            _require_str(reward_token, name=f"pools[{i}].reward_token")
            if variant is not Variant.FARMING:
                raise ValueError(f"pools[{i}].reward_token is only valid for farming pools")
        allowed = p.get("allowed")
        if not isinstance(allowed, bool):
            raise TypeError(f"pools[{i}].allowed must be a bool")
        engine.registry.restore(token, RegistryEntry(allowed=allowed, reward_token=reward_token))
        engine.accumulator.restore(
            token,
            AccumulatorState(
                total_staked=_require_int(p.get("total_staked"), name=f"pools[{i}].total_staked"),
                cumulative_reward_per_unit=_require_int(
                    p.get("cumulative_reward_per_unit"), name=f"pools[{i}].cumulative_reward_per_unit"
                ),
                total_distributed=_require_int(p.get("total_distributed"), name=f"pools[{i}].total_distributed"),
                total_claimed=_require_int(p.get("total_claimed"), name=f"pools[{i}].total_claimed"),
            ),
        )

    for i, e in enumerate(data.get("positions") or []):
        engine.positions.set(
            _require_str(e.get("token"), name=f"positions[{i}].token"),
            _require_str(e.get("account"), name=f"positions[{i}].account"),
            PositionState(
                staked_amount=_require_int(e.get("staked_amount"), name=f"positions[{i}].staked_amount"),
                settled_reward_per_unit=_require_int(
                    e.get("settled_reward_per_unit"), name=f"positions[{i}].settled_reward_per_unit"
                ),
            ),
        )

    violations = check_all(engine.accumulator.get_all(), engine.positions.get_all())
    if violations:
        raise InvariantViolation(violations)
    return engine
