"""
Engine configuration: a frozen `EngineConfig` plus a fail-closed YAML loader.

Example document::

    schema: stakepool/engine-config/v1
    variant: farming
    custody_account: pool-custody
    operators: [treasury-ops]
    pools:
      - token: LP-ETH-USDC
        reward_token: GOV

`STAKEPOOL_OPERATOR` (comma-separated) adds operators at load time, so a
deployment can inject its admin identity without editing the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

from .core.math import SCALE
from .core.types import Variant
from .integration.access import AccessGate, OperatorGate
from .integration.engine import PoolEngine
from .integration.token_ledger import LedgerResolver


CONFIG_SCHEMA = "stakepool/engine-config/v1"
OPERATOR_ENV = "STAKEPOOL_OPERATOR"


class ConfigError(ValueError):
    """Raised for a malformed or inconsistent engine configuration."""


@dataclass(frozen=True)
class EngineConfig:
    custody_account: str
    variant: Variant = Variant.STAKING
    # Fixed-point scale shared by distribute, claim and preview.
    scale: int = SCALE
    operators: Tuple[str, ...] = ()
    # Pools allowed at startup, and (farming only) their reward tokens.
    allowed_tokens: Tuple[str, ...] = ()
    reward_tokens: Tuple[Tuple[str, str], ...] = ()
    check_invariants: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.custody_account, str) or not self.custody_account.strip():
            raise ConfigError("custody_account must be a non-empty string")
        if not isinstance(self.variant, Variant):
            raise ConfigError("variant must be a Variant")
        if not isinstance(self.scale, int) or isinstance(self.scale, bool) or self.scale <= 0:
            raise ConfigError("scale must be a positive int")
        if len(set(self.allowed_tokens)) != len(self.allowed_tokens):
            raise ConfigError("duplicate pool token")
        if self.reward_tokens and self.variant is not Variant.FARMING:
            raise ConfigError("reward tokens are only valid for farming pools")
        for pool, _reward in self.reward_tokens:
            if pool not in self.allowed_tokens:
                raise ConfigError(f"reward token configured for unknown pool: {pool}")


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{name} must be an object")
    return obj


def _require_list(obj: Any, *, name: str) -> list[Any]:
    if obj is None:
        return []
    if not isinstance(obj, list):
        raise ConfigError(f"{name} must be a list")
    return obj


def _require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    return obj.strip()


def _operators_from_env(environ: Optional[Mapping[str, str]] = None) -> Tuple[str, ...]:
    env = os.environ if environ is None else environ
    raw = env.get(OPERATOR_ENV) or ""
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def config_from_mapping(
    root_obj: Any,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Validate a parsed config document and build an `EngineConfig`."""
    root = _require_mapping(root_obj, name="config")

    schema = _require_str(root.get("schema"), name="config.schema")
    if schema != CONFIG_SCHEMA:
        raise ConfigError(f"unsupported config.schema: {schema}")

    variant_raw = _require_str(root.get("variant", Variant.STAKING.value), name="config.variant")
    try:
        variant = Variant(variant_raw.lower())
    except ValueError as exc:
        raise ConfigError(f"unknown config.variant: {variant_raw}") from exc

    scale = root.get("scale", SCALE)
    if not isinstance(scale, int) or isinstance(scale, bool) or scale <= 0:
        raise ConfigError("config.scale must be a positive int")

    check = root.get("check_invariants", True)
    if not isinstance(check, bool):
        raise ConfigError("config.check_invariants must be a bool")

    operators: list[str] = []
    for i, op in enumerate(_require_list(root.get("operators"), name="config.operators")):
        operators.append(_require_str(op, name=f"config.operators[{i}]"))
    for op in _operators_from_env(environ):
        if op not in operators:
            operators.append(op)

    allowed: list[str] = []
    rewards: list[tuple[str, str]] = []
    for i, pool_obj in enumerate(_require_list(root.get("pools"), name="config.pools")):
        pool = _require_mapping(pool_obj, name=f"config.pools[{i}]")
        extra = set(pool) - {"token", "reward_token"}
        if extra:
            raise ConfigError(f"config.pools[{i}] has unknown fields: {sorted(extra)}")
        token = _require_str(pool.get("token"), name=f"config.pools[{i}].token")
        allowed.append(token)
        if pool.get("reward_token") is not None:
            rewards.append((token, _require_str(pool["reward_token"], name=f"config.pools[{i}].reward_token")))

    return EngineConfig(
        custody_account=_require_str(root.get("custody_account"), name="config.custody_account"),
        variant=variant,
        scale=scale,
        operators=tuple(operators),
        allowed_tokens=tuple(allowed),
        reward_tokens=tuple(rewards),
        check_invariants=check,
    )


def load_engine_config(
    path: Path | str,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Read and validate a YAML engine config file."""
    raw = Path(path).read_text(encoding="utf-8")
    try:
        doc = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    return config_from_mapping(doc, environ=environ)


def build_engine(
    config: EngineConfig,
    ledgers: LedgerResolver,
    *,
    gate: Optional[AccessGate] = None,
) -> PoolEngine:
    """Construct a `PoolEngine` with the configured pools already allowed."""
    engine = PoolEngine(
        ledgers=ledgers,
        gate=gate if gate is not None else OperatorGate(config.operators),
        custody_account=config.custody_account,
        variant=config.variant,
        scale=config.scale,
        check_invariants=config.check_invariants,
    )
    # Startup state, not operations: no events, no gate check.
    for token in config.allowed_tokens:
        engine.registry.allow(token)
    for pool, reward_token in config.reward_tokens:
        engine.registry.set_reward_token(pool, reward_token)
    return engine
