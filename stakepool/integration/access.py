"""
Privileged-caller gate for admin operations.

Identity is opaque here: a caller is whatever string the surrounding system
authenticated. The engine only asks the gate a yes/no question.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Set

from ..core.errors import Unauthorized
from ..core.types import AccountId


class AccessGate(Protocol):
    def is_privileged(self, caller: AccountId) -> bool: ...


class OperatorGate:
    """Gate backed by a fixed set of operator identities."""

    def __init__(self, operators: Iterable[AccountId] = ()) -> None:
        self._operators: Set[AccountId] = set()
        for op in operators:
            if not isinstance(op, str) or not op.strip():
                raise ValueError("operator ids must be non-empty strings")
            self._operators.add(op.strip())

    def is_privileged(self, caller: AccountId) -> bool:
        return caller in self._operators

    @property
    def operators(self) -> frozenset[AccountId]:
        return frozenset(self._operators)

    def transfer_privilege(self, caller: AccountId, new_operator: AccountId) -> None:
        """Hand *caller*'s operator capability to *new_operator*."""
        require_privileged(self, caller)
        if not isinstance(new_operator, str) or not new_operator.strip():
            raise ValueError("new_operator must be a non-empty string")
        self._operators.discard(caller)
        self._operators.add(new_operator.strip())

    def __repr__(self) -> str:
        return f"OperatorGate({len(self._operators)} operators)"


def require_privileged(gate: AccessGate, caller: AccountId) -> None:
    if not gate.is_privileged(caller):
        raise Unauthorized("operator only")
