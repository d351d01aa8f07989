"""
Position ledger: per-(pool, depositor) stake and settlement snapshot.

Positions are never deleted. Once ``staked_amount`` returns to zero the record
stays as an empty position until a new deposit re-anchors its snapshot.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..core.types import AccountId, PositionState, TokenId


class PositionLedger:
    """Table mapping token -> depositor -> ``PositionState``."""

    def __init__(self) -> None:
        self._positions: Dict[TokenId, Dict[AccountId, PositionState]] = {}

    def get(self, token: TokenId, account: AccountId) -> PositionState:
        """Position for (token, account). Returns an empty position if not found."""
        return self._positions.get(token, {}).get(account, PositionState())

    def set(self, token: TokenId, account: AccountId, position: PositionState) -> None:
        self._positions.setdefault(token, {})[account] = position

    def get_all(self) -> Dict[Tuple[TokenId, AccountId], PositionState]:
        return {
            (token, account): pos
            for token, by_account in self._positions.items()
            for account, pos in by_account.items()
        }

    def snapshot(self, token: TokenId, accounts: Iterable[AccountId]) -> Dict[AccountId, Optional[PositionState]]:
        """Saved records for *accounts* only (None: no record yet)."""
        by_account = self._positions.get(token, {})
        return {account: by_account.get(account) for account in accounts}

    def restore(self, token: TokenId, snap: Mapping[AccountId, Optional[PositionState]]) -> None:
        for account, pos in snap.items():
            if pos is not None:
                self.set(token, account, pos)
                continue
            by_account = self._positions.get(token)
            if by_account is None:
                continue
            by_account.pop(account, None)
            if not by_account:
                del self._positions[token]

    def __repr__(self) -> str:
        n = sum(len(v) for v in self._positions.values())
        return f"PositionLedger({n} positions)"
