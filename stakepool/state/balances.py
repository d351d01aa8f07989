"""
Multi-token balance and allowance book for the in-memory token ledger.

Implements BalanceBook[AccountId, TokenId] -> Amount plus
Allowances[(owner, spender, TokenId)] -> Amount.
"""

from __future__ import annotations

from typing import Dict, Tuple

from ..core.types import AccountId, TokenId


Amount = int  # Non-negative integer (arbitrary precision)


class BalanceBook:
    """
    Balance book mapping (account, token) -> amount, with spend allowances.

    Note: balances live in a plain dict. Callers that need a deterministic
    order (snapshots, reports) sort keys explicitly.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[AccountId, TokenId], Amount] = {}
        self._allowances: Dict[Tuple[AccountId, AccountId, TokenId], Amount] = {}

    def balance_of(self, account: AccountId, token: TokenId) -> Amount:
        """Balance of *account* in *token*. Returns 0 if not found."""
        return self._balances.get((account, token), 0)

    def set_balance(self, account: AccountId, token: TokenId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Keep the table sparse
            self._balances.pop((account, token), None)
        else:
            self._balances[(account, token)] = amount

    def mint(self, account: AccountId, token: TokenId, amount: Amount) -> None:
        """Credit *amount* out of thin air (test fixtures, reward funding)."""
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self.set_balance(account, token, self.balance_of(account, token) + amount)

    def move(self, token: TokenId, src: AccountId, dst: AccountId, amount: Amount) -> bool:
        """
        Move *amount* of *token* from *src* to *dst*.

        Returns False (and changes nothing) if *src* cannot cover it.
        """
        if amount < 0:
            raise ValueError(f"Move amount must be non-negative: {amount}")
        available = self.balance_of(src, token)
        if available < amount:
            return False
        self.set_balance(src, token, available - amount)
        self.set_balance(dst, token, self.balance_of(dst, token) + amount)
        return True

    def allowance(self, owner: AccountId, spender: AccountId, token: TokenId) -> Amount:
        return self._allowances.get((owner, spender, token), 0)

    def approve(self, owner: AccountId, spender: AccountId, token: TokenId, amount: Amount) -> None:
        """Set (not add to) the amount *spender* may pull from *owner*."""
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        if amount == 0:
            self._allowances.pop((owner, spender, token), None)
        else:
            self._allowances[(owner, spender, token)] = amount

    def spend_allowance(self, owner: AccountId, spender: AccountId, token: TokenId, amount: Amount) -> bool:
        current = self.allowance(owner, spender, token)
        if current < amount:
            return False
        self.approve(owner, spender, token, current - amount)
        return True

    def total_supply(self, token: TokenId) -> Amount:
        return sum(amount for (_acct, t), amount in self._balances.items() if t == token)

    def get_all_balances(self) -> Dict[Tuple[AccountId, TokenId], Amount]:
        """Return a copy of all non-zero balances."""
        return dict(self._balances)

    def __repr__(self) -> str:
        return f"BalanceBook({len(self._balances)} balances, {len(self._allowances)} allowances)"
