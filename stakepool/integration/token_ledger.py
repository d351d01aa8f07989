"""
Token ledger contract consumed by the pool engine, plus an in-memory reference.

The engine holds one custody account and talks to one ledger per token:

- ``transfer(to, amount)`` moves custody funds out,
- ``transfer_from(owner, to, amount)`` pulls pre-approved funds in.

Both return a bool. ``False`` means nothing moved; the engine turns it into
``TransferFailed`` and rolls the operation back.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Protocol

from ..core.types import AccountId, TokenId
from ..state.balances import BalanceBook


class TokenLedger(Protocol):
    def transfer(self, to: AccountId, amount: int) -> bool: ...

    def transfer_from(self, owner: AccountId, to: AccountId, amount: int) -> bool: ...


LedgerResolver = Callable[[TokenId], TokenLedger]


class InMemoryTokenLedger:
    """
    Ledger for one token over a shared ``BalanceBook``.

    ``holder`` is the account that calls the ledger (the engine's custody
    account): ``transfer`` debits it and ``transfer_from`` spends the owner's
    allowance granted to it.
    """

    def __init__(self, book: BalanceBook, token: TokenId, holder: AccountId) -> None:
        self.book = book
        self.token = token
        self.holder = holder

    def transfer(self, to: AccountId, amount: int) -> bool:
        return self.book.move(self.token, self.holder, to, amount)

    def transfer_from(self, owner: AccountId, to: AccountId, amount: int) -> bool:
        if self.book.balance_of(owner, self.token) < amount:
            return False
        if not self.book.spend_allowance(owner, self.holder, self.token, amount):
            return False
        return self.book.move(self.token, owner, to, amount)

    def __repr__(self) -> str:
        return f"InMemoryTokenLedger(token={self.token!r}, holder={self.holder!r})"


class TokenBank:
    """
    Resolver handing out one ``InMemoryTokenLedger`` per token.

    Instances are callable, so a bank can be passed directly as the engine's
    ``ledgers`` argument.
    """

    def __init__(self, holder: AccountId, book: Optional[BalanceBook] = None) -> None:
        self.holder = holder
        self.book = book if book is not None else BalanceBook()
        self._ledgers: Dict[TokenId, InMemoryTokenLedger] = {}

    def ledger_for(self, token: TokenId) -> InMemoryTokenLedger:
        ledger = self._ledgers.get(token)
        if ledger is None:
            ledger = InMemoryTokenLedger(self.book, token, self.holder)
            self._ledgers[token] = ledger
        return ledger

    __call__ = ledger_for

    def mint(self, account: AccountId, token: TokenId, amount: int) -> None:
        self.book.mint(account, token, amount)

    def approve(self, owner: AccountId, token: TokenId, amount: int) -> None:
        """Let the custody account pull up to *amount* of *token* from *owner*."""
        self.book.approve(owner, self.holder, token, amount)

    def balance_of(self, account: AccountId, token: TokenId) -> int:
        return self.book.balance_of(account, token)
