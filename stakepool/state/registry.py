"""
Pool registry: which tokens may be staked, and what each pool pays out in.

A pool comes into existence the first time it is allowed and is never
deleted; disallowing only clears the flag.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterator, Optional

from ..core.types import RegistryEntry, TokenId


class PoolRegistry:
    """Table mapping token -> ``RegistryEntry``."""

    def __init__(self) -> None:
        self._entries: Dict[TokenId, RegistryEntry] = {}

    def get(self, token: TokenId) -> RegistryEntry:
        """Entry for *token*. Unknown tokens read as a disallowed default entry."""
        return self._entries.get(token, RegistryEntry())

    def is_allowed(self, token: TokenId) -> bool:
        return self.get(token).allowed

    def known(self, token: TokenId) -> bool:
        return token in self._entries

    def allow(self, token: TokenId) -> None:
        self._entries[token] = replace(self.get(token), allowed=True)

    def disallow(self, token: TokenId) -> None:
        if token not in self._entries:
            # Record the pool anyway so its lifecycle starts here.
            self._entries[token] = RegistryEntry(allowed=False)
            return
        self._entries[token] = replace(self._entries[token], allowed=False)

    def reward_token(self, token: TokenId) -> Optional[TokenId]:
        return self.get(token).reward_token

    def set_reward_token(self, token: TokenId, reward_token: TokenId) -> None:
        if not isinstance(reward_token, str) or not reward_token:
            raise ValueError("reward_token must be a non-empty string")
        self._entries[token] = replace(self.get(token), reward_token=reward_token)

    def tokens(self) -> Iterator[TokenId]:
        return iter(sorted(self._entries))

    def snapshot(self, token: TokenId) -> Optional[RegistryEntry]:
        # Entries are frozen, so returning the record is a full copy.
        return self._entries.get(token)

    def restore(self, token: TokenId, snap: Optional[RegistryEntry]) -> None:
        if snap is None:
            self._entries.pop(token, None)
        else:
            self._entries[token] = snap

    def __repr__(self) -> str:
        return f"PoolRegistry({len(self._entries)} pools)"
