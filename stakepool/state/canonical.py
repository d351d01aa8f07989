"""
Deterministic canonical encoding for ledger snapshots.

Snapshots are hashed into a commitment, so the byte encoding of the same
logical state must never vary between runs or interpreters.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


CANONICAL_ENCODING_VERSION = 1


def _reject_non_canonical(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _reject_non_canonical(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _reject_non_canonical(item)


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace)
    - allow_nan=False
    - floats rejected (token amounts are integers)
    """
    _reject_non_canonical(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """ASCII, NUL-terminated domain prefix so concatenation stays unambiguous."""
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"stakepool:" + label.encode("ascii") + b":v" + str(version).encode("ascii") + b"\x00"
