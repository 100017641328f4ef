# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Ledger words: the token -> id half of a ledger.

Lookup falls back in three tiers:
  1. the token itself
  2. the token's shape key (from the pluggable shape function)
  3. the catch-all unknown entry

Ids are dense: a ledger with N entries uses exactly the ids 0..N-1. That is
what lets LedgerModel index its vector list without bounds checks.
"""

from types import MappingProxyType
from typing import Iterator, Mapping

from deepledger.ledger.exceptions import EmptyModelError
from deepledger.ledger.shapes import ShapeFunction

PAD_TOKEN = "#PAD_X"
UNKNOWN_TOKEN = "#SHAPE_*"
NO_PAD = -1


class LedgerWords:
    """
    Immutable token -> id mapping with shape and unknown fallback.

    Args:
        entries: Token to id mapping. Ids must be exactly 0..len(entries)-1.
            A non-empty mapping must contain UNKNOWN_TOKEN.
        shape_of: Shape function used for the second lookup tier.

    Raises:
        ValueError: If ids are not dense or the catch-all entry is missing.
    """

    def __init__(self, entries: Mapping[str, int], shape_of: ShapeFunction) -> None:
        self._entries: dict[str, int] = dict(entries)
        self._shape_of = shape_of

        ids = sorted(self._entries.values())
        if ids != list(range(len(ids))):
            raise ValueError(
                f"Ledger ids must be dense 0..{len(ids) - 1}; got {len(set(ids))} distinct ids "
                f"for {len(ids)} entries"
            )
        if self._entries and UNKNOWN_TOKEN not in self._entries:
            raise ValueError(f"Ledger words must contain the catch-all entry '{UNKNOWN_TOKEN}'")

        self._pad_id = self._entries.get(PAD_TOKEN, NO_PAD)
        self._unknown_id = self._entries.get(UNKNOWN_TOKEN)

    @property
    def entries(self) -> Mapping[str, int]:
        """Read-only view of the token -> id mapping, in insertion order."""
        return MappingProxyType(self._entries)

    @property
    def shape_of(self) -> ShapeFunction:
        return self._shape_of

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def pad_id(self) -> int:
        """Id of PAD_TOKEN, or -1 when the ledger has no pad entry."""
        return self._pad_id

    @property
    def unknown_id(self) -> int:
        """
        Id of the catch-all entry.

        Raises:
            EmptyModelError: If the ledger has no entries at all.
        """
        if self._unknown_id is None:
            raise EmptyModelError("Empty ledger has no unknown entry")
        return self._unknown_id

    def index_of(self, token: str) -> int:
        """Resolve a token to an id. Never fails on a non-empty ledger."""
        found = self._entries.get(token)
        if found is not None:
            return found

        found = self._entries.get(self._shape_of(token))
        if found is not None:
            return found

        return self.unknown_id

    def items(self) -> Iterator[tuple[str, int]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LedgerWords):
            return NotImplemented
        return self._entries == other._entries

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"LedgerWords(size={self.size}, pad_id={self._pad_id})"
