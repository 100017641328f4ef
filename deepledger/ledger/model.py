# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Ledger model: word vectors bound to ledger words.

vectors[i] is the embedding of the token whose id is i. Once a model is
handed out it is treated as read-only; `copy()` gives callers a private
vector list to mutate while still sharing the (immutable) LedgerWords.

Saving is best effort. A failed snapshot only costs a re-parse on the next
load, so save_to/save_as_text_file log a warning and return False instead of
raising into the caller.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

import torch

from deepledger.ledger.exceptions import EmptyModelError, SnapshotError
from deepledger.ledger.shapes import ShapeFunction
from deepledger.ledger.snapshot import read_snapshot, write_snapshot
from deepledger.ledger.words import NO_PAD, LedgerWords
from deepledger.logging.logger import get_logger
from deepledger.utils.filesystem import atomic_write

logger: logging.Logger = get_logger(__name__)


class LedgerModel:
    """
    Token -> vector lookup table.

    Args:
        words: Ledger words. Must have exactly one entry per vector.
        vectors: One 1-D tensor per id, all of the same length.
        pad_id: Override for the pad id. Defaults to ``words.pad_id``.

    Raises:
        ValueError: On an entry/vector count mismatch, ragged vectors, or a
            pad id that is neither NO_PAD nor a valid id.
    """

    def __init__(
        self,
        words: LedgerWords,
        vectors: Sequence[torch.Tensor],
        pad_id: Optional[int] = None,
    ) -> None:
        if len(vectors) != words.size:
            raise ValueError(
                f"Ledger has {words.size} entries but {len(vectors)} vectors"
            )

        self._words = words
        self._vectors: list[torch.Tensor] = list(vectors)
        self._pad_id = words.pad_id if pad_id is None else pad_id
        if self._pad_id != NO_PAD and not 0 <= self._pad_id < len(self._vectors):
            raise ValueError(
                f"Pad id {self._pad_id} is out of range for {len(self._vectors)} vectors"
            )
        self._dimension: Optional[int] = None

        if self._vectors:
            self._dimension = self._vectors[0].numel()
            for idx, vector in enumerate(self._vectors):
                if vector.dim() != 1 or vector.numel() != self._dimension:
                    raise ValueError(
                        f"Vector {idx} has shape {tuple(vector.shape)}, "
                        f"expected ({self._dimension},)"
                    )

    @property
    def words(self) -> LedgerWords:
        return self._words

    @property
    def vectors(self) -> tuple[torch.Tensor, ...]:
        """Read-only view of the vector list, index i = id i."""
        return tuple(self._vectors)

    @property
    def size(self) -> int:
        return self._words.size

    @property
    def dimension(self) -> int:
        """
        Length of every vector.

        Raises:
            EmptyModelError: If the model has no vectors.
        """
        if self._dimension is None:
            raise EmptyModelError("Cannot take the dimension of an empty ledger model")
        return self._dimension

    @property
    def unknown_id(self) -> int:
        return self._words.unknown_id

    @property
    def pad_id(self) -> int:
        return self._pad_id

    def index_of(self, token: str) -> int:
        return self._words.index_of(token)

    def vector_at(self, index: int) -> torch.Tensor:
        return self._vectors[index]

    def vector_for(self, token: str) -> torch.Tensor:
        """Vector for a token, falling back to its shape and then to the unknown entry."""
        return self._vectors[self._words.index_of(token)]

    def encode(self, tokens: Iterable[str]) -> torch.Tensor:
        """Resolve a token sequence to a 1-D LongTensor of ids."""
        return torch.tensor([self._words.index_of(t) for t in tokens], dtype=torch.long)

    def as_tensor(self) -> torch.Tensor:
        """
        Stack all vectors into a (size, dimension) matrix, row i = id i.

        Raises:
            EmptyModelError: If the model has no vectors.
        """
        if not self._vectors:
            raise EmptyModelError("Cannot stack an empty ledger model")
        return torch.stack(self._vectors)

    def copy(self) -> "LedgerModel":
        """New model over the same LedgerWords with cloned vectors."""
        return LedgerModel(
            self._words,
            [vector.clone() for vector in self._vectors],
            pad_id=self._pad_id,
        )

    def save_as_text_file(self, path: Path) -> bool:
        """
        Export as ``token v1 ... vD`` lines, in ledger iteration order.

        Returns:
            True on success, False if the file could not be written.
        """
        lines: list[str] = []
        for token, token_id in self._words.items():
            values = " ".join(repr(v) for v in self._vectors[token_id].tolist())
            lines.append(f"{token} {values}\n")

        try:
            atomic_write(path, "".join(lines))
        except OSError as err:
            logger.warning(
                "Text export failed",
                extra={"path": str(path), "error": str(err)},
            )
            return False

        logger.info("Text export written", extra={"path": str(path), "entries": len(lines)})
        return True

    def save_to(self, path: Path) -> bool:
        """
        Write a binary snapshot.

        Returns:
            True on success, False if the snapshot could not be written.
        """
        try:
            write_snapshot(path, self._words.entries, self._vectors, self._pad_id)
        except OSError as err:
            logger.warning(
                "Snapshot save failed",
                extra={"path": str(path), "error": str(err)},
            )
            return False

        logger.info("Snapshot saved", extra={"path": str(path), "size": self.size})
        return True

    @classmethod
    def load_from(cls, path: Path, shape_of: ShapeFunction) -> "LedgerModel":
        """
        Load a model from a snapshot file.

        Raises:
            NotFoundError: If the snapshot does not exist.
            SnapshotError: If the snapshot is malformed or inconsistent.
        """
        contents = read_snapshot(path)
        try:
            words = LedgerWords(contents.entries, shape_of)
            if contents.pad_id != words.pad_id:
                raise ValueError(
                    f"pad id {contents.pad_id} does not match the pad entry id {words.pad_id}"
                )
            return cls(words, contents.vectors, pad_id=contents.pad_id)
        except ValueError as err:
            raise SnapshotError(f"Snapshot {path} is inconsistent: {err}") from err

    def __repr__(self) -> str:
        return f"LedgerModel(size={self.size}, dimension={self._dimension}, pad_id={self._pad_id})"
