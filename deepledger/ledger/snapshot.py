# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Binary snapshot codec for ledgers.

A snapshot is what makes the second load of a corpus instant. The layout is
fixed and order-significant, all integers little-endian:

    int32    entry count N
    N times  uint32 byte length, UTF-8 token bytes, int32 id
    int32    vector count M
    M times  int32 length D, D float64 components
    int32    pad id (-1 when the ledger has no pad entry)

Vectors are stored as raw float64, so a round trip is bit-exact.

This module only deals with plain data (a mapping, a list of tensors, an
int). Turning that into a LedgerModel is model.py's job.
"""

import struct
from pathlib import Path
from typing import Mapping, NamedTuple, Sequence

import torch

from deepledger.ledger.exceptions import NotFoundError, SnapshotError
from deepledger.utils.filesystem import atomic_write_bytes

_INT32 = struct.Struct("<i")
_UINT32 = struct.Struct("<I")


class SnapshotContents(NamedTuple):
    """Everything a snapshot holds, in file order."""

    entries: dict[str, int]
    vectors: list[torch.Tensor]
    pad_id: int


def serialize(entries: Mapping[str, int], vectors: Sequence[torch.Tensor], pad_id: int) -> bytes:
    """Encode ledger state into snapshot bytes."""
    chunks: list[bytes] = [_INT32.pack(len(entries))]
    for token, token_id in entries.items():
        raw = token.encode("utf-8")
        chunks.append(_UINT32.pack(len(raw)))
        chunks.append(raw)
        chunks.append(_INT32.pack(token_id))

    chunks.append(_INT32.pack(len(vectors)))
    for vector in vectors:
        values = vector.detach().to(dtype=torch.float64).reshape(-1).tolist()
        chunks.append(_INT32.pack(len(values)))
        chunks.append(struct.pack(f"<{len(values)}d", *values))

    chunks.append(_INT32.pack(pad_id))
    return b"".join(chunks)


class _Reader:
    """Cursor over snapshot bytes that turns short reads into SnapshotError."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def _unpack(self, fmt: struct.Struct | str) -> tuple:
        layout = fmt if isinstance(fmt, struct.Struct) else struct.Struct(fmt)
        try:
            values = layout.unpack_from(self._data, self._offset)
        except struct.error as err:
            raise SnapshotError(
                f"Snapshot truncated at byte {self._offset} (need {layout.size} more bytes)"
            ) from err
        self._offset += layout.size
        return values

    def read_int(self) -> int:
        return self._unpack(_INT32)[0]

    def read_count(self, what: str) -> int:
        count = self.read_int()
        if count < 0:
            raise SnapshotError(f"Negative {what} count {count} at byte {self._offset - 4}")
        return count

    def read_string(self) -> str:
        length = self._unpack(_UINT32)[0]
        end = self._offset + length
        if end > len(self._data):
            raise SnapshotError(f"Snapshot truncated inside a token at byte {self._offset}")
        raw = self._data[self._offset:end]
        self._offset = end
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise SnapshotError(f"Token at byte {end - length} is not valid UTF-8") from err

    def read_vector(self) -> torch.Tensor:
        length = self.read_count("vector length")
        values = self._unpack(f"<{length}d")
        return torch.tensor(values, dtype=torch.float64)

    def finish(self) -> None:
        if self._offset != len(self._data):
            raise SnapshotError(
                f"Snapshot has {len(self._data) - self._offset} trailing bytes"
            )


def deserialize(data: bytes) -> SnapshotContents:
    """
    Decode snapshot bytes. Index first, then vectors, then the pad id.

    Raises:
        SnapshotError: On truncation, trailing bytes, duplicate tokens or a
            vector count that does not match the entry count.
    """
    reader = _Reader(data)

    entries: dict[str, int] = {}
    for _ in range(reader.read_count("entry")):
        token = reader.read_string()
        token_id = reader.read_int()
        if token in entries:
            raise SnapshotError(f"Duplicate token {token!r} in snapshot")
        entries[token] = token_id

    vectors = [reader.read_vector() for _ in range(reader.read_count("vector"))]
    pad_id = reader.read_int()
    reader.finish()

    if len(vectors) != len(entries):
        raise SnapshotError(
            f"Snapshot holds {len(entries)} entries but {len(vectors)} vectors"
        )

    return SnapshotContents(entries=entries, vectors=vectors, pad_id=pad_id)


def write_snapshot(
    path: Path,
    entries: Mapping[str, int],
    vectors: Sequence[torch.Tensor],
    pad_id: int,
) -> None:
    """
    Serialize and write a snapshot atomically.

    Raises:
        OSError: If the file cannot be written.
    """
    atomic_write_bytes(path, serialize(entries, vectors, pad_id))


def read_snapshot(path: Path) -> SnapshotContents:
    """
    Read and decode a snapshot file.

    Raises:
        NotFoundError: If the file does not exist.
        SnapshotError: If the content is malformed.
    """
    if not path.is_file():
        raise NotFoundError(f"Snapshot not found: {path}")
    return deserialize(path.read_bytes())
