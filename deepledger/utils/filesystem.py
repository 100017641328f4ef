# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Atomic file writes for ledger artifacts.

Snapshots and text exports are written to a temp file in the target's
directory and renamed into place. A crash mid-write leaves a stray
`.deepledger_tmp_*` file behind, never a truncated snapshot that the next
load would trip over.
"""

import tempfile
from pathlib import Path
from typing import IO

_TEMP_PREFIX = ".deepledger_tmp_"


def _atomic_replace(target_path: Path, payload: str | bytes, encoding: str | None) -> None:
    target_path.parent.mkdir(parents=True, exist_ok=True)

    binary = isinstance(payload, bytes)
    temp_file: IO = tempfile.NamedTemporaryFile(
        mode="wb" if binary else "w",
        encoding=None if binary else encoding,
        dir=str(target_path.parent),
        prefix=_TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_file.name)

    try:
        temp_file.write(payload)
        temp_file.flush()
        temp_file.close()
        temp_path.replace(target_path)
    except BaseException:
        temp_file.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to target_path atomically, creating parent directories.

    Raises:
        OSError: If the temp write or the rename fails. The target is untouched.
    """
    _atomic_replace(target_path, content, encoding)


def atomic_write_bytes(target_path: Path, data: bytes) -> None:
    """Binary counterpart of atomic_write."""
    _atomic_replace(target_path, data, None)
