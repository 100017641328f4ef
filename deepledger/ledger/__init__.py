# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
DeepLedger word embedding package.

Subsystems:
  - words: token -> id mapping with shape and unknown fallback
  - model: token -> vector table, export and snapshot save
  - snapshot: binary snapshot codec
  - builder: corpus parsing, shape clustering, snapshot caching
  - shapes: pluggable shape function registry
  - embedding: nn.Module wrapper over a model
"""

from deepledger.ledger.builder import build_from_corpus, read_ledger, read_ledger_from_config
from deepledger.ledger.embedding import LedgerEmbedding
from deepledger.ledger.exceptions import (
    EmptyModelError,
    LedgerError,
    NotFoundError,
    ParseError,
    SnapshotError,
)
from deepledger.ledger.model import LedgerModel
from deepledger.ledger.words import PAD_TOKEN, UNKNOWN_TOKEN, LedgerWords

__all__ = [
    "EmptyModelError",
    "LedgerEmbedding",
    "LedgerError",
    "LedgerModel",
    "LedgerWords",
    "NotFoundError",
    "PAD_TOKEN",
    "ParseError",
    "SnapshotError",
    "UNKNOWN_TOKEN",
    "build_from_corpus",
    "read_ledger",
    "read_ledger_from_config",
]
