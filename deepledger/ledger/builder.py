# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Ledger builder: raw corpus in, ledger model out, snapshot cached on disk.

`read_ledger` is the entry point. It first looks for `<corpus><suffix>`
(".snapshot" by default). If that exists the snapshot is decoded and no text
is parsed at all. Otherwise the cold build runs:

  1. Stream the corpus once. Every line is ``token v1 v2 ... vD``; tokens get
     ids 0, 1, 2, ... in file order. In the same pass each vector is added to
     the running sum of its shape key and of the catch-all key.
  2. Average every shape whose count exceeds ``token_count * threshold``.
     Averages are independent, so they are computed on a thread pool into a
     private dict. Nothing shared is touched in this phase.
  3. Insert the averaged shapes as new entries, single-threaded, in the order
     the shapes were first seen. Then add the pad entry, a copy of the
     catch-all average.
  4. Write the snapshot (best effort) and return the model.

Rare shapes are simply dropped: tokens of that shape fall through to the
catch-all average at lookup time.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import torch

from deepledger.ledger.exceptions import EmptyModelError, NotFoundError, ParseError, SnapshotError
from deepledger.ledger.model import LedgerModel
from deepledger.ledger.shapes import ShapeFunction, resolve_shape_function
from deepledger.ledger.words import PAD_TOKEN, UNKNOWN_TOKEN, LedgerWords
from deepledger.logging.logger import get_logger

if TYPE_CHECKING:
    from deepledger.config.schema import LedgerConfig

logger: logging.Logger = get_logger(__name__)

SNAPSHOT_SUFFIX = ".snapshot"
SHAPE_THRESHOLD = 0.0001
PROGRESS_INTERVAL = 10_000


@dataclass
class ShapeAccumulator:
    """Running vector sum and token count for one shape key."""

    total: torch.Tensor
    count: int = 1

    def add(self, vector: torch.Tensor) -> None:
        self.total.add_(vector)
        self.count += 1

    def average(self) -> torch.Tensor:
        return self.total / self.count


@dataclass
class CorpusScan:
    """Result of the single pass over a corpus file."""

    entries: dict[str, int] = field(default_factory=dict)
    vectors: list[torch.Tensor] = field(default_factory=list)
    shapes: dict[str, ShapeAccumulator] = field(default_factory=dict)

    @property
    def token_count(self) -> int:
        return len(self.entries)

    def accumulate(self, shape: str, vector: torch.Tensor) -> None:
        accumulator = self.shapes.get(shape)
        if accumulator is None:
            self.shapes[shape] = ShapeAccumulator(total=vector.clone())
        else:
            accumulator.add(vector)


def snapshot_path_for(corpus_path: Path, suffix: str = SNAPSHOT_SUFFIX) -> Path:
    """Where the snapshot of a corpus lives: the corpus path plus a suffix."""
    return corpus_path.with_name(corpus_path.name + suffix)


def _parse_line(line: str, line_number: int, dimension: int | None) -> tuple[str, torch.Tensor]:
    fields = line.split()
    token, components = fields[0], fields[1:]

    if not components:
        raise ParseError(f"token {token!r} has no vector components", line_number)
    if dimension is not None and len(components) != dimension:
        raise ParseError(
            f"token {token!r} has {len(components)} components, expected {dimension}",
            line_number,
        )

    try:
        values = [float(c) for c in components]
    except ValueError as err:
        raise ParseError(f"non-numeric component for token {token!r}: {err}", line_number) from err

    return token, torch.tensor(values, dtype=torch.float64)


def scan_corpus(corpus_path: Path, shape_of: ShapeFunction) -> CorpusScan:
    """
    Parse a corpus file in a single pass.

    Assigns sequential ids in file order and accumulates per-shape sums
    (plus the catch-all sum over every token) as it goes. Blank lines are
    skipped and do not consume ids.

    Raises:
        NotFoundError: If the corpus file does not exist.
        ParseError: On the first malformed line.
    """
    if not corpus_path.is_file():
        raise NotFoundError(f"Corpus file not found: {corpus_path}")

    scan = CorpusScan()
    dimension: int | None = None

    logger.info("Corpus scan started", extra={"corpus": str(corpus_path)})

    # Decoded line by line so invalid UTF-8 is reported on the line holding it.
    with open(corpus_path, "rb") as corpus:
        for line_number, raw in enumerate(corpus, start=1):
            if line_number % PROGRESS_INTERVAL == 0:
                logger.info(
                    "Corpus scan progress",
                    extra={"corpus": corpus_path.name, "lines": line_number},
                )

            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as err:
                raise ParseError(f"invalid UTF-8: {err}", line_number) from err

            if not line.strip():
                continue

            token, vector = _parse_line(line, line_number, dimension)
            if token in scan.entries:
                raise ParseError(f"duplicate token {token!r}", line_number)
            if dimension is None:
                dimension = vector.numel()

            scan.entries[token] = len(scan.vectors)
            scan.vectors.append(vector)

            scan.accumulate(UNKNOWN_TOKEN, vector)
            shape = shape_of(token)
            if shape != UNKNOWN_TOKEN:
                scan.accumulate(shape, vector)

    logger.info(
        "Corpus scan finished",
        extra={"tokens": scan.token_count, "shapes": len(scan.shapes), "dimension": dimension},
    )
    return scan


def average_shapes(
    shapes: dict[str, ShapeAccumulator],
    threshold: float,
    max_workers: int = 1,
) -> dict[str, torch.Tensor]:
    """
    Average every shape seen more than ``threshold`` times.

    Only reads the accumulators and returns a fresh dict, keyed in the
    accumulators' (first-seen) order, so it is safe to fan out.
    """
    frequent = [shape for shape, acc in shapes.items() if acc.count > threshold]

    if max_workers > 1 and len(frequent) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            averages = list(executor.map(lambda s: shapes[s].average(), frequent))
    else:
        averages = [shapes[shape].average() for shape in frequent]

    return dict(zip(frequent, averages))


def build_from_corpus(
    corpus_path: Path,
    shape_of: ShapeFunction,
    threshold: float = SHAPE_THRESHOLD,
    max_workers: int = 1,
) -> LedgerModel:
    """
    Cold build: parse the corpus and assemble a model. Does not touch snapshots.

    Raises:
        NotFoundError: Missing corpus.
        ParseError: Malformed corpus line.
        EmptyModelError: The corpus holds no tokens.
    """
    scan = scan_corpus(corpus_path, shape_of)
    if scan.token_count == 0:
        raise EmptyModelError(f"Corpus {corpus_path} contains no embeddings")

    cutoff = scan.token_count * threshold
    averages = average_shapes(scan.shapes, cutoff, max_workers=max_workers)
    if UNKNOWN_TOKEN not in averages:
        # The catch-all is always kept, whatever the threshold.
        averages = {UNKNOWN_TOKEN: scan.shapes[UNKNOWN_TOKEN].average(), **averages}
    logger.info(
        "Shape vectors averaged",
        extra={"kept": len(averages), "seen": len(scan.shapes), "cutoff": cutoff},
    )

    entries, vectors = scan.entries, scan.vectors
    for shape, average in averages.items():
        if shape in entries:
            # A real corpus token already owns this key.
            logger.debug("Shape key shadowed by corpus token", extra={"shape": shape})
            continue
        entries[shape] = len(vectors)
        vectors.append(average)

    if PAD_TOKEN not in entries:
        entries[PAD_TOKEN] = len(vectors)
        vectors.append(vectors[entries[UNKNOWN_TOKEN]].clone())

    return LedgerModel(LedgerWords(entries, shape_of), vectors)


def read_ledger(
    corpus_path: Path,
    shape_of: ShapeFunction,
    threshold: float = SHAPE_THRESHOLD,
    max_workers: int = 1,
    snapshot_suffix: str = SNAPSHOT_SUFFIX,
    use_snapshot: bool = True,
) -> LedgerModel:
    """
    Load a ledger, from its snapshot when one exists, otherwise from the corpus.

    A cold build writes the snapshot before returning, so the parse cost is
    paid once per corpus file. An unreadable snapshot is treated as a cache
    miss and rebuilt.

    Args:
        corpus_path: Raw ``token v1 ... vD`` text file.
        shape_of: Shape function for fallback lookup and shape clustering.
        threshold: Fraction of the token count a shape must exceed to be kept.
        max_workers: Thread pool size for shape averaging.
        snapshot_suffix: Appended to the corpus path to locate the snapshot.
        use_snapshot: Set False to always parse and never write a snapshot.

    Raises:
        NotFoundError, ParseError, EmptyModelError: from the cold build.
    """
    snapshot_path = snapshot_path_for(corpus_path, snapshot_suffix)

    if use_snapshot and snapshot_path.is_file():
        try:
            model = LedgerModel.load_from(snapshot_path, shape_of)
            if model.size == 0:
                raise SnapshotError("snapshot holds no entries")
        except SnapshotError as err:
            logger.warning(
                "Snapshot unreadable, rebuilding from corpus",
                extra={"snapshot": str(snapshot_path), "error": str(err)},
            )
        else:
            logger.info(
                "Ledger loaded from snapshot",
                extra={"snapshot": str(snapshot_path), "dimension": model.dimension, "size": model.size},
            )
            return model

    model = build_from_corpus(corpus_path, shape_of, threshold=threshold, max_workers=max_workers)

    if use_snapshot:
        model.save_to(snapshot_path)

    logger.info(
        "Ledger built from corpus",
        extra={"corpus": str(corpus_path), "dimension": model.dimension, "size": model.size},
    )
    return model


def read_ledger_from_config(config: "LedgerConfig", corpus_path: Path | None = None) -> LedgerModel:
    """Resolve the configured shape function and call read_ledger."""
    shape_of = resolve_shape_function(config.shape_function)
    return read_ledger(
        corpus_path if corpus_path is not None else Path(config.corpus_path),
        shape_of,
        threshold=config.shape_threshold,
        max_workers=config.max_workers,
        snapshot_suffix=config.snapshot_suffix,
        use_snapshot=config.use_snapshot,
    )
