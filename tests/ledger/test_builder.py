# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the ledger builder.

Covers the cold build (id assignment, shape averaging, pad entry), snapshot
caching across loads, and the parse errors a malformed corpus produces.

The small_corpus fixture is:

    cat 1.0 2.0
    Cat 3.0 4.0
    123 5.0 6.0

so the catch-all average is exactly (3.0, 4.0).
"""

from pathlib import Path
from typing import Callable

import pytest
import torch

from deepledger.config.schema import LedgerConfig
from deepledger.ledger.builder import (
    ShapeAccumulator,
    average_shapes,
    build_from_corpus,
    read_ledger,
    read_ledger_from_config,
    scan_corpus,
    snapshot_path_for,
)
from deepledger.ledger.embedding import LedgerEmbedding
from deepledger.ledger.exceptions import EmptyModelError, NotFoundError, ParseError
from deepledger.ledger.snapshot import serialize
from deepledger.ledger.words import PAD_TOKEN, UNKNOWN_TOKEN

ShapeFn = Callable[[str], str]
WriteCorpus = Callable[..., Path]


def _vec(*values: float) -> torch.Tensor:
    return torch.tensor(values, dtype=torch.float64)


class TestSnapshotPath:
    def test_suffix_appended_to_full_name(self) -> None:
        assert snapshot_path_for(Path("/data/glove.50d.txt")) == Path("/data/glove.50d.txt.snapshot")

    def test_custom_suffix(self) -> None:
        assert snapshot_path_for(Path("vectors"), ".bin") == Path("vectors.bin")


class TestScan:
    def test_ids_follow_file_order(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        scan = scan_corpus(small_corpus, shape_of)
        assert scan.entries == {"cat": 0, "Cat": 1, "123": 2}
        assert scan.token_count == 3

    def test_catch_all_accumulates_every_token(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        scan = scan_corpus(small_corpus, shape_of)
        catch_all = scan.shapes[UNKNOWN_TOKEN]
        assert catch_all.count == 3
        assert torch.equal(catch_all.total, _vec(9.0, 12.0))

    def test_scan_does_not_alias_corpus_vectors(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        scan = scan_corpus(small_corpus, shape_of)
        assert torch.equal(scan.vectors[0], _vec(1.0, 2.0))

    def test_blank_lines_skipped(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("a 1.0\n\n   \nb 2.0\n")
        scan = scan_corpus(path, shape_of)
        assert scan.entries == {"a": 0, "b": 1}


class TestAverageShapes:
    def test_threshold_is_strict(self) -> None:
        shapes = {
            "kept": ShapeAccumulator(total=_vec(4.0), count=2),
            "dropped": ShapeAccumulator(total=_vec(1.0), count=1),
        }
        averages = average_shapes(shapes, threshold=1.0)
        assert list(averages) == ["kept"]
        assert torch.equal(averages["kept"], _vec(2.0))

    def test_parallel_matches_sequential(self) -> None:
        shapes = {
            f"#SHAPE_{i}": ShapeAccumulator(total=_vec(float(i), float(2 * i)), count=i + 1)
            for i in range(20)
        }
        sequential = average_shapes(shapes, threshold=0.5, max_workers=1)
        parallel = average_shapes(shapes, threshold=0.5, max_workers=4)
        assert list(sequential) == list(parallel)
        for key in sequential:
            assert torch.equal(sequential[key], parallel[key])


class TestColdBuild:
    def test_layout_with_all_shapes_kept(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of)

        assert list(model.words.entries) == [
            "cat", "Cat", "123",
            UNKNOWN_TOKEN, "#SHAPE_aaa", "#SHAPE_Aaa", "#SHAPE_000",
            PAD_TOKEN,
        ]
        assert model.size == 8
        assert model.dimension == 2
        assert model.unknown_id == 3
        assert model.pad_id == 7

    def test_shape_vectors_are_averages(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of)
        assert torch.equal(model.vector_for(UNKNOWN_TOKEN), _vec(3.0, 4.0))
        assert torch.equal(model.vector_for("#SHAPE_000"), _vec(5.0, 6.0))

    def test_pad_is_copy_of_catch_all(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of)
        pad = model.vector_at(model.pad_id)
        unknown = model.vector_at(model.unknown_id)
        assert torch.equal(pad, unknown)
        assert pad is not unknown

    def test_rare_shapes_dropped(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        """Cutoff 3 * 0.5 = 1.5: singleton shapes go, the catch-all (3) stays."""
        model = build_from_corpus(small_corpus, shape_of, threshold=0.5)

        assert model.size == 5
        assert model.words.entries[UNKNOWN_TOKEN] == 3
        assert model.pad_id == 4
        assert model.index_of("Dog") == model.unknown_id
        assert model.index_of("456") == model.unknown_id
        assert torch.equal(model.vector_for("Dog"), model.vector_for("456"))
        assert torch.equal(model.vector_for("Dog"), _vec(3.0, 4.0))

    def test_catch_all_kept_at_full_threshold(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of, threshold=1.0)
        assert model.size == 5
        assert torch.equal(model.vector_for("Zebra"), _vec(3.0, 4.0))

    def test_unseen_token_with_known_shape(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of)
        assert model.index_of("Dog") == model.words.entries["#SHAPE_Aaa"]
        assert torch.equal(model.vector_for("Dog"), _vec(3.0, 4.0))
        assert torch.equal(model.vector_for("dog"), _vec(1.0, 2.0))

    def test_shape_key_owned_by_corpus_token_is_not_replaced(
        self, write_corpus: WriteCorpus, shape_of: ShapeFn
    ) -> None:
        path = write_corpus(
            """\
            ab 1.0
            cd 3.0
            #SHAPE_aa 100.0
            """
        )
        model = build_from_corpus(path, shape_of)
        assert model.index_of("#SHAPE_aa") == 2
        assert torch.equal(model.vector_for("xy"), _vec(100.0))
        assert list(model.words.entries).count("#SHAPE_aa") == 1

    def test_corpus_pad_token_kept(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus(f"a 1.0\n{PAD_TOKEN} 0.0\n")
        model = build_from_corpus(path, shape_of)
        assert model.pad_id == 1
        assert torch.equal(model.vector_at(model.pad_id), _vec(0.0))

    def test_ids_are_dense(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        model = build_from_corpus(small_corpus, shape_of)
        assert sorted(model.words.entries.values()) == list(range(model.size))

    def test_parallel_build_matches_sequential(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        sequential = build_from_corpus(small_corpus, shape_of, max_workers=1)
        parallel = build_from_corpus(small_corpus, shape_of, max_workers=4)
        assert list(sequential.words.entries.items()) == list(parallel.words.entries.items())
        assert torch.equal(sequential.as_tensor(), parallel.as_tensor())

    def test_empty_corpus(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("\n\n")
        with pytest.raises(EmptyModelError):
            build_from_corpus(path, shape_of)


class TestParseErrors:
    def test_wrong_component_count(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("a 1.0 2.0\nb 3.0\n")
        with pytest.raises(ParseError, match="expected 2") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 2

    def test_non_numeric_component(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("a 1.0\nb 2.0\nc abc\n")
        with pytest.raises(ParseError, match="non-numeric") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 3

    def test_token_without_vector(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("lonely\n")
        with pytest.raises(ParseError, match="no vector components") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 1

    def test_duplicate_token(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("a 1.0\nb 2.0\na 3.0\n")
        with pytest.raises(ParseError, match="duplicate") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 3

    def test_line_numbers_count_blank_lines(self, write_corpus: WriteCorpus, shape_of: ShapeFn) -> None:
        path = write_corpus("a 1.0\n\nb x\n")
        with pytest.raises(ParseError) as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 3
        assert str(excinfo.value).startswith("line 3:")

    def test_invalid_utf8(self, tmp_path: Path, shape_of: ShapeFn) -> None:
        path = tmp_path / "binary.txt"
        path.write_bytes(b"a 1.0\n\xff\xfe 2.0\n")
        with pytest.raises(ParseError, match="UTF-8") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 2

    def test_invalid_utf8_reported_on_its_own_line(self, tmp_path: Path, shape_of: ShapeFn) -> None:
        path = tmp_path / "late_binary.txt"
        valid = b"".join(b"w%d 1.0\n" % i for i in range(1, 50))
        path.write_bytes(valid + b"bad\xff 2.0\nok 3.0\n")
        with pytest.raises(ParseError, match="UTF-8") as excinfo:
            build_from_corpus(path, shape_of)
        assert excinfo.value.line_number == 50

    def test_crlf_line_endings(self, tmp_path: Path, shape_of: ShapeFn) -> None:
        path = tmp_path / "crlf.txt"
        path.write_bytes(b"a 1.0 2.0\r\nb 3.0 4.0\r\n")
        scan = scan_corpus(path, shape_of)
        assert scan.entries == {"a": 0, "b": 1}

    def test_missing_corpus(self, tmp_path: Path, shape_of: ShapeFn) -> None:
        with pytest.raises(NotFoundError) as excinfo:
            build_from_corpus(tmp_path / "nope.txt", shape_of)
        assert isinstance(excinfo.value, FileNotFoundError)


class TestSnapshotCache:
    def test_cold_build_writes_snapshot(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        read_ledger(small_corpus, shape_of)
        assert snapshot_path_for(small_corpus).is_file()

    def test_second_load_uses_snapshot(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        first = read_ledger(small_corpus, shape_of)
        small_corpus.unlink()

        second = read_ledger(small_corpus, shape_of)
        assert second.words == first.words
        assert second.pad_id == first.pad_id
        assert torch.equal(second.as_tensor(), first.as_tensor())

    def test_snapshot_wins_over_edited_corpus(
        self, small_corpus: Path, shape_of: ShapeFn
    ) -> None:
        read_ledger(small_corpus, shape_of)
        small_corpus.write_text("other 9.0 9.0\n", encoding="utf-8")
        assert read_ledger(small_corpus, shape_of).index_of("cat") == 0

    def test_use_snapshot_false_neither_reads_nor_writes(
        self, small_corpus: Path, shape_of: ShapeFn
    ) -> None:
        model = read_ledger(small_corpus, shape_of, use_snapshot=False)
        assert model.size == 8
        assert not snapshot_path_for(small_corpus).exists()

    def test_corrupt_snapshot_is_rebuilt(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        snapshot = snapshot_path_for(small_corpus)
        snapshot.write_bytes(b"\x01\x02\x03")

        model = read_ledger(small_corpus, shape_of)
        assert model.size == 8
        assert snapshot.stat().st_size > 3

    def test_snapshot_with_bad_pad_id_is_rebuilt(
        self, small_corpus: Path, shape_of: ShapeFn
    ) -> None:
        snapshot = snapshot_path_for(small_corpus)
        snapshot.write_bytes(
            serialize({"a": 0, UNKNOWN_TOKEN: 1}, [_vec(1.0, 1.0), _vec(2.0, 2.0)], 99)
        )

        model = read_ledger(small_corpus, shape_of)
        assert model.size == 8
        assert model.pad_id == 7
        assert LedgerEmbedding(model).embedding.padding_idx == 7

    def test_empty_snapshot_is_rebuilt(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        snapshot = snapshot_path_for(small_corpus)
        snapshot.write_bytes(b"\x00\x00\x00\x00\x00\x00\x00\x00\xff\xff\xff\xff")

        model = read_ledger(small_corpus, shape_of)
        assert model.size == 8

    def test_custom_suffix(self, small_corpus: Path, shape_of: ShapeFn) -> None:
        read_ledger(small_corpus, shape_of, snapshot_suffix=".cache")
        assert snapshot_path_for(small_corpus, ".cache").is_file()
        assert not snapshot_path_for(small_corpus).exists()

    def test_unwritable_snapshot_still_returns_model(
        self, small_corpus: Path, shape_of: ShapeFn
    ) -> None:
        # A directory where the snapshot file should go makes the save fail.
        snapshot = snapshot_path_for(small_corpus)
        snapshot.mkdir()
        model = read_ledger(small_corpus, shape_of)
        assert model.size == 8
        assert snapshot.is_dir()


class TestFromConfig:
    def test_uses_registered_shape_function(self, small_corpus: Path) -> None:
        config = LedgerConfig(
            config_version="1.0.0",
            corpus_path=str(small_corpus),
            shape_function="character_class",
        )
        model = read_ledger_from_config(config)
        # character_class collapses runs: "cat" -> "#SHAPE_a", "Cat" -> "#SHAPE_Aa".
        assert "#SHAPE_a" in model.words
        assert "#SHAPE_Aa" in model.words

    def test_corpus_override(self, small_corpus: Path, write_corpus: WriteCorpus) -> None:
        other = write_corpus("x 1.0\n", "other.txt")
        config = LedgerConfig(config_version="1.0.0", corpus_path=str(small_corpus))
        model = read_ledger_from_config(config, corpus_path=other)
        assert "x" in model.words
        assert "cat" not in model.words

    def test_unknown_shape_function(self, small_corpus: Path) -> None:
        config = LedgerConfig(
            config_version="1.0.0",
            corpus_path=str(small_corpus),
            shape_function="does_not_exist",
        )
        with pytest.raises(KeyError):
            read_ledger_from_config(config)
