# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for DeepLedger tests.

Config files and corpora are written into tmp_path so every test gets its
own snapshot cache and nothing leaks between tests.
"""

import textwrap
from pathlib import Path
from typing import Callable

import pytest


def _letter_shape(token: str) -> str:
    """Test shape function: one class character per input character, no collapsing."""
    classes = []
    for char in token:
        if char.isupper():
            classes.append("A")
        elif char.islower():
            classes.append("a")
        elif char.isdigit():
            classes.append("0")
        else:
            classes.append(char)
    return "#SHAPE_" + "".join(classes)


@pytest.fixture()
def shape_of() -> Callable[[str], str]:
    """Deterministic shape function: "Cat" -> "#SHAPE_Aaa", "123" -> "#SHAPE_000"."""
    return _letter_shape


@pytest.fixture()
def write_corpus(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory that writes a corpus file into tmp_path and returns its path."""

    def _write(content: str, name: str = "corpus.txt") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def small_corpus(write_corpus: Callable[[str, str], Path]) -> Path:
    """Three 2-D vectors whose tokens all have different shapes."""
    return write_corpus(
        """\
        cat 1.0 2.0
        Cat 3.0 4.0
        123 5.0 6.0
        """,
        "small.txt",
    )


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """Smallest config that passes schema validation."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "deepledger-test"
          seed: 42
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def ledger_config_file(tmp_path: Path, small_corpus: Path) -> Path:
    """Config with a ledger section pointing at small_corpus."""
    config_content = textwrap.dedent(f"""\
        global:
          config_version: "1.0.0"
          log_level: "WARNING"
        ledger:
          config_version: "1.0.0"
          corpus_path: "{small_corpus.as_posix()}"
          shape_function: "character_class"
          max_workers: 2
    """)
    config_file = tmp_path / "ledger_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (missing config_version)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "deepledger-test"
          seed: 42
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
