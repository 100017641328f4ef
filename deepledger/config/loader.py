# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: YAML on disk -> validated, frozen DeepLedgerConfig.

Read the file, parse it with yaml.safe_load, hand the dict to pydantic.
Any failure raises immediately; there are no silent defaults for a broken
file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from deepledger.config.exceptions import ConfigLoadError, ConfigValidationError
from deepledger.config.schema import DeepLedgerConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read and parse a YAML mapping.

    Raises:
        ConfigLoadError: Missing file, directory path, I/O error, invalid YAML,
            or a top level that is not a mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> DeepLedgerConfig:
    """
    Load and validate a config file.

    Raises:
        ConfigLoadError: File or YAML problems.
        ConfigValidationError: Schema violations.
    """
    raw_data = _read_yaml_file(config_path)

    try:
        return DeepLedgerConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err
