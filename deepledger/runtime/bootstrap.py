# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Runtime bootstrap for DeepLedger.

Runs once before a CLI command does real work:
  1. check the Python version
  2. seed python's random module and torch
  3. push the configured log level (and log file) to every package logger
"""

import random
from pathlib import Path

import torch

from deepledger.config.schema import GlobalConfig
from deepledger.logging.logger import get_logger, set_package_level
from deepledger.runtime.environment import check_minimum_python, get_system_info


def set_deterministic_seed(seed: int) -> None:
    """Seed python's random module and torch's CPU generator."""
    random.seed(seed)
    torch.manual_seed(seed)


def bootstrap(config: GlobalConfig) -> None:
    """
    Put the process into a known state.

    Args:
        config: The validated global configuration.
    """
    check_minimum_python()
    set_deterministic_seed(config.seed)

    log_file = Path(config.log_file) if config.log_file is not None else None
    logger = get_logger("deepledger.runtime", log_level=config.log_level, log_file=log_file)
    set_package_level(config.log_level, log_file)

    info = get_system_info()
    logger.info(
        "DeepLedger bootstrap complete",
        extra={
            "seed": config.seed,
            "python_version": info.python_version,
            "torch_version": info.torch_version,
            "platform": info.platform,
        },
    )
