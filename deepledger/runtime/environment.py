# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Environment checks and system info for DeepLedger.
"""

import platform
import sys
from typing import NamedTuple

import torch

MINIMUM_PYTHON = (3, 11)


class SystemInfo(NamedTuple):
    """Snapshot of the interpreter and torch build."""

    python_version: str
    platform: str
    architecture: str
    torch_version: str
    torch_threads: int


def check_minimum_python() -> None:
    """
    Raises:
        RuntimeError: If the interpreter is older than MINIMUM_PYTHON.
    """
    if sys.version_info[:2] < MINIMUM_PYTHON:
        major, minor = MINIMUM_PYTHON
        raise RuntimeError(
            f"DeepLedger requires Python >= {major}.{minor}, "
            f"but you're running {sys.version_info.major}.{sys.version_info.minor}."
        )


def get_system_info() -> SystemInfo:
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        torch_version=torch.__version__,
        torch_threads=torch.get_num_threads(),
    )
