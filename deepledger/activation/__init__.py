# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Activation functions and their initialization ranges.
"""

from deepledger.activation.core import (
    Activation,
    derivative,
    forward,
    get_activation,
    initialize,
    list_activation_types,
)
from deepledger.activation.init import init_linear_, init_weight_matrix

__all__ = [
    "Activation",
    "derivative",
    "forward",
    "get_activation",
    "init_linear_",
    "init_weight_matrix",
    "initialize",
    "list_activation_types",
]
