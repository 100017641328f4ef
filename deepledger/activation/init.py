# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Deterministic weight initialization from activation ranges.

Each activation knows the uniform range its layer's weights should be drawn
from (see `initialize` in core.py). The helpers here do the drawing with a
dedicated torch.Generator, so the same seed always gives the same weights
regardless of global RNG state.
"""

import torch
import torch.nn as nn

from deepledger.activation.core import Activation, initialize


def init_weight_matrix(
    kind: Activation,
    fan_in: int,
    fan_out: int,
    seed: int,
) -> torch.Tensor:
    """
    Sample a (fan_out, fan_in) float64 weight matrix inside the activation's range.

    Args:
        kind: Activation used by the layer.
        fan_in: Neurons in the previous layer.
        fan_out: Neurons in this layer.
        seed: Seed for the private generator.

    Returns:
        A new tensor with values in ``[low, high)``.
    """
    low, high = initialize(kind, fan_in, fan_out)
    generator = torch.Generator()
    generator.manual_seed(seed)
    weight = torch.empty((fan_out, fan_in), dtype=torch.float64)
    return weight.uniform_(low, high, generator=generator)


def init_linear_(layer: nn.Linear, kind: Activation, seed: int) -> None:
    """
    Initialize an nn.Linear in place for the given activation.

    The weight is drawn uniformly from the activation's range, the bias (if
    any) is zeroed.
    """
    sampled = init_weight_matrix(kind, layer.in_features, layer.out_features, seed)
    with torch.no_grad():
        layer.weight.copy_(sampled.to(dtype=layer.weight.dtype))
        if layer.bias is not None:
            layer.bias.zero_()
