# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Activation functions with analytic Jacobians.

Each activation is a member of the closed `Activation` enum. A single
dispatch table maps every member to its (forward, derivative, init gain)
triple, and the module-level `forward`, `derivative` and `initialize`
functions go through that table. There is no per-activation class and no
state, so any number of threads can call these on any tensors.

Conventions:
  - Inputs are 1-D tensors (anything torch.as_tensor accepts is converted to
    float64).
  - `derivative` takes the forward OUTPUT fx, not the input x, and returns
    the n x n Jacobian. Elementwise activations give diagonal matrices.
  - `initialize(fan_in, fan_out)` returns a symmetric uniform range
    ``(-r, r)`` with ``r = sqrt(6 / (fan_in + fan_out))``. Sigmoid, Softmax
    and SoftmaxCEE use ``4r``.

SoftmaxCEE has the same forward as Softmax but drops the ``fx_i`` row factor
from the Jacobian. That is only correct when the loss is cross-entropy,
whose own derivative cancels the factor. Do not use it with any other loss.
"""

import math
from enum import Enum
from typing import Callable, NamedTuple

import torch

LEAKY_SLOPE = 0.01
SIGMOID_GAIN = 4.0

Vector = torch.Tensor
Matrix = torch.Tensor


class Activation(str, Enum):
    """The ten supported activation kinds. Values are the config names."""

    HARD_SIGMOID = "hard_sigmoid"
    HARD_TANH = "hard_tanh"
    HYPERBOLIC_TANGENT = "hyperbolic_tangent"
    LINEAR = "linear"
    RECTIFIER = "rectifier"
    LEAKY_RELU = "leaky_relu"
    SIGMOID = "sigmoid"
    SOFTPLUS = "softplus"
    SOFTMAX = "softmax"
    SOFTMAX_CEE = "softmax_cee"

    def forward(self, x: torch.Tensor) -> Vector:
        return forward(self, x)

    def derivative(self, fx: torch.Tensor) -> Matrix:
        return derivative(self, fx)

    def initialize(self, fan_in: int, fan_out: int) -> tuple[float, float]:
        return initialize(self, fan_in, fan_out)


def _as_vector(x: torch.Tensor) -> Vector:
    vector = torch.as_tensor(x, dtype=torch.float64)
    if vector.dim() != 1:
        raise ValueError(f"Activations take 1-D vectors, got shape {tuple(vector.shape)}")
    return vector


def _diagonal(entries: Vector) -> Matrix:
    return torch.diag(entries.to(torch.float64))


# ── Forward passes ──────────────────────────────────────────────────────────


def _hard_sigmoid(x: Vector) -> Vector:
    # 0.25x + 0.5 hits 0 at x = -2 and 1 at x = 2.
    return torch.clamp(0.25 * x + 0.5, min=0.0, max=1.0)


def _hard_tanh(x: Vector) -> Vector:
    return torch.clamp(x, min=-1.0, max=1.0)


def _linear(x: Vector) -> Vector:
    return x.clone()


def _rectifier(x: Vector) -> Vector:
    return torch.clamp(x, min=0.0)


def _leaky_relu(x: Vector) -> Vector:
    return torch.where(x >= 0, x, LEAKY_SLOPE * x)


def _softplus(x: Vector) -> Vector:
    # log(1 + e^x) == logaddexp(x, 0), without overflowing for large x.
    return torch.logaddexp(x, torch.zeros_like(x))


def _softmax(x: Vector) -> Vector:
    if x.numel() == 0:
        return x.clone()
    exps = torch.exp(x - x.max())
    return exps / exps.sum()


# ── Jacobians, evaluated at the output ──────────────────────────────────────


def _hard_sigmoid_derivative(fx: Vector) -> Matrix:
    return _diagonal(((fx > 0.0) & (fx < 1.0)) * 0.25)


def _hard_tanh_derivative(fx: Vector) -> Matrix:
    return _diagonal((fx > -1.0) & (fx < 1.0))


def _tanh_derivative(fx: Vector) -> Matrix:
    return _diagonal(1.0 - fx * fx)


def _linear_derivative(fx: Vector) -> Matrix:
    return torch.eye(fx.numel(), dtype=torch.float64)


def _rectifier_derivative(fx: Vector) -> Matrix:
    return _diagonal(fx > 0.0)


def _leaky_relu_derivative(fx: Vector) -> Matrix:
    res = torch.eye(fx.numel(), dtype=torch.float64)
    negative = torch.nonzero(fx < 0.0).flatten()
    res[negative, negative] = LEAKY_SLOPE
    return res


def _sigmoid_derivative(fx: Vector) -> Matrix:
    return _diagonal((1.0 - fx) * fx)


def _softplus_derivative(fx: Vector) -> Matrix:
    e = torch.exp(fx)
    return _diagonal(e / (e - 1.0))


def _softmax_cee_derivative(fx: Vector) -> Matrix:
    # Every column of the subtracted matrix is fx: entry (i, j) = delta_ij - fx_i.
    return torch.eye(fx.numel(), dtype=torch.float64) - fx.unsqueeze(1)


def _softmax_derivative(fx: Vector) -> Matrix:
    # Same matrix with row i scaled by fx_i.
    return _softmax_cee_derivative(fx) * fx.unsqueeze(1)


# ── Dispatch ────────────────────────────────────────────────────────────────


class _ActivationOps(NamedTuple):
    forward: Callable[[Vector], Vector]
    derivative: Callable[[Vector], Matrix]
    init_gain: float


_DISPATCH: dict[Activation, _ActivationOps] = {
    Activation.HARD_SIGMOID: _ActivationOps(_hard_sigmoid, _hard_sigmoid_derivative, 1.0),
    Activation.HARD_TANH: _ActivationOps(_hard_tanh, _hard_tanh_derivative, 1.0),
    Activation.HYPERBOLIC_TANGENT: _ActivationOps(torch.tanh, _tanh_derivative, 1.0),
    Activation.LINEAR: _ActivationOps(_linear, _linear_derivative, 1.0),
    Activation.RECTIFIER: _ActivationOps(_rectifier, _rectifier_derivative, 1.0),
    Activation.LEAKY_RELU: _ActivationOps(_leaky_relu, _leaky_relu_derivative, 1.0),
    Activation.SIGMOID: _ActivationOps(torch.sigmoid, _sigmoid_derivative, SIGMOID_GAIN),
    Activation.SOFTPLUS: _ActivationOps(_softplus, _softplus_derivative, 1.0),
    Activation.SOFTMAX: _ActivationOps(_softmax, _softmax_derivative, SIGMOID_GAIN),
    Activation.SOFTMAX_CEE: _ActivationOps(_softmax, _softmax_cee_derivative, SIGMOID_GAIN),
}


def forward(kind: Activation, x: torch.Tensor) -> Vector:
    """
    Compute f(x).

    Args:
        kind: Which activation to apply.
        x: 1-D input (summed pre-activations of a layer).

    Returns:
        A new float64 vector of the same length. The input is never modified.
    """
    return _DISPATCH[kind].forward(_as_vector(x))


def derivative(kind: Activation, fx: torch.Tensor) -> Matrix:
    """
    Jacobian of the activation, evaluated at its own output.

    Args:
        kind: Which activation.
        fx: The value forward() returned, not the original input.

    Returns:
        An n x n float64 matrix.
    """
    return _DISPATCH[kind].derivative(_as_vector(fx))


def initialize(kind: Activation, fan_in: int, fan_out: int) -> tuple[float, float]:
    """
    Uniform weight initialization range for a layer using this activation.

    Raises:
        ValueError: If fan_in + fan_out is not positive.
    """
    if fan_in < 0 or fan_out < 0 or fan_in + fan_out <= 0:
        raise ValueError(f"Invalid fan-in/fan-out ({fan_in}, {fan_out})")
    bound = math.sqrt(6.0 / (fan_in + fan_out)) * _DISPATCH[kind].init_gain
    return -bound, bound


def _lookup_key(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


_BY_KEY: dict[str, Activation] = {_lookup_key(kind.value): kind for kind in Activation}


def get_activation(name: "str | Activation") -> Activation:
    """
    Resolve a config string to an Activation.

    Matching ignores case, underscores and dashes, so ``"leaky_relu"``,
    ``"LeakyReLU"`` and ``"leaky-relu"`` all name the same activation.

    Raises:
        KeyError: If the name does not match any activation.
    """
    if isinstance(name, Activation):
        return name
    kind = _BY_KEY.get(_lookup_key(name))
    if kind is None:
        raise KeyError(f"Unknown activation '{name}'. Available: {list_activation_types()}")
    return kind


def list_activation_types() -> list[str]:
    """Return sorted config names of all activations."""
    return sorted(kind.value for kind in Activation)
