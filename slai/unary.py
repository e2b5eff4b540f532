"""Element-wise unary operations on 32-bit floats."""

from __future__ import annotations

import enum

import numpy as np

_GELU_COEF_A = np.float32(0.044715)
_SQRT_2_OVER_PI = np.float32(0.7978846)
_GELU_QUICK_COEF = np.float32(-1.702)
_ONE = np.float32(1.0)
_ZERO = np.float32(0.0)


class UnaryOp(enum.Enum):
    """A unary operation applied to every element of a tensor."""

    ABS = "abs"
    SGN = "sgn"
    NEG = "neg"
    STEP = "step"
    ELU = "elu"
    GELU = "gelu"
    GELU_QUICK = "gelu_quick"
    SILU = "silu"
    TANH = "tanh"
    SIN = "sin"
    COS = "cos"
    RELU = "relu"
    SIGMOID = "sigmoid"
    HARD_SIGMOID = "hard_sigmoid"
    SQR = "sqr"
    SQRT = "sqrt"
    LOG = "log"
    # Operations taking extra arguments.
    LEAKY_RELU = "leaky_relu"
    CLAMP = "clamp"
    SCALE = "scale"
    ADD_SCALAR = "add_scalar"

    def has_args(self) -> bool:
        """Whether the operation reads its four-component argument vector."""
        return self in _WITH_ARGS

    def eval(self, x, args=None):
        """Apply the operation to a scalar or an array of values.

        ``args`` is a four-component vector; operations with arguments read
        its first (and for clamp, second) component.
        """
        arr = np.asarray(x, dtype=np.float32)
        arguments = _check_args(self, args)
        with np.errstate(all="ignore"):
            result = np.asarray(_EVAL[self](arr, arguments), dtype=np.float32)
        return result if result.ndim else np.float32(result)


_WITH_ARGS = frozenset(
    {UnaryOp.LEAKY_RELU, UnaryOp.CLAMP, UnaryOp.SCALE, UnaryOp.ADD_SCALAR}
)


def _check_args(op: UnaryOp, args) -> np.ndarray:
    if args is None:
        if op.has_args():
            raise ValueError(f"unary operation {op.value} needs arguments")
        return np.zeros(4, dtype=np.float32)
    arguments = np.asarray(args, dtype=np.float32)
    if arguments.shape != (4,):
        raise ValueError(f"unary arguments must have 4 components, got shape {arguments.shape}")
    return arguments


def _sgn(x, _a):
    return np.where(np.isnan(x), x, np.copysign(_ONE, x))


def _clamp(x, a):
    lo, hi = a[0], a[1]
    if np.isnan(lo) or np.isnan(hi) or lo > hi:
        raise ValueError(f"invalid clamp bounds: min {lo}, max {hi}")
    return np.clip(x, lo, hi)


def _gelu(x, _a):
    inner = _SQRT_2_OVER_PI * x * (_ONE + _GELU_COEF_A * x * x)
    return np.float32(0.5) * x * (_ONE + np.tanh(inner))


_EVAL = {
    UnaryOp.ABS: lambda x, a: np.abs(x),
    UnaryOp.SGN: _sgn,
    UnaryOp.NEG: lambda x, a: -x,
    UnaryOp.STEP: lambda x, a: np.where(x > _ZERO, _ONE, _ZERO),
    UnaryOp.ELU: lambda x, a: np.where(x > _ZERO, x, np.exp(x) - _ONE),
    UnaryOp.GELU: _gelu,
    UnaryOp.GELU_QUICK: lambda x, a: x * (_ONE / (_ONE + np.exp(_GELU_QUICK_COEF * x))),
    UnaryOp.SILU: lambda x, a: x / (_ONE + np.exp(-x)),
    UnaryOp.TANH: lambda x, a: np.tanh(x),
    UnaryOp.SIN: lambda x, a: np.sin(x),
    UnaryOp.COS: lambda x, a: np.cos(x),
    UnaryOp.RELU: lambda x, a: np.fmax(x, _ZERO),
    UnaryOp.SIGMOID: lambda x, a: _ONE / (_ONE + np.exp(-x)),
    UnaryOp.HARD_SIGMOID: lambda x, a: np.fmin(
        _ONE, np.fmax(_ZERO, (x + np.float32(3.0)) / np.float32(6.0))
    ),
    UnaryOp.SQR: lambda x, a: x * x,
    UnaryOp.SQRT: lambda x, a: np.sqrt(x),
    UnaryOp.LOG: lambda x, a: np.log(x),
    UnaryOp.LEAKY_RELU: lambda x, a: np.fmax(x, _ZERO) + np.fmin(x, _ZERO) * a[0],
    UnaryOp.CLAMP: _clamp,
    UnaryOp.SCALE: lambda x, a: x * a[0],
    UnaryOp.ADD_SCALAR: lambda x, a: x + a[0],
}


def apply_unary(op: UnaryOp, values, args=None) -> np.ndarray:
    """Apply ``op`` to every element of ``values`` and return the new array."""
    result = op.eval(np.asarray(values, dtype=np.float32), args)
    return np.asarray(result, dtype=np.float32)