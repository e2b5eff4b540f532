import math

import numpy as np
import pytest

from slai.unary import UnaryOp, apply_unary

ARGS = (0.25, 0.75, 0.0, 0.0)


@pytest.mark.parametrize(
    "op, x, expected",
    [
        (UnaryOp.ABS, -2.0, 2.0),
        (UnaryOp.SGN, -3.5, -1.0),
        (UnaryOp.SGN, 0.0, 1.0),
        (UnaryOp.SGN, -0.0, -1.0),
        (UnaryOp.NEG, 1.5, -1.5),
        (UnaryOp.STEP, 0.0, 0.0),
        (UnaryOp.STEP, 0.5, 1.0),
        (UnaryOp.ELU, 2.0, 2.0),
        (UnaryOp.ELU, -1.0, math.expm1(-1.0)),
        (UnaryOp.GELU, 0.0, 0.0),
        (UnaryOp.GELU_QUICK, 0.0, 0.0),
        (UnaryOp.SILU, 0.0, 0.0),
        (UnaryOp.TANH, 0.0, 0.0),
        (UnaryOp.SIN, 0.0, 0.0),
        (UnaryOp.COS, 0.0, 1.0),
        (UnaryOp.RELU, -4.0, 0.0),
        (UnaryOp.RELU, 4.0, 4.0),
        (UnaryOp.SIGMOID, 0.0, 0.5),
        (UnaryOp.HARD_SIGMOID, -3.0, 0.0),
        (UnaryOp.HARD_SIGMOID, 0.0, 0.5),
        (UnaryOp.HARD_SIGMOID, 5.0, 1.0),
        (UnaryOp.SQR, 3.0, 9.0),
        (UnaryOp.SQRT, 4.0, 2.0),
        (UnaryOp.LOG, 1.0, 0.0),
    ],
)
def test_eval_without_args(op, x, expected):
    result = op.eval(x)
    assert result == pytest.approx(expected, abs=1e-6)
    if expected == 0 or expected in (1.0, -1.0):
        assert math.copysign(1.0, result) == math.copysign(1.0, expected) or expected == 0


@pytest.mark.parametrize(
    "op, x, args, expected",
    [
        (UnaryOp.LEAKY_RELU, -2.0, (0.1, 0, 0, 0), -0.2),
        (UnaryOp.LEAKY_RELU, 3.0, (0.1, 0, 0, 0), 3.0),
        (UnaryOp.CLAMP, 5.0, (0.0, 1.0, 0, 0), 1.0),
        (UnaryOp.CLAMP, -5.0, (0.0, 1.0, 0, 0), 0.0),
        (UnaryOp.CLAMP, 0.5, (0.0, 1.0, 0, 0), 0.5),
        (UnaryOp.SCALE, 2.0, (3.0, 0, 0, 0), 6.0),
        (UnaryOp.ADD_SCALAR, 2.0, (3.0, 0, 0, 0), 5.0),
    ],
)
def test_eval_with_args(op, x, args, expected):
    assert op.eval(x, args) == pytest.approx(expected, abs=1e-6)


def test_has_args():
    assert UnaryOp.LEAKY_RELU.has_args() is True
    assert UnaryOp.CLAMP.has_args() is True
    assert UnaryOp.SCALE.has_args() is True
    assert UnaryOp.ADD_SCALAR.has_args() is True
    assert UnaryOp.ABS.has_args() is False
    assert UnaryOp.LOG.has_args() is False
    with_args = {op for op in UnaryOp if op.has_args()}
    assert with_args == {
        UnaryOp.LEAKY_RELU,
        UnaryOp.CLAMP,
        UnaryOp.SCALE,
        UnaryOp.ADD_SCALAR,
    }


@pytest.mark.parametrize(
    "op", [UnaryOp.LEAKY_RELU, UnaryOp.CLAMP, UnaryOp.SCALE, UnaryOp.ADD_SCALAR]
)
def test_missing_args_raise(op):
    with pytest.raises(ValueError):
        op.eval(1.0)


def test_args_must_have_four_components():
    with pytest.raises(ValueError):
        UnaryOp.SCALE.eval(1.0, (2.0, 3.0))


def test_clamp_with_inverted_bounds_raises():
    with pytest.raises(ValueError):
        UnaryOp.CLAMP.eval(0.5, (1.0, 0.0, 0.0, 0.0))


def test_relu_of_nan_is_zero():
    assert UnaryOp.RELU.eval(float("nan")) == 0.0


def test_sgn_of_nan_is_nan():
    np.testing.assert_equal(UnaryOp.SGN.eval(float("nan")), np.nan)


def test_sqrt_and_log_of_negative_are_nan():
    np.testing.assert_equal(UnaryOp.SQRT.eval(-1.0), np.nan)
    np.testing.assert_equal(UnaryOp.LOG.eval(-1.0), np.nan)


@pytest.mark.parametrize("op", list(UnaryOp))
def test_apply_unary_matches_elementwise_eval(op):
    rng = np.random.default_rng(42)
    src = rng.random(1757, dtype=np.float32)
    args = np.array(ARGS, dtype=np.float32)
    result = apply_unary(op, src, args)
    assert result.shape == src.shape
    assert result.dtype == np.float32
    for index in (0, 100, 1756):
        assert result[index] == pytest.approx(op.eval(float(src[index]), args), rel=1e-6, abs=1e-7)


def test_apply_unary_does_not_modify_input():
    src = np.array([-1.0, 0.0, 2.0], dtype=np.float32)
    result = apply_unary(UnaryOp.NEG, src)
    np.testing.assert_array_equal(result, np.array([1.0, -0.0, -2.0], dtype=np.float32))
    np.testing.assert_array_equal(src, np.array([-1.0, 0.0, 2.0], dtype=np.float32))


def test_apply_unary_sigmoid_is_bounded():
    values = np.linspace(-50.0, 50.0, 101, dtype=np.float32)
    result = apply_unary(UnaryOp.SIGMOID, values)
    assert float(result.min()) >= 0.0
    assert float(result.max()) <= 1.0
    assert float(np.diff(result).min()) >= 0.0
    assert result[50] == pytest.approx(0.5)