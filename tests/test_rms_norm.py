import dataclasses

import numpy as np
import pytest

from slai.rms_norm import RmsNormConfig, rms_norm


def test_known_values():
    np.testing.assert_allclose(
        rms_norm([3.0, 4.0], [1.0, 1.0]), [0.8485278, 1.1313704], rtol=1e-5
    )


def test_weights_scale_output():
    out = rms_norm([3.0, 4.0], [2.0, 0.0])
    np.testing.assert_allclose(out, [1.6970556, 0.0], rtol=1e-5)


def test_random_vector_with_unit_weights_has_unit_rms():
    rng = np.random.default_rng(11)
    v = rng.random(1757).astype(np.float32)
    out = rms_norm(v, np.ones(1757, dtype=np.float32))
    assert out.dtype == np.float32
    assert abs(float(np.sqrt(np.mean(out * out))) - 1.0) < 1e-3


def test_scale_invariance():
    rng = np.random.default_rng(12)
    v = rng.random(64).astype(np.float32) + 0.5
    w = rng.random(64).astype(np.float32)
    np.testing.assert_allclose(rms_norm(v, w), rms_norm(v * 4.0, w), rtol=1e-4)


def test_dimension_mismatch_raises():
    with pytest.raises(ValueError):
        rms_norm([1.0, 2.0], [1.0])


def test_empty_raises():
    with pytest.raises(ValueError):
        rms_norm([], [])


def test_config_default_and_frozen():
    config = RmsNormConfig()
    assert config.nudge_factor == pytest.approx(1.0e-5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.nudge_factor = 1.0e-6