"""Root-mean-square normalization with per-element weights."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

_NUDGE_FACTOR = np.float32(1.0e-5)


@dataclass(frozen=True)
class RmsNormConfig:
    """Parameters of the RMS norm kernel."""

    nudge_factor: float = 1.0e-5


def rms_norm(values, weights) -> np.ndarray:
    """Scale ``values`` by the inverse of their RMS, then by ``weights``."""
    a = np.asarray(values, dtype=np.float32)
    w = np.asarray(weights, dtype=np.float32)
    if a.ndim != 1 or w.ndim != 1:
        raise ValueError("rms_norm expects vectors")
    if a.shape != w.shape:
        raise ValueError(f"rms_norm: dimension mismatch {a.shape} vs {w.shape}")
    if a.size == 0:
        raise ValueError("rms_norm of an empty vector")
    mean_square = np.dot(a, a) / np.float32(a.size)
    rms = np.float32(1.0) / np.sqrt(mean_square + _NUDGE_FACTOR)
    return ((a * rms) * w).astype(np.float32)