"""Layer normalization of a vector."""

from __future__ import annotations

import numpy as np

_NUDGE_FACTOR = np.float32(1.0e-5)


def layernorm(values) -> np.ndarray:
    """Centre a vector on zero and scale it to unit variance."""
    v = np.asarray(values, dtype=np.float32)
    if v.ndim != 1:
        raise ValueError(f"layernorm expects a vector, got {v.ndim} dimensions")
    if v.size == 0:
        raise ValueError("layernorm of an empty vector")
    centered = v - v.mean(dtype=np.float32)
    variance = np.dot(centered, centered) / np.float32(centered.size)
    scale = np.float32(1.0) / np.sqrt(variance + _NUDGE_FACTOR)
    return (centered * scale).astype(np.float32)