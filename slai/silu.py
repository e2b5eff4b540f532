"""Swish activation and the SwiGLU gating used in feed-forward layers."""

from __future__ import annotations

import numpy as np


def swish(x, beta=1.0):
    """The swish function ``x / (1 + exp(-beta * x))``."""
    x = np.asarray(x, dtype=np.float32)
    with np.errstate(over="ignore"):
        result = x / (np.float32(1.0) + np.exp(np.float32(-beta) * x))
    return result.astype(np.float32) if result.ndim else np.float32(result)


def silu(h1, h2) -> np.ndarray:
    """SwiGLU non-linearity: ``h2 * swish(h1, 1)`` element by element."""
    a = np.asarray(h1, dtype=np.float32)
    b = np.asarray(h2, dtype=np.float32)
    if a.shape != b.shape:
        raise ValueError(f"silu: dimension mismatch {a.shape} vs {b.shape}")
    return (b * swish(a, 1.0)).astype(np.float32)