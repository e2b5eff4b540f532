"""Softmax over a vector of scores."""

from __future__ import annotations

import numpy as np


def softmax(values) -> np.ndarray:
    """Turn a vector of real numbers into a probability distribution.

    The maximum is subtracted before exponentiation for numerical stability,
    so the result is ``exp(z - max) / sum(exp(z - max))``.
    """
    vals = np.asarray(values, dtype=np.float32)
    if vals.ndim != 1:
        raise ValueError(f"softmax expects a vector, got {vals.ndim} dimensions")
    if vals.size == 0:
        raise ValueError("softmax of an empty vector")
    exps = np.exp(vals - vals.max())
    return (exps / exps.sum(dtype=np.float32)).astype(np.float32)