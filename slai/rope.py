"""Rotary positional encoding of query and key vectors."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import numpy as np

_BASE_FREQ = np.float32(10000.0)


class RoPEVariant(enum.Enum):
    """Which pairs of entries the rotary encoding rotates together."""

    # Rotated entries are adjacent.
    ORIGINAL = "original"
    # Rotated entries are separated by ``head_size / 2`` elements.
    NEOX = "neox"


@dataclass(frozen=True)
class RoPEConfig:
    """Parameters of the rotary positional encoding kernel."""

    head_size: int
    kv_dim: int
    pos: int
    base_freq: float = 1.0e4


def _as_vector(name, values) -> np.ndarray:
    vec = np.array(values, dtype=np.float32, copy=True)
    if vec.ndim != 1:
        raise ValueError(f"rope: {name} must be a vector, got {vec.ndim} dimensions")
    return vec


def rope(q, k, head_size: int, dim: int, kv_dim: int, pos: int):
    """Rotate each pair of adjacent entries of ``q`` and ``k`` by a position-dependent angle.

    Entry pairs ``(i, i + 1)`` for even ``i`` below ``dim`` are rotated by
    ``pos * 10000 ** (-(i % head_size) / head_size)``. Only the pairs with
    ``i < kv_dim`` of the key vector are rotated, since there are fewer key
    heads than query heads. Returns the rotated copies ``(q, k)``.
    """
    if head_size <= 0:
        raise ValueError(f"rope: head size must be positive, got {head_size}")
    if dim < 0 or kv_dim < 0:
        raise ValueError("rope: dimensions must not be negative")
    if pos < 0:
        raise ValueError(f"rope: position must not be negative, got {pos}")

    q = _as_vector("q", q)
    k = _as_vector("k", k)

    idx = np.arange(0, dim, 2)
    if idx.size and idx[-1] + 1 >= q.size:
        raise ValueError(f"rope: query of length {q.size} is too short for dim {dim}")
    k_idx = idx[idx < kv_dim]
    if k_idx.size and k_idx[-1] + 1 >= k.size:
        raise ValueError(f"rope: key of length {k.size} is too short for kv_dim {kv_dim}")

    head_dim = (idx % head_size).astype(np.float32)
    theta = _BASE_FREQ ** (-head_dim / np.float32(head_size))
    angle = np.float32(pos) * theta
    cos = np.cos(angle).astype(np.float32)
    sin = np.sin(angle).astype(np.float32)

    x0, x1 = q[idx].copy(), q[idx + 1].copy()
    q[idx] = cos * x0 - sin * x1
    q[idx + 1] = sin * x0 + cos * x1

    n = k_idx.size
    y0, y1 = k[k_idx].copy(), k[k_idx + 1].copy()
    k[k_idx] = cos[:n] * y0 - sin[:n] * y1
    k[k_idx + 1] = sin[:n] * y0 + cos[:n] * y1

    return q, k