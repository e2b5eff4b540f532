"""Multi-query attention over a key/value cache."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .softmax import softmax


@dataclass(frozen=True)
class BatchedMultiqueryAttentionParams:
    """Parameters of the batched multi-query attention kernel.

    ``kv_mul`` is the number of query heads sharing one key/value head, and
    ``pos`` is the index of the current token in the sequence.
    """

    seq_len: int
    kv_dim: int
    kv_mul: int
    n_heads: int
    head_size: int
    pos: int

    def __post_init__(self):
        for name in ("seq_len", "kv_dim", "kv_mul", "n_heads", "head_size", "pos"):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.kv_mul <= 0:
            raise ValueError(f"kv_mul must be positive, got {self.kv_mul}")
        if self.head_size <= 0:
            raise ValueError(f"head_size must be positive, got {self.head_size}")
        if self.n_heads % self.kv_mul:
            raise ValueError(
                f"n_heads ({self.n_heads}) must be a multiple of kv_mul ({self.kv_mul})"
            )
        if self.pos >= self.seq_len:
            raise ValueError(f"pos {self.pos} is past the sequence length {self.seq_len}")


def _matrix(name, values, min_rows, min_cols) -> np.ndarray:
    mat = np.array(values, dtype=np.float32, copy=True)
    if mat.ndim != 2:
        raise ValueError(f"{name} must be a matrix, got {mat.ndim} dimensions")
    rows, cols = mat.shape
    if rows < min_rows or cols < min_cols:
        raise ValueError(
            f"{name} of shape {mat.shape} is too small, needs at least ({min_rows}, {min_cols})"
        )
    return mat


def multiquery_attention(params: BatchedMultiqueryAttentionParams, q, key_cache, value_cache, attn):
    """Attend every query head to the cached keys and values up to ``params.pos``.

    ``key_cache`` and ``value_cache`` hold one column per timestep; ``attn``
    holds one column of attention weights per query head. Returns the updated
    copy of ``attn`` and the vector of weighted value sums, one ``head_size``
    slice per query head.
    """
    head_size = params.head_size
    kv_mul = params.kv_mul
    n_heads = params.n_heads
    steps = params.pos + 1
    n_kv_heads = n_heads // kv_mul

    q = np.asarray(q, dtype=np.float32)
    if q.ndim != 1:
        raise ValueError(f"q must be a vector, got {q.ndim} dimensions")
    if q.size < n_heads * head_size:
        raise ValueError(f"q of length {q.size} is too short for {n_heads} heads")

    kv_rows = n_kv_heads * head_size
    keys = _matrix("key_cache", key_cache, kv_rows, steps)
    values = _matrix("value_cache", value_cache, kv_rows, steps)
    attn = _matrix("attn", attn, steps, n_heads)

    xb = np.zeros(n_heads * head_size, dtype=np.float32)
    norm = np.sqrt(np.float32(head_size))

    for h in range(n_heads):
        q_head = q[h * head_size : (h + 1) * head_size]
        kv_start = (h // kv_mul) * head_size
        k_head = keys[kv_start : kv_start + head_size, :steps]
        v_head = values[kv_start : kv_start + head_size, :steps]

        scores = (q_head @ k_head) / norm
        weights = softmax(scores)
        attn[:steps, h] = weights
        xb[h * head_size : (h + 1) * head_size] = v_head @ weights

    return attn, xb