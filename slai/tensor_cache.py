"""A pool of reusable tensors keyed by element type, shape, ordering and usage.

Tensors handed out by the cache go back into it when released, when their
``with`` block ends, or when the handle is garbage collected, so that buffers
stay alive and can be reused by later computations.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np


class Ordering(enum.Enum):
    """Memory ordering of a matrix."""

    ROW_MAJOR = "row_major"
    COLUMN_MAJOR = "column_major"


class BufferUsage(enum.Flag):
    """How a device buffer may be used."""

    MAP_READ = 1
    MAP_WRITE = 2
    COPY_SRC = 4
    COPY_DST = 8
    INDEX = 16
    VERTEX = 32
    UNIFORM = 64
    STORAGE = 128
    INDIRECT = 256
    QUERY_RESOLVE = 512


def _ordering_of(tensor) -> Ordering:
    ordering = getattr(tensor, "ordering", None)
    if ordering is not None:
        return Ordering(ordering)
    flags = getattr(tensor, "flags", None)
    if flags is not None and flags["F_CONTIGUOUS"] and not flags["C_CONTIGUOUS"]:
        return Ordering.COLUMN_MAJOR
    return Ordering.ROW_MAJOR


@dataclass(frozen=True)
class TensorKey:
    """Identifies the tensors that are interchangeable in the cache."""

    dtype: np.dtype
    shape: tuple[int, int, int, int]
    ordering: Ordering
    usage: BufferUsage

    def __post_init__(self):
        shape = tuple(int(s) for s in self.shape)
        if len(shape) > 4:
            raise ValueError(f"tensors have at most 4 dimensions, got {len(shape)}")
        object.__setattr__(self, "shape", shape + (1,) * (4 - len(shape)))
        object.__setattr__(self, "dtype", np.dtype(self.dtype))
        object.__setattr__(self, "ordering", Ordering(self.ordering))

    @classmethod
    def of(cls, tensor, usage: BufferUsage) -> "TensorKey":
        """Build the key describing ``tensor`` used with ``usage``."""
        return cls(
            dtype=tensor.dtype,
            shape=tuple(tensor.shape),
            ordering=_ordering_of(tensor),
            usage=usage,
        )


class CachedTensor:
    """A tensor borrowed from a :class:`TensorCache`."""

    def __init__(self, tensor, cache: "TensorCache", usage: BufferUsage):
        self._tensor = tensor
        self._cache = cache
        self._usage = usage
        self._taken = False

    def tensor(self):
        """The borrowed tensor."""
        if self._taken:
            raise RuntimeError("tensor was already released")
        return self._tensor

    def into_inner(self):
        """Take the tensor for good; it will not go back to the cache."""
        tensor = self.tensor()
        self._taken = True
        self._tensor = None
        return tensor

    def release(self) -> None:
        """Return the tensor to the cache. Later calls do nothing."""
        if self._taken:
            return
        tensor = self._tensor
        self._taken = True
        self._tensor = None
        self._cache._reclaim(tensor, self._usage)

    def __enter__(self):
        return self.tensor()

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __del__(self):
        try:
            self.release()
        except Exception:
            pass


class TensorCache:
    """Thread-safe pool of tensors grouped by :class:`TensorKey`."""

    def __init__(self):
        self._tensors: dict[TensorKey, list[Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._tensors.values())

    def _pop(self, key: TensorKey):
        with self._lock:
            bucket = self._tensors.get(key)
            if bucket:
                return True, bucket.pop()
            return False, None

    def get(self, key: TensorKey) -> CachedTensor | None:
        """Borrow a cached tensor matching ``key``, or ``None`` if there is none."""
        found, tensor = self._pop(key)
        if not found:
            return None
        return CachedTensor(tensor, self, key.usage)

    def get_or_insert(self, key: TensorKey, insert: Callable[[], Any]) -> CachedTensor:
        """Borrow a tensor matching ``key``, creating it with ``insert`` if needed."""
        found, tensor = self._pop(key)
        if not found:
            tensor = insert()
        return CachedTensor(tensor, self, key.usage)

    def enroll(self, tensor, usage: BufferUsage) -> CachedTensor:
        """Wrap ``tensor`` so that it joins the cache once released."""
        return CachedTensor(tensor, self, usage)

    def clear(self) -> None:
        """Drop every cached tensor."""
        with self._lock:
            self._tensors.clear()

    def _reclaim(self, tensor, usage: BufferUsage) -> None:
        key = TensorKey.of(tensor, usage)
        with self._lock:
            self._tensors.setdefault(key, []).append(tensor)