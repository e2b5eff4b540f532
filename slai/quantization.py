"""Quantized weight blocks and their dequantization to 32-bit floats.

Each block class mirrors the packed little-endian layout used by GGML-style
model files, so blocks can be read from and written back to raw bytes.
"""

from __future__ import annotations

import math
import random as _random
import struct
from dataclasses import dataclass
from typing import ClassVar

import numpy as np

QK_K = 256
K_SCALE_SIZE = 12

_INT_RANGES = {
    "u8": (0, 0xFF),
    "i8": (-0x80, 0x7F),
    "u16": (0, 0xFFFF),
    "i16": (-0x8000, 0x7FFF),
}


def decode_f16(half: int) -> float:
    """Decode the bit pattern of an IEEE 754 half-precision float."""
    if not 0 <= half <= 0xFFFF:
        raise ValueError(f"not a 16-bit value: {half}")
    exp = (half >> 10) & 0x1F
    mant = half & 0x3FF
    if exp == 0:
        val = mant * 2.0**-24
    elif exp != 31:
        val = (mant + 1024) * 2.0 ** (exp - 25)
    elif mant == 0:
        val = math.inf
    else:
        val = math.nan
    return -val if half & 0x8000 else val


def get_scale_min_k4(j: int, q) -> tuple[int, int]:
    """Unpack the 6-bit scale and min number ``j`` from a K-quant scales array."""
    if j < 4:
        return q[j] & 63, q[j + 4] & 63
    d = (q[j + 4] & 0xF) | ((q[j - 4] >> 6) << 4)
    m = (q[j + 4] >> 4) | ((q[j] >> 6) << 4)
    return d, m


def _f16(bits: int) -> np.float32:
    return np.float32(decode_f16(bits))


class _Block:
    """Shared packing, unpacking and validation for quantized blocks.

    ``_LAYOUT`` lists ``(field, count, kind)`` in memory order; ``count`` is
    ``None`` for scalar fields and ``kind`` is an integer kind or ``"f32"``.
    """

    _FORMAT: ClassVar[str]
    _LAYOUT: ClassVar[tuple]
    SIZE: ClassVar[int]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._STRUCT = struct.Struct(cls._FORMAT)
        cls.SIZE = cls._STRUCT.size

    def __post_init__(self):
        for name, count, kind in self._LAYOUT:
            value = getattr(self, name)
            if count is None:
                value = self._check_scalar(name, value, kind)
            else:
                items = tuple(self._check_scalar(name, v, kind) for v in value)
                if len(items) != count:
                    raise ValueError(
                        f"{type(self).__name__}.{name} needs {count} values, got {len(items)}"
                    )
                value = items
            object.__setattr__(self, name, value)

    @staticmethod
    def _check_scalar(name, value, kind):
        if kind == "f32":
            return float(np.float32(value))
        value = int(value)
        lo, hi = _INT_RANGES[kind]
        if not lo <= value <= hi:
            raise ValueError(f"{name} value {value} out of {kind} range")
        return value

    @classmethod
    def from_bytes(cls, data):
        """Unpack a block from its packed little-endian representation."""
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise ValueError(f"{cls.__name__} needs {cls.SIZE} bytes, got {len(data)}")
        values = iter(cls._STRUCT.unpack(data))
        kwargs = {}
        for name, count, _ in cls._LAYOUT:
            if count is None:
                kwargs[name] = next(values)
            else:
                kwargs[name] = tuple(next(values) for _ in range(count))
        return cls(**kwargs)

    def to_bytes(self) -> bytes:
        """Pack the block into its little-endian representation."""
        flat = []
        for name, count, _ in self._LAYOUT:
            value = getattr(self, name)
            if count is None:
                flat.append(value)
            else:
                flat.extend(value)
        return self._STRUCT.pack(*flat)


def _rand_ints(rng, kind, count):
    lo, hi = _INT_RANGES[kind]
    return tuple(rng.randint(lo, hi) for _ in range(count))


@dataclass(frozen=True)
class BlockF16(_Block):
    """A single half-precision value."""

    data: int

    _FORMAT = "<H"
    _LAYOUT = (("data", None, "u16"),)

    def dequantize(self) -> float:
        return decode_f16(self.data)

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ8_0(_Block):
    """32 signed 8-bit quants sharing one half-precision scale."""

    scale: int
    data: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = 32
    _FORMAT = "<H32b"
    _LAYOUT = (("scale", None, "u16"), ("data", 32, "i8"))

    def dequantize(self) -> np.ndarray:
        return np.asarray(self.data, dtype=np.float32) * _f16(self.scale)

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ4_0(_Block):
    """32 4-bit quants centred on 8, with one half-precision scale."""

    d: int
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = 32
    _FORMAT = "<H16B"
    _LAYOUT = (("d", None, "u16"), ("qs", 16, "u8"))

    def dequantize(self) -> np.ndarray:
        d = _f16(self.d)
        qs = np.asarray(self.qs, dtype=np.int32)
        low = ((qs & 0x0F) - 8).astype(np.float32) * d
        high = ((qs >> 4) - 8).astype(np.float32) * d
        return np.concatenate([low, high])

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ4_1(_Block):
    """32 unsigned 4-bit quants with a half-precision scale and offset."""

    d: int
    m: int
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = 32
    _FORMAT = "<HH16B"
    _LAYOUT = (("d", None, "u16"), ("m", None, "u16"), ("qs", 16, "u8"))

    def dequantize(self) -> np.ndarray:
        d = _f16(self.d)
        m = _f16(self.m)
        qs = np.asarray(self.qs, dtype=np.int32)
        low = (qs & 0x0F).astype(np.float32) * d + m
        high = (qs >> 4).astype(np.float32) * d + m
        return np.concatenate([low, high])

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


def _q5_values(qh_bytes, qs_values):
    qh = int.from_bytes(bytes(qh_bytes), "little")
    j = np.arange(16, dtype=np.int64)
    xh_0 = ((qh >> j) << 4) & 0x10
    xh_1 = (qh >> (j + 12)) & 0x10
    qs = np.asarray(qs_values, dtype=np.int64)
    return (qs & 0x0F) | xh_0, (qs >> 4) | xh_1


@dataclass(frozen=True)
class BlockQ5_0(_Block):
    """32 5-bit quants centred on 16, with one half-precision scale."""

    d: int
    qh: tuple
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = 32
    _FORMAT = "<H4B16B"
    _LAYOUT = (("d", None, "u16"), ("qh", 4, "u8"), ("qs", 16, "u8"))

    def dequantize(self) -> np.ndarray:
        d = _f16(self.d)
        x0, x1 = _q5_values(self.qh, self.qs)
        low = (x0 - 16).astype(np.float32) * d
        high = (x1 - 16).astype(np.float32) * d
        return np.concatenate([low, high])

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ5_1(_Block):
    """32 unsigned 5-bit quants with a half-precision scale and offset."""

    d: int
    m: int
    qh: tuple
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = 32
    _FORMAT = "<HH4B16B"
    _LAYOUT = (
        ("d", None, "u16"),
        ("m", None, "u16"),
        ("qh", 4, "u8"),
        ("qs", 16, "u8"),
    )

    def dequantize(self) -> np.ndarray:
        d = _f16(self.d)
        m = _f16(self.m)
        x0, x1 = _q5_values(self.qh, self.qs)
        low = x0.astype(np.float32) * d + m
        high = x1.astype(np.float32) * d + m
        return np.concatenate([low, high])

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ8K(_Block):
    """256 signed 8-bit quants with a float scale and per-16 group sums."""

    d: float
    qs: tuple
    bsums: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = QK_K
    DEQUANTIZED_LEN: ClassVar[int] = QK_K
    _FORMAT = "<f256b16h"
    _LAYOUT = (("d", None, "f32"), ("qs", QK_K, "i8"), ("bsums", QK_K // 16, "i16"))

    def dequantize(self) -> np.ndarray:
        return np.float32(self.d) * np.asarray(self.qs, dtype=np.float32)

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()

    @classmethod
    def random(cls, rng=None):
        """Draw a block with arbitrary contents."""
        rng = rng or _random.Random()
        return cls(
            d=rng.random(),
            qs=_rand_ints(rng, "i8", QK_K),
            bsums=_rand_ints(rng, "i16", QK_K // 16),
        )


@dataclass(frozen=True)
class BlockQ6K(_Block):
    """256 6-bit quants in 16 groups with 8-bit scales and a half-precision super-scale."""

    ql: tuple
    qh: tuple
    scales: tuple
    d: int

    ELEMENTS_PER_BLOCK: ClassVar[int] = QK_K
    _FORMAT = "<128B64B16bH"
    _LAYOUT = (
        ("ql", QK_K // 2, "u8"),
        ("qh", QK_K // 4, "u8"),
        ("scales", QK_K // 16, "i8"),
        ("d", None, "u16"),
    )

    def dequantize(self) -> np.ndarray:
        result = np.zeros(QK_K, dtype=np.float32)
        d = _f16(self.d)
        ql = np.asarray(self.ql, dtype=np.int32)
        qh_all = np.asarray(self.qh, dtype=np.int32)
        scales = np.asarray(self.scales, dtype=np.float32)
        sub = np.arange(32) // 16

        for i in range(QK_K // 128):
            ql0 = ql[i * 64 : i * 64 + 32]
            ql32 = ql[i * 64 + 32 : i * 64 + 64]
            qh = qh_all[i * 32 : i * 32 + 32]

            quants = (
                ((ql0 & 0xF) | ((qh & 3) << 4)) - 32,
                ((ql32 & 0xF) | (((qh >> 2) & 3) << 4)) - 32,
                ((ql0 >> 4) | (((qh >> 4) & 3) << 4)) - 32,
                ((ql32 >> 4) | (((qh >> 6) & 3) << 4)) - 32,
            )
            for part, q in enumerate(quants):
                start = i * 128 + part * 32
                scale = scales[i * 8 + sub + 2 * part]
                result[start : start + 32] = d * scale * q.astype(np.float32)

        return result

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()


@dataclass(frozen=True)
class BlockQ5K(_Block):
    """256 5-bit quants with 6-bit sub-block scales and mins."""

    d: int
    dmin: int
    scales: tuple
    qh: tuple
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = QK_K
    DEQUANTIZED_LEN: ClassVar[int] = QK_K
    _FORMAT = "<HH12B32B128B"
    _LAYOUT = (
        ("d", None, "u16"),
        ("dmin", None, "u16"),
        ("scales", K_SCALE_SIZE, "u8"),
        ("qh", QK_K // 8, "u8"),
        ("qs", QK_K // 2, "u8"),
    )

    def dequantize(self) -> np.ndarray:
        result = np.zeros(QK_K, dtype=np.float32)
        d = _f16(self.d)
        dmin = _f16(self.dmin)
        qs = np.asarray(self.qs, dtype=np.int32)
        qh = np.asarray(self.qh, dtype=np.int32)
        u1, u2 = 1, 2

        for chunk, j in enumerate(range(0, QK_K, 64)):
            sub = 2 * chunk
            sc, m = get_scale_min_k4(sub, self.scales)
            d1, m1 = d * np.float32(sc), dmin * np.float32(m)
            sc, m = get_scale_min_k4(sub + 1, self.scales)
            d2, m2 = d * np.float32(sc), dmin * np.float32(m)

            q = qs[chunk * 32 : chunk * 32 + 32]
            low = (q & 0xF) + np.where(qh & u1, 16, 0)
            high = (q >> 4) + np.where(qh & u2, 16, 0)
            result[j : j + 32] = d1 * low.astype(np.float32) - m1
            result[j + 32 : j + 64] = d2 * high.astype(np.float32) - m2

            u1 <<= 2
            u2 <<= 2

        return result

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()

    @classmethod
    def random(cls, rng=None):
        """Draw a block with arbitrary contents."""
        rng = rng or _random.Random()
        return cls(
            d=rng.getrandbits(16),
            dmin=rng.getrandbits(16),
            scales=_rand_ints(rng, "u8", K_SCALE_SIZE),
            qh=_rand_ints(rng, "u8", QK_K // 8),
            qs=_rand_ints(rng, "u8", QK_K // 2),
        )


@dataclass(frozen=True)
class BlockQ4K(_Block):
    """256 4-bit quants with 6-bit sub-block scales and mins."""

    d: int
    dmin: int
    scales: tuple
    qs: tuple

    ELEMENTS_PER_BLOCK: ClassVar[int] = QK_K
    DEQUANTIZED_LEN: ClassVar[int] = QK_K
    _FORMAT = "<HH12B128B"
    _LAYOUT = (
        ("d", None, "u16"),
        ("dmin", None, "u16"),
        ("scales", K_SCALE_SIZE, "u8"),
        ("qs", QK_K // 2, "u8"),
    )

    def dequantize(self) -> np.ndarray:
        result = np.zeros(QK_K, dtype=np.float32)
        d = _f16(self.d)
        dmin = _f16(self.dmin)
        qs = np.asarray(self.qs, dtype=np.int32)

        for chunk, j in enumerate(range(0, QK_K, 64)):
            sub = 2 * chunk
            sc, m = get_scale_min_k4(sub, self.scales)
            d1, m1 = d * np.float32(sc), dmin * np.float32(m)
            sc, m = get_scale_min_k4(sub + 1, self.scales)
            d2, m2 = d * np.float32(sc), dmin * np.float32(m)

            q = qs[chunk * 32 : chunk * 32 + 32]
            result[j : j + 32] = d1 * (q & 0xF).astype(np.float32) - m1
            result[j + 32 : j + 64] = d2 * (q >> 4).astype(np.float32) - m2

        return result

    @classmethod
    def from_bytes(cls, data):
        return super().from_bytes(data)

    def to_bytes(self) -> bytes:
        return super().to_bytes()

    @classmethod
    def random(cls, rng=None):
        """Draw a block with arbitrary contents."""
        rng = rng or _random.Random()
        return cls(
            d=rng.getrandbits(16),
            dmin=rng.getrandbits(16),
            scales=_rand_ints(rng, "u8", K_SCALE_SIZE),
            qs=_rand_ints(rng, "u8", QK_K // 2),
        )