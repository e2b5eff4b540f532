"""Storage formats of the matrices fed to the quantized matrix-vector product.

Each format describes how one GPU block is laid out: how many 32-bit words it
takes, how many floats it expands to, and how the product kernel treats the
input vector, the output vector and its dispatch size for that format.
"""

from __future__ import annotations

import enum
import random as _random
from dataclasses import dataclass

from .quantization import BlockQ4K, BlockQ5K, BlockQ8K

# The vectorised kernels are enabled for the formats that have one.
_USE_OPTIMIZED = True
_ROWS_PER_WORKGROUP = 64


class QuantFormat(enum.Enum):
    """Element type of a matrix consumed by the quantized product."""

    F32 = "f32"
    Q8_0 = "q8_0"
    Q5_0 = "q5_0"
    Q5_1 = "q5_1"
    Q4_0 = "q4_0"
    Q4_1 = "q4_1"
    Q8K = "q8_k"
    Q6K = "q6_k"
    Q5K = "q5_k"
    Q4K = "q4_k"

    def dequantized_len(self) -> int:
        """Number of floats one block of this format stands for."""
        return _DEQUANTIZED_LEN[self]

    def block_words(self) -> int:
        """Number of 32-bit words one block of this format occupies."""
        return _BLOCK_WORDS[self]

    def vector_as_vec4(self) -> bool:
        """Whether the kernel reads the input vector as groups of four floats."""
        return self is not QuantFormat.F32

    def output_as_vec4(self) -> bool:
        """Whether the kernel writes the output vector as groups of four floats."""
        return _USE_OPTIMIZED and self in _OPTIMIZED

    def dispatch_size(self, out_rows: int, matrix_rows: int) -> int:
        """Number of workgroups launched for an output of ``out_rows`` rows."""
        if self.output_as_vec4():
            return out_rows // 4
        return -(-matrix_rows // _ROWS_PER_WORKGROUP)

    def random_block(self, rng=None):
        """Draw one block with arbitrary contents.

        Plain floats come back as a float, packed double blocks as a tuple of
        32-bit words, and K-quant blocks as their block objects.
        """
        rng = rng or _random.Random()
        if self is QuantFormat.F32:
            return rng.random()
        block_class = _K_BLOCKS.get(self)
        if block_class is not None:
            return block_class.random(rng)
        return tuple(rng.getrandbits(32) for _ in range(self.block_words()))


_K_BLOCKS = {
    QuantFormat.Q8K: BlockQ8K,
    QuantFormat.Q5K: BlockQ5K,
    QuantFormat.Q4K: BlockQ4K,
}

_DEQUANTIZED_LEN = {
    QuantFormat.F32: 1,
    QuantFormat.Q8_0: 64,
    QuantFormat.Q5_0: 64,
    QuantFormat.Q5_1: 64,
    QuantFormat.Q4_0: 64,
    QuantFormat.Q4_1: 64,
    QuantFormat.Q8K: BlockQ8K.DEQUANTIZED_LEN,
    QuantFormat.Q6K: 512,
    QuantFormat.Q5K: BlockQ5K.DEQUANTIZED_LEN,
    QuantFormat.Q4K: BlockQ4K.DEQUANTIZED_LEN,
}

_BLOCK_WORDS = {
    QuantFormat.F32: 1,
    QuantFormat.Q8_0: 17,
    QuantFormat.Q5_0: 11,
    QuantFormat.Q5_1: 12,
    QuantFormat.Q4_0: 9,
    QuantFormat.Q4_1: 10,
    QuantFormat.Q8K: BlockQ8K.SIZE // 4,
    QuantFormat.Q6K: 105,
    QuantFormat.Q5K: BlockQ5K.SIZE // 4,
    QuantFormat.Q4K: BlockQ4K.SIZE // 4,
}

_OPTIMIZED = frozenset(
    {
        QuantFormat.Q8_0,
        QuantFormat.Q4_0,
        QuantFormat.Q6K,
        QuantFormat.Q5K,
        QuantFormat.Q4K,
    }
)


@dataclass(frozen=True)
class QuantMatrix:
    """A matrix of blocks in one format, stored as packed little-endian bytes."""

    format: QuantFormat
    rows: int
    cols: int
    data: bytes

    def __post_init__(self):
        if self.rows < 0 or self.cols < 0:
            raise ValueError(f"invalid matrix shape ({self.rows}, {self.cols})")
        data = bytes(self.data)
        expected = self.block_count() * self.format.block_words() * 4
        if len(data) != expected:
            raise ValueError(
                f"{self.format.name} matrix of shape ({self.rows}, {self.cols}) "
                f"needs {expected} bytes, got {len(data)}"
            )
        object.__setattr__(self, "data", data)

    def shape(self) -> tuple[int, int]:
        """Number of block rows and block columns."""
        return self.rows, self.cols

    def block_count(self) -> int:
        """Total number of blocks stored."""
        return self.rows * self.cols