# slai

Reference CPU implementations of the building blocks used for large language
model inference, built on NumPy.

## What it provides

- **Quantized block formats** (`slai.quantization`): ggml-compatible blocks
  `BlockF16`, `BlockQ8_0`, `BlockQ4_0`, `BlockQ4_1`, `BlockQ5_0`, `BlockQ5_1`,
  `BlockQ8K`, `BlockQ6K`, `BlockQ5K` and `BlockQ4K`. Each one reads from and
  writes to its packed binary form (`from_bytes` / `to_bytes`) and expands to
  `float32` values with `dequantize()`. `decode_f16` turns a half-precision bit
  pattern into a float.
- **Matrix formats** (`slai.quant_format`): `QuantFormat` describes each
  storage format: its elements per block, its size in words and how a
  matrix-vector product is dispatched over it. `QuantMatrix` pairs a format
  with its blocks.
- **Tensor reuse** (`slai.tensor_cache`): `TensorCache` keeps released tensors
  under a `TensorKey` (element type, shape, `Ordering`, `BufferUsage`) and
  hands them out again on demand.
- **Kernels**: `softmax`, `layernorm`, `rms_norm`, `silu` / `swish`, `rope`
  (rotary positional encoding), the unary operations of `UnaryOp` through
  `apply_unary`, and `multiquery_attention` for grouped-query attention over a
  key/value cache.

## Installation

```
pip install .
```

## Example

```python
import numpy as np
from slai.quantization import BlockQ8_0
from slai.softmax import softmax
from slai.rms_norm import rms_norm

block = BlockQ8_0.from_bytes(bytes(34))
values = block.dequantize()          # 32 float32 values

probs = softmax(np.array([1.0, 2.0, 3.0], dtype=np.float32))
normed = rms_norm(np.ones(8, dtype=np.float32), np.full(8, 0.5, dtype=np.float32))
```

## Running the tests

```
pip install .[test]
pytest
```