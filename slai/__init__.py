"""CPU kernels and quantized block formats for LLM inference."""

__version__ = "0.1.0"

__all__ = [
    "attention",
    "layernorm",
    "quant_format",
    "quantization",
    "rms_norm",
    "rope",
    "silu",
    "softmax",
    "tensor_cache",
    "unary",
]