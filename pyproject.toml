[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slai"
version = "0.1.0"
description = "Reference CPU kernels and quantized block formats for LLM inference."
requires-python = ">=3.10"
keywords = ["llm", "inference", "quantization", "attention", "rope", "ggml"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]
dependencies = ["numpy"]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["slai"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
