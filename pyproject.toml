[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bytemark"
version = "2.2.3"
description = "BYTEmark-style CPU and FPU benchmark workloads in pure Python"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "benchmark",
    "bytemark",
    "nbench",
    "bitfield",
    "huffman",
    "fourier",
    "idea",
    "lu-decomposition",
    "neural-network",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bytemark"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
