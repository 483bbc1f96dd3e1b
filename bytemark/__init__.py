"""BYTEmark-style bitfield, Huffman, Fourier, LU, IDEA and neural-net benchmarks."""

__version__ = "2.2.3"

__all__ = ["bits", "fpu", "idea", "neural", "timing"]