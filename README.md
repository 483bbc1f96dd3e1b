# bytemark

A pure-Python set of BYTEmark-style benchmark workloads. They exercise
bit-level, integer, memory-moving and floating-point code paths, and each
one is timed with a self-adjusting loop.

## What is measured

| Module             | Workload                                               | Rate reported                    |
|--------------------|--------------------------------------------------------|----------------------------------|
| `bytemark.bits`    | Runs of bit set/clear/flip on a 32-bit-word bitmap      | bits operated on per second      |
| `bytemark.bits`    | Huffman tree building, compression and decompression    | loops per second                 |
| `bytemark.fpu`     | Fourier coefficients of (x+1)^x on [0, 2]               | coefficients per second          |
| `bytemark.fpu`     | LU decomposition and solution of a 101x101 system       | systems solved per second        |
| `bytemark.idea`    | IDEA block encryption and decryption of a buffer        | encrypt/decrypt loops per second |
| `bytemark.neural`  | Back-propagation training on 5x7 input patterns         | training runs per second         |

Each workload has a benchmark class: `BitfieldBenchmark`,
`HuffmanBenchmark`, `FourierBenchmark`, `LUBenchmark`, `IdeaBenchmark` and
`NeuralNetBenchmark`. Their `run()` method first calibrates the amount of
work per iteration (unless it was given), so that one iteration takes
longer than `min_secs`, then repeats iterations until `request_secs` have
been accumulated and returns a `BenchmarkResult` with the work done, the
elapsed time and the `rate`.

```python
from bytemark.fpu import FourierBenchmark

result = FourierBenchmark(request_secs=1.0).run()
print(f"{result.rate:.1f} coefficients per second")
```

Calibration and measurement live in `bytemark.timing`: `calibrate()` tries
candidate workload sizes in turn until one is long enough, `measure()`
accumulates timed iterations, and `Stopwatch` does the timing. A
calibration whose candidates run out raises `BenchmarkError`; so does a
Huffman or IDEA iteration whose round trip fails to restore its input.

## Using the building blocks

The algorithms behind the benchmarks are plain functions:

```python
from bytemark.idea import mul, inv, encryption_key, decryption_key, cipher
from bytemark.fpu import trapezoid_integrate, build_problem, lusolve
from bytemark.bits import build_tree, compress, decompress
import random

# IDEA multiplication modulo 2**16 + 1 and its inverse
x = 12345
assert mul(x, inv(x)) == 1

z = encryption_key([1, 2, 3, 4, 5, 6, 7, 8])
data = bytes(range(16))
assert cipher(cipher(data, z), decryption_key(z)) == data

# First Fourier term of (x+1)^x on [0, 2], 200 trapezoid steps
a0 = trapezoid_integrate(0.0, 2.0, 200, 0.0, 0) / 2.0

# Solve a random, solvable 10x10 linear system
a, b = build_problem(random.Random(13), 10)
solution = lusolve(a, b)

# Huffman round trip
text = b"abracadabra"
tree, root = build_tree(text)
packed, nbits = compress(text, tree, root)
assert decompress(packed, nbits, tree, root) == text
```

`lusolve()` raises `SingularMatrixError` for a matrix with a row of zeros.

## Neural-net training data

`NeuralNetBenchmark` reads its patterns from `NNET.DAT` in the current
directory by default; pass `path=` for another file, or `patterns=` with
data already parsed. `read_data_file()` reads such a file and
`parse_patterns()` parses text already in memory. The layout is: the input
x size, y size and output size on the first line, the pattern count on the
second, then for each pattern its input rows of five values followed by
its eight output values. Values are separated by blanks or commas; inputs
are clamped to 0.1–0.9 and at most 10 patterns are read. No data file is
shipped with the package.

## Reproducibility

Every workload builds its data from a seeded `random.Random`, so inputs
are identical from run to run and machine to machine; only the timings
differ.

## What this package does not do

There is no command-line program and no report: benchmarks are run from
Python, one class at a time, and each returns its own `BenchmarkResult`.
The package gives no combined index or comparison with a reference
machine, and it has no sorting, assignment-problem or emulated
floating-point workloads.