"""Fourier-coefficient and LU-decomposition floating-point benchmarks.

Random sources are ``random.Random``-like objects; only ``randrange`` is used.
"""

from __future__ import annotations

import itertools
import math
import random
from dataclasses import dataclass
from typing import List, MutableSequence, Optional, Sequence, Tuple

from bytemark.timing import (
    DEFAULT_MIN_SECS,
    DEFAULT_REQUEST_SECS,
    BenchmarkResult,
    Stopwatch,
    calibrate,
    measure,
)

__all__ = [
    "INTEGRATION_STEPS",
    "LU_ARRAY_SIZE",
    "the_function",
    "trapezoid_integrate",
    "fourier_coefficients",
    "FourierBenchmark",
    "SingularMatrixError",
    "build_problem",
    "ludcmp",
    "lubksb",
    "lusolve",
    "LUBenchmark",
]

#: Number of trapezoidal sections used for every coefficient.
INTEGRATION_STEPS = 200

#: Rows (and columns) of the square matrices solved by the LU benchmark.
LU_ARRAY_SIZE = 101

_INITIAL_COEFFS = 100
_COEFFS_STEP = 50
_TINY = 1.0e-20

Matrix = List[List[float]]


# --------------------------------------------------------------------------
# Fourier coefficients
# --------------------------------------------------------------------------

def the_function(x: float, omegan: float, select: int) -> float:
    """Evaluate the integrand: ``(x+1)**x``, times cos or sin of ``omegan * x``.

    ``select`` is 0 for the plain term, 1 for the cosine term and 2 for the
    sine term.
    """
    base = math.pow(x + 1.0, x)
    if select == 0:
        return base
    if select == 1:
        return base * math.cos(omegan * x)
    if select == 2:
        return base * math.sin(omegan * x)
    raise ValueError(f"select must be 0, 1 or 2, not {select!r}")


def trapezoid_integrate(x0: float, x1: float, nsteps: int, omegan: float, select: int) -> float:
    """Integrate :func:`the_function` from ``x0`` to ``x1`` by the trapezoid rule.

    The step is ``(x1 - x0) / nsteps``; the end points count half and the
    interior points at ``x0 + dx`` up to ``x0 + (nsteps - 2) * dx`` count whole.
    """
    if nsteps < 1:
        raise ValueError("nsteps must be at least 1")
    dx = (x1 - x0) / nsteps
    total = the_function(x0, omegan, select) / 2.0
    x = x0
    for _ in range(max(nsteps - 2, 0)):
        x += dx
        total += the_function(x, omegan, select)
    return (total + the_function(x1, omegan, select) / 2.0) * dx


def fourier_coefficients(arraysize: int) -> Tuple[List[float], List[float]]:
    """Return the first ``arraysize`` coefficients ``(A, B)`` of ``(x+1)**x`` on [0, 2].

    ``B[0]`` has no meaning and is 0.0.
    """
    if arraysize < 1:
        raise ValueError("arraysize must be at least 1")
    omega = math.pi
    a = [trapezoid_integrate(0.0, 2.0, INTEGRATION_STEPS, 0.0, 0) / 2.0]
    b = [0.0]
    for i in range(1, arraysize):
        a.append(trapezoid_integrate(0.0, 2.0, INTEGRATION_STEPS, omega * i, 1))
        b.append(trapezoid_integrate(0.0, 2.0, INTEGRATION_STEPS, omega * i, 2))
    return a, b


@dataclass
class FourierBenchmark:
    """Fourier series of ``(x+1)**x``; rate is coefficients computed per second."""

    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    arraysize: Optional[int] = None

    @staticmethod
    def _iteration(arraysize: int) -> float:
        watch = Stopwatch()
        watch.start()
        fourier_coefficients(arraysize)
        return watch.stop()

    def run(self) -> BenchmarkResult:
        """Calibrate if needed, then compute coefficients for ``request_secs``."""
        if self.arraysize is None:
            self.arraysize = calibrate(
                self._iteration,
                itertools.count(_INITIAL_COEFFS, _COEFFS_STEP),
                self.min_secs,
            )
        size = self.arraysize
        return measure(
            lambda: (self._iteration(size), float(size * 2 - 1)),
            self.request_secs,
        )


# --------------------------------------------------------------------------
# LU decomposition
# --------------------------------------------------------------------------

class SingularMatrixError(ValueError):
    """Raised when a matrix has a row of zeros and cannot be decomposed."""


def build_problem(rng: random.Random, n: int) -> Tuple[Matrix, List[float]]:
    """Build a solvable ``n`` by ``n`` system ``(a, b)``.

    It starts from a random diagonal matrix and right-hand side, then adds
    (or subtracts) randomly chosen rows to others ``8 * n`` times.
    """
    if n < 1:
        raise ValueError("n must be at least 1")
    a: Matrix = []
    b: List[float] = []
    for i in range(n):
        b.append(float(rng.randrange(100) + 1))
        row = [0.0] * n
        row[i] = float(rng.randrange(1000) + 1)
        a.append(row)

    for _ in range(8 * n):
        k = rng.randrange(n)
        k1 = rng.randrange(n)
        if k == k1:
            continue
        rcon = 1.0 if k < k1 else -1.0
        a[k] = [x + y * rcon for x, y in zip(a[k], a[k1])]
        b[k] += b[k1] * rcon
    return a, b


def ludcmp(a: Matrix) -> Tuple[List[int], int]:
    """Replace square matrix ``a`` in place by the LU decomposition of a row permutation.

    Returns the permutation vector and +1 or -1 for an even or odd number of
    row interchanges.  Raises :class:`SingularMatrixError` on a zero row.
    """
    n = len(a)
    scale: List[float] = []
    for row in a:
        big = max((abs(x) for x in row), default=0.0)
        if big == 0.0:
            raise SingularMatrixError("matrix has a row of zeros")
        scale.append(1.0 / big)

    indx = [0] * n
    d = 1
    imax = 0
    for j in range(n):
        for i in range(j):
            row = a[i]
            s = row[j]
            for k in range(i):
                s -= row[k] * a[k][j]
            row[j] = s

        big = 0.0
        for i in range(j, n):
            row = a[i]
            s = row[j]
            for k in range(j):
                s -= row[k] * a[k][j]
            row[j] = s
            dum = scale[i] * abs(s)
            if dum >= big:
                big = dum
                imax = i

        if j != imax:
            a[imax], a[j] = a[j], a[imax]
            d = -d
            scale[imax], scale[j] = scale[j], scale[imax]
        indx[j] = imax

        if a[j][j] == 0.0:
            a[j][j] = _TINY
        if j != n - 1:
            dum = 1.0 / a[j][j]
            for row in a[j + 1:]:
                row[j] *= dum
    return indx, d


def lubksb(a: Sequence[Sequence[float]], indx: Sequence[int], b: MutableSequence[float]) -> MutableSequence[float]:
    """Solve ``A x = b`` given ``a`` and ``indx`` from :func:`ludcmp`.

    ``b`` is overwritten with the solution, which is also returned.
    """
    n = len(a)
    first = -1
    for i in range(n):
        ip = indx[i]
        s = b[ip]
        b[ip] = b[i]
        if first != -1:
            row = a[i]
            for j in range(first, i):
                s -= row[j] * b[j]
        elif s != 0.0:
            first = i
        b[i] = s

    for i in reversed(range(n)):
        row = a[i]
        s = b[i]
        for j in range(i + 1, n):
            s -= row[j] * b[j]
        b[i] = s / row[i]
    return b


def lusolve(a: Matrix, b: MutableSequence[float]) -> MutableSequence[float]:
    """Solve ``A x = b``; ``a`` is destroyed and ``b`` becomes the solution, returned."""
    indx, _ = ludcmp(a)
    return lubksb(a, indx, b)


@dataclass
class LUBenchmark:
    """Repeated solution of a linear system; rate is systems solved per second."""

    n: int = LU_ARRAY_SIZE
    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    max_arrays: int = 1000
    numarrays: Optional[int] = None
    seed: int = 13

    def _iteration(self, problem: Tuple[Matrix, List[float]], numarrays: int) -> float:
        a, b = problem
        systems = [([row[:] for row in a], list(b)) for _ in range(numarrays)]
        watch = Stopwatch()
        watch.start()
        for matrix, rhs in systems:
            lusolve(matrix, rhs)
        return watch.stop()

    def run(self) -> BenchmarkResult:
        """Calibrate if needed, then solve systems for ``request_secs``."""
        problem = build_problem(random.Random(self.seed), self.n)
        if self.numarrays is None:
            self.numarrays = calibrate(
                lambda count: self._iteration(problem, count),
                range(1, self.max_arrays + 1),
                self.min_secs,
            )
        numarrays = self.numarrays
        return measure(
            lambda: (self._iteration(problem, numarrays), float(numarrays)),
            self.request_secs,
        )