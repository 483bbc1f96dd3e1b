"""Back-propagation neural-network benchmark.

The network takes 5x7 input patterns and produces 8-bit output patterns.
Random sources are ``random.Random``-like objects; only ``randrange`` is used.
"""

from __future__ import annotations

import itertools
import math
import random
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator, List, Optional, Union

from bytemark.timing import (
    DEFAULT_MIN_SECS,
    DEFAULT_REQUEST_SECS,
    BenchmarkResult,
    Stopwatch,
    calibrate,
    measure,
)

__all__ = [
    "MAXPATS",
    "IN_X_SIZE",
    "IN_Y_SIZE",
    "IN_SIZE",
    "MID_SIZE",
    "OUT_SIZE",
    "BETA",
    "ALPHA",
    "STOP",
    "ERROR_LIMIT",
    "DEFAULT_DATA_FILE",
    "TrainingState",
    "Patterns",
    "parse_patterns",
    "read_data_file",
    "NeuralNet",
    "NeuralNetBenchmark",
]

#: Most patterns read from a data file; further patterns are ignored.
MAXPATS = 10
IN_X_SIZE = 5
IN_Y_SIZE = 7
IN_SIZE = IN_X_SIZE * IN_Y_SIZE
MID_SIZE = 8
OUT_SIZE = 8
#: Learning constant.
BETA = 0.09
#: Momentum constant.
ALPHA = 0.09
#: Training is done once the worst error of a pass is below this.
STOP = 0.1
#: A pattern error at or above this means training has failed.
ERROR_LIMIT = 16.0
#: File the benchmark reads its patterns from.
DEFAULT_DATA_FILE = "NNET.DAT"

_ROW_VALUES = 5
_INPUT_HIGH = 0.9
_INPUT_LOW = 0.1


class TrainingState(IntEnum):
    """Outcome of checking the output error after a training pass."""

    FAILED = -1
    LEARNING = 0
    LEARNED = 1


@dataclass
class Patterns:
    """Input patterns and the outputs the network should learn for them."""

    x_size: int
    y_size: int
    out_size: int
    inputs: List[List[float]] = field(default_factory=list)
    outputs: List[List[float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.inputs)


def _take(values: Iterator[int], count: int, what: str) -> List[int]:
    taken = list(itertools.islice(values, count))
    if len(taken) != count:
        raise ValueError(f"should read {count} items {what}; did read {len(taken)}")
    return taken


def _tokens(text: str) -> Iterator[int]:
    for token in re.split(r"[\s,]+", text.strip()):
        if not token:
            continue
        try:
            yield int(token)
        except ValueError:
            raise ValueError(f"expected an integer, found {token!r}") from None


def parse_patterns(text: str) -> Patterns:
    """Parse pattern data: sizes, pattern count, then each pattern's rows and outputs.

    Values are separated by blanks or commas.  Each input row holds five
    values; inputs are clamped to the range 0.1 to 0.9.  At most
    :data:`MAXPATS` patterns are read.
    """
    values = _tokens(text)
    x_size, y_size, out_size = _take(values, 3, "in line one")
    (count,) = _take(values, 1, "in line two")
    count = min(count, MAXPATS)

    patterns = Patterns(x_size=x_size, y_size=y_size, out_size=out_size)
    for patt in range(count):
        pattern = [0.0] * IN_SIZE
        for row in range(y_size):
            row_values = _take(values, _ROW_VALUES, f"in row {row} of pattern {patt}")
            element = row * x_size
            if element < 0 or element + _ROW_VALUES > IN_SIZE:
                raise ValueError(f"row {row} of pattern {patt} lies outside the input layer")
            pattern[element:element + _ROW_VALUES] = [float(v) for v in row_values]
        pattern = [min(max(v, _INPUT_LOW), _INPUT_HIGH) for v in pattern]
        outputs = _take(values, OUT_SIZE, f"of output for pattern {patt}")
        patterns.inputs.append(pattern)
        patterns.outputs.append([float(v) for v in outputs])
    return patterns


def read_data_file(path: Union[str, Path]) -> Patterns:
    """Read and parse the pattern file at ``path``."""
    return parse_patterns(Path(path).read_text())


def _sigmoid(x: float) -> float:
    try:
        return 1.0 / (1.0 + math.exp(-x))
    except OverflowError:
        return 0.0


def _zeros(rows: int, cols: int) -> List[List[float]]:
    return [[0.0] * cols for _ in range(rows)]


class NeuralNet:
    """A three-layer network trained by back-propagation with momentum."""

    def __init__(self, patterns: Patterns, max_passes: Optional[int] = None) -> None:
        if len(patterns) == 0:
            raise ValueError("at least one pattern is needed")
        self.patterns = patterns
        self.max_passes = max_passes
        self.mid_wts = _zeros(MID_SIZE, IN_SIZE)
        self.out_wts = _zeros(OUT_SIZE, MID_SIZE)
        self.mid_out = [0.0] * MID_SIZE
        self.out_out = [0.0] * OUT_SIZE
        self.mid_error = [0.0] * MID_SIZE
        self.out_error = [0.0] * OUT_SIZE
        self.mid_wt_change = _zeros(MID_SIZE, IN_SIZE)
        self.out_wt_change = _zeros(OUT_SIZE, MID_SIZE)
        self.mid_wt_cum_change = _zeros(MID_SIZE, IN_SIZE)
        self.out_wt_cum_change = _zeros(OUT_SIZE, MID_SIZE)
        self.tot_out_error = [0.0] * len(patterns)
        self.avg_out_error = [0.0] * len(patterns)
        self.worst_error = 0.0
        self.average_error = 0.0
        self.iteration_count = 0
        self.numpasses = 0

    def randomize_weights(self, rng: random.Random) -> None:
        """Give the weights random starting values.

        Middle-layer weights lie in [-0.25, 0.25); output-layer weights are
        scaled ten times wider before the offset, lying in [-0.25, 4.75).
        """
        for row in self.mid_wts:
            row[:] = [(rng.randrange(100000) / 100000.0 - 0.5) / 2 for _ in row]
        for row in self.out_wts:
            row[:] = [(rng.randrange(100000) / 10000.0 - 0.5) / 2 for _ in row]

    def zero_changes(self) -> None:
        """Clear every weight-change and accumulated-change entry."""
        for table in (
            self.mid_wt_change,
            self.mid_wt_cum_change,
            self.out_wt_change,
            self.out_wt_cum_change,
        ):
            for row in table:
                row[:] = [0.0] * len(row)

    def forward_pass(self, patt: int) -> List[float]:
        """Propagate pattern ``patt`` through the network; return the outputs."""
        inputs = self.patterns.inputs[patt]
        self.mid_out = [
            _sigmoid(sum(w * x for w, x in zip(weights, inputs)))
            for weights in self.mid_wts
        ]
        self.out_out = [
            _sigmoid(sum(w * x for w, x in zip(weights, self.mid_out)))
            for weights in self.out_wts
        ]
        return list(self.out_out)

    def _out_error(self, patt: int) -> None:
        desired = self.patterns.outputs[patt]
        self.out_error = [d - a for d, a in zip(desired, self.out_out)]
        magnitudes = [abs(e) for e in self.out_error]
        self.avg_out_error[patt] = sum(magnitudes) / OUT_SIZE
        self.tot_out_error[patt] = max(magnitudes + [0.0])

    def _mid_error(self) -> None:
        self.mid_error = [
            out * (1 - out) * sum(self.out_wts[i][neurode] * self.out_error[i] for i in range(OUT_SIZE))
            for neurode, out in enumerate(self.mid_out)
        ]

    def _adjust_out_wts(self) -> None:
        for weights, change, cum, error in zip(
            self.out_wts, self.out_wt_change, self.out_wt_cum_change, self.out_error
        ):
            for w, mid in enumerate(self.mid_out):
                delta = BETA * error * mid + ALPHA * change[w]
                weights[w] += delta
                cum[w] += delta

    def _adjust_mid_wts(self, patt: int) -> None:
        inputs = self.patterns.inputs[patt]
        for weights, change, cum, error in zip(
            self.mid_wts, self.mid_wt_change, self.mid_wt_cum_change, self.mid_error
        ):
            for w, x in enumerate(inputs):
                delta = BETA * error * x + ALPHA * change[w]
                weights[w] += delta
                cum[w] += delta

    def back_pass(self, patt: int) -> None:
        """Propagate the error for pattern ``patt`` back and adjust the weights."""
        self._out_error(patt)
        self._mid_error()
        self._adjust_out_wts()
        self._adjust_mid_wts(patt)

    def move_weight_changes(self) -> None:
        """Move accumulated changes into the momentum tables and clear the accumulators."""
        for change, cum in (
            (self.mid_wt_change, self.mid_wt_cum_change),
            (self.out_wt_change, self.out_wt_cum_change),
        ):
            for change_row, cum_row in zip(change, cum):
                change_row[:] = cum_row
                cum_row[:] = [0.0] * len(cum_row)

    def _worst_pass_error(self) -> None:
        self.worst_error = max([0.0] + self.tot_out_error)
        self.average_error = sum(self.avg_out_error) / len(self.avg_out_error)

    def check_out_error(self) -> TrainingState:
        """Judge the last pass: learned, still learning, or failed."""
        self._worst_pass_error()
        if any(e >= ERROR_LIMIT for e in self.tot_out_error):
            return TrainingState.FAILED
        if self.worst_error >= STOP:
            return TrainingState.LEARNING
        return TrainingState.LEARNED

    def train(self) -> TrainingState:
        """Train from the current weights until the patterns are learned or training fails.

        Stops early, still learning, after ``max_passes`` passes if that is set.
        """
        self.zero_changes()
        self.iteration_count = 1
        self.numpasses = 0
        state = TrainingState.LEARNING
        while state == TrainingState.LEARNING:
            if self.max_passes is not None and self.numpasses >= self.max_passes:
                break
            for patt in range(len(self.patterns)):
                self.worst_error = 0.0
                self.move_weight_changes()
                self.forward_pass(patt)
                self.back_pass(patt)
                self.iteration_count += 1
            self.numpasses += 1
            state = self.check_out_error()
        return state


@dataclass
class NeuralNetBenchmark:
    """Repeated training of a network; rate is training runs per second."""

    path: Union[str, Path] = DEFAULT_DATA_FILE
    patterns: Optional[Patterns] = None
    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    loops: Optional[int] = None
    max_loops: int = 50000
    seed: int = 3

    def _iteration(self, patterns: Patterns, loops: int) -> float:
        rng = random.Random(self.seed)
        net = NeuralNet(patterns)
        watch = Stopwatch()
        watch.start()
        for _ in range(loops):
            net.randomize_weights(rng)
            net.train()
        return watch.stop()

    def run(self) -> BenchmarkResult:
        """Load the patterns if needed, calibrate, then train for ``request_secs``."""
        if self.patterns is None:
            self.patterns = read_data_file(self.path)
        patterns = self.patterns
        if self.loops is None:
            self.loops = calibrate(
                lambda loops: self._iteration(patterns, loops),
                range(1, self.max_loops),
                self.min_secs,
            )
        loops = self.loops
        return measure(
            lambda: (self._iteration(patterns, loops), float(loops)),
            self.request_secs,
        )