"""Bitfield-operation and Huffman-compression benchmarks.

Random sources are ``random.Random``-like objects; only ``randrange`` is used.
"""

from __future__ import annotations

import itertools
import random
from collections import Counter
from dataclasses import dataclass
from typing import Iterator, List, MutableSequence, Optional, Sequence, Tuple

from bytemark.timing import (
    DEFAULT_MIN_SECS,
    DEFAULT_REQUEST_SECS,
    BenchmarkError,
    BenchmarkResult,
    Stopwatch,
    calibrate,
    measure,
)

__all__ = [
    "WORD_BITS",
    "BITFIELD_ARRAY_SIZE",
    "BITMAP_BITS",
    "BIT_PATTERN",
    "EXCLUDED",
    "ROOT",
    "UNUSED",
    "toggle_bit_run",
    "flip_bit_run",
    "make_bitops",
    "bitfield_iteration",
    "BitfieldBenchmark",
    "set_comp_bit",
    "get_comp_bit",
    "create_text_line",
    "create_text_block",
    "HuffNode",
    "build_tree",
    "compress",
    "decompress",
    "HuffmanBenchmark",
]

WORD_BITS = 32
_WORD_MASK = (1 << WORD_BITS) - 1

#: Number of 32-bit words in the bitmap (8192 * 32 = 262,144 bits).
BITFIELD_ARRAY_SIZE = 8192
BITMAP_BITS = 262140
#: Every word of the bitmap is reset to this pattern before an iteration.
BIT_PATTERN = 0x55555555

_INITIAL_BITOPS = 30
_BITOPS_STEP = 100

#: Parent marker of a node that takes no part in the tree.
EXCLUDED = 32000
#: Parent marker of the tree's root.
ROOT = -2
#: Parent (or child) marker of a node not yet linked.
UNUSED = -1

_TREE_NODES = 512
_LEAVES = 256


# --------------------------------------------------------------------------
# Bitfield operations
# --------------------------------------------------------------------------

def _word_runs(bit_addr: int, nbits: int) -> Iterator[Tuple[int, int]]:
    """Yield ``(word index, mask)`` pairs covering ``nbits`` bits from ``bit_addr``."""
    if bit_addr < 0 or nbits < 0:
        raise ValueError("bit address and run length must not be negative")
    end = bit_addr + nbits
    while bit_addr < end:
        index, bit = divmod(bit_addr, WORD_BITS)
        span = min(WORD_BITS - bit, end - bit_addr)
        yield index, ((1 << span) - 1) << bit
        bit_addr += span


def toggle_bit_run(bitmap: MutableSequence[int], bit_addr: int, nbits: int, val: bool) -> None:
    """Set (``val`` true) or clear ``nbits`` bits of ``bitmap`` starting at ``bit_addr``."""
    for index, mask in _word_runs(bit_addr, nbits):
        if val:
            bitmap[index] |= mask
        else:
            bitmap[index] &= ~mask & _WORD_MASK


def flip_bit_run(bitmap: MutableSequence[int], bit_addr: int, nbits: int) -> None:
    """Complement ``nbits`` bits of ``bitmap`` starting at ``bit_addr``."""
    for index, mask in _word_runs(bit_addr, nbits):
        bitmap[index] ^= mask


def make_bitops(rng: random.Random, count: int) -> List[Tuple[int, int]]:
    """Return ``count`` random ``(offset, run length)`` pairs inside the bitmap."""
    ops = []
    for _ in range(count):
        offset = rng.randrange(BITMAP_BITS)
        ops.append((offset, rng.randrange(BITMAP_BITS - offset)))
    return ops


def bitfield_iteration(bitmap: MutableSequence[int], ops: Sequence[Tuple[int, int]]) -> int:
    """Apply set, clear and flip in turn, one per operation; return the bits touched."""
    total = 0
    for index, (offset, length) in enumerate(ops):
        step = index % 3
        if step == 0:
            toggle_bit_run(bitmap, offset, length, True)
        elif step == 1:
            toggle_bit_run(bitmap, offset, length, False)
        else:
            flip_bit_run(bitmap, offset, length)
        total += length
    return total


@dataclass
class BitfieldBenchmark:
    """Runs of bit set/clear/flip operations; rate is bits operated on per second."""

    bitfieldarraysize: int = BITFIELD_ARRAY_SIZE
    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    bitoparraysize: Optional[int] = None
    seed: int = 13

    def _iteration(self, bitoparraysize: int) -> Tuple[float, float]:
        bitmap = [BIT_PATTERN] * self.bitfieldarraysize
        ops = make_bitops(random.Random(self.seed), bitoparraysize)
        watch = Stopwatch()
        watch.start()
        nbitops = bitfield_iteration(bitmap, ops)
        return watch.stop(), float(nbitops)

    def run(self) -> BenchmarkResult:
        """Calibrate if needed, then repeat the operations for ``request_secs``."""
        if self.bitoparraysize is None:
            self.bitoparraysize = calibrate(
                lambda size: self._iteration(size)[0],
                itertools.count(_INITIAL_BITOPS, _BITOPS_STEP),
                self.min_secs,
            )
        size = self.bitoparraysize
        return measure(lambda: self._iteration(size), self.request_secs)


# --------------------------------------------------------------------------
# Huffman compression
# --------------------------------------------------------------------------

def set_comp_bit(comparray: bytearray, bitoffset: int, bit: bool) -> None:
    """Set or clear bit ``bitoffset`` of ``comparray``; bit 0 is a byte's lowest."""
    byteoffset, bitnumb = divmod(bitoffset, 8)
    if bit:
        comparray[byteoffset] |= 1 << bitnumb
    else:
        comparray[byteoffset] &= ~(1 << bitnumb) & 0xFF


def get_comp_bit(comparray: Sequence[int], bitoffset: int) -> int:
    """Return bit ``bitoffset`` of ``comparray`` as 0 or 1."""
    byteoffset, bitnumb = divmod(bitoffset, 8)
    return (comparray[byteoffset] >> bitnumb) & 1


def create_text_line(rng: random.Random, words: Sequence[str], nchars: int) -> str:
    """Return exactly ``nchars`` characters of random words, each followed by a blank."""
    if nchars < 1:
        raise ValueError("a line must hold at least one character")
    if not words:
        raise ValueError("no words to build text from")
    parts = []
    sofar = 0
    while sofar < nchars:
        word = words[rng.randrange(len(words))] + " "
        word = word[: nchars - sofar]
        parts.append(word)
        sofar += len(word)
    return "".join(parts)


def create_text_block(rng: random.Random, words: Sequence[str], tblen: int, maxlinlen: int) -> str:
    """Return ``tblen`` characters of random lines, each ending in a newline.

    Lines are between 6 and ``maxlinlen - 1`` characters long, newline
    included, except the last, which is cut to fit.
    """
    if maxlinlen <= 6:
        raise ValueError("maximum line length must be greater than 6")
    if tblen < 1:
        raise ValueError("text block must hold at least one character")
    lines = []
    sofar = 0
    while sofar < tblen:
        linelen = min(rng.randrange(maxlinlen - 6) + 6, tblen - sofar)
        body = create_text_line(rng, words, linelen)[:-1] if linelen > 1 else ""
        lines.append(body + "\n")
        sofar += linelen
    return "".join(lines)


@dataclass
class HuffNode:
    """One node of a Huffman tree held in a flat list."""

    c: int = 0
    freq: float = 0.0
    parent: int = UNUSED
    left: int = UNUSED
    right: int = UNUSED


def build_tree(text: bytes) -> Tuple[List[HuffNode], int]:
    """Build the Huffman tree for ``text``; return its nodes and the root's index.

    Nodes 0-255 are the leaves for each byte value; interior nodes follow.
    """
    if not text:
        raise ValueError("cannot build a tree for empty text")
    counts = Counter(text)
    size = len(text)
    tree = [HuffNode(c=i, freq=counts.get(i, 0) / size) for i in range(_LEAVES)]
    tree.extend(HuffNode() for _ in range(_TREE_NODES - _LEAVES))
    for node in tree:
        if node.freq == 0.0:
            node.parent = EXCLUDED

    root = _LEAVES - 1
    while True:
        candidates = [i for i in range(root + 1) if tree[i].parent < 0]
        if len(candidates) < 2:
            break
        low1 = min(candidates, key=lambda i: tree[i].freq)
        low2 = min((i for i in candidates if i != low1), key=lambda i: tree[i].freq)
        root += 1
        tree[low1].parent = root
        tree[low2].parent = root
        tree[root] = HuffNode(
            freq=tree[low1].freq + tree[low2].freq,
            parent=ROOT,
            left=low1,
            right=low2,
        )
    if root == _LEAVES - 1:
        raise ValueError("text must hold at least two distinct byte values")
    return tree, root


def _code(tree: Sequence[HuffNode], c: int) -> List[int]:
    if tree[c].parent == EXCLUDED:
        raise ValueError(f"byte {c} does not occur in the tree")
    bits = []
    while tree[c].parent != ROOT:
        parent = tree[c].parent
        bits.append(0 if tree[parent].left == c else 1)
        c = parent
    bits.reverse()
    return bits


def compress(text: bytes, tree: Sequence[HuffNode], root: int) -> Tuple[bytearray, int]:
    """Encode ``text`` with ``tree``; return the packed bits and how many there are."""
    if tree[root].parent != ROOT:
        raise ValueError(f"node {root} is not the root of the tree")
    codes = {c: _code(tree, c) for c in set(text)}
    nbits = sum(len(codes[c]) for c in text)
    data = bytearray((nbits + 7) // 8)
    offset = 0
    for c in text:
        for bit in codes[c]:
            set_comp_bit(data, offset, bit)
            offset += 1
    return data, nbits


def decompress(data: Sequence[int], nbits: int, tree: Sequence[HuffNode], root: int) -> bytes:
    """Decode ``nbits`` bits of ``data`` with ``tree``; at least one byte is decoded."""
    if tree[root].left == UNUSED:
        raise ValueError(f"node {root} is a leaf, not the root of a tree")
    out = bytearray()
    offset = 0
    while True:
        i = root
        while tree[i].left != UNUSED:
            i = tree[i].left if get_comp_bit(data, offset) == 0 else tree[i].right
            offset += 1
        out.append(tree[i].c)
        if offset >= nbits:
            return bytes(out)


_DEFAULT_WORDS: Tuple[str, ...] = (
    "the", "a", "of", "and", "to", "in", "is", "that", "it", "for",
    "on", "with", "as", "was", "by", "at", "from", "this", "be", "or",
    "program", "memory", "processor", "integer", "floating", "point",
    "benchmark", "compiler", "system", "result", "index", "array",
    "string", "number", "machine", "speed", "test", "value", "byte",
    "cache", "register", "instruction", "loop", "table", "file", "data",
)


@dataclass
class HuffmanBenchmark:
    """Build a Huffman tree, compress and decompress text; rate is loops per second."""

    arraysize: int = 5000
    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    loops: Optional[int] = None
    max_loops: int = 50000
    words: Tuple[str, ...] = _DEFAULT_WORDS
    maxlinlen: int = 500
    seed: int = 13

    def plaintext(self) -> bytes:
        """Return the text to compress: random lines closed by a zero byte."""
        if self.arraysize < 2:
            raise ValueError("arraysize must be at least 2")
        block = create_text_block(
            random.Random(self.seed), self.words, self.arraysize - 1, self.maxlinlen
        )
        return block.encode("ascii") + b"\0"

    def _iteration(self, text: bytes, loops: int) -> float:
        watch = Stopwatch()
        watch.start()
        out = b""
        for _ in range(loops):
            tree, root = build_tree(text)
            data, nbits = compress(text, tree, root)
            out = decompress(data, nbits, tree, root)
        elapsed = watch.stop()
        if out != text:
            raise BenchmarkError("Huffman decompression did not restore the text")
        return elapsed

    def run(self) -> BenchmarkResult:
        """Calibrate if needed, then repeat the loops for ``request_secs``."""
        text = self.plaintext()
        if self.loops is None:
            self.loops = calibrate(
                lambda loops: self._iteration(text, loops),
                range(100, self.max_loops, 10),
                self.min_secs,
            )
        loops = self.loops
        return measure(
            lambda: (self._iteration(text, loops), float(loops)),
            self.request_secs,
        )