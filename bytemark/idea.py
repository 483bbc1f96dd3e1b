"""IDEA encryption benchmark: the cipher, its key schedule and the timed loop.

Random sources are ``random.Random``-like objects; only ``randrange`` is used.
"""

from __future__ import annotations

import random
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

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
    "ROUNDS",
    "KEYLEN",
    "IDEA_KEY_WORDS",
    "IDEA_BLOCK_SIZE",
    "mul",
    "inv",
    "encryption_key",
    "decryption_key",
    "cipher_block",
    "cipher",
    "IdeaBenchmark",
]

ROUNDS = 8
#: Number of 16-bit subkeys in an expanded key.
KEYLEN = 6 * ROUNDS + 4
#: Number of 16-bit words in a user key (128 bits).
IDEA_KEY_WORDS = 8
#: Bytes in one cipher block (four 16-bit words).
IDEA_BLOCK_SIZE = 8

_MASK = 0xFFFF
_MODULUS = 0x10001
_BLOCK = struct.Struct("<4H")


def _neg(x: int) -> int:
    return -x & _MASK


def mul(a: int, b: int) -> int:
    """Multiply modulo 2**16 + 1, where 0 stands for 2**16."""
    a &= _MASK
    b &= _MASK
    if a == 0:
        return (1 - b) & _MASK
    if b == 0:
        return (1 - a) & _MASK
    p = a * b
    lo = p & _MASK
    hi = (p >> 16) & _MASK
    return (lo - hi + (1 if lo < hi else 0)) & _MASK


def inv(x: int) -> int:
    """Return the multiplicative inverse of ``x`` modulo 2**16 + 1.

    0 and 1 are their own inverses.
    """
    x &= _MASK
    if x <= 1:
        return x
    t1 = _MODULUS // x
    y = _MODULUS % x
    if y == 1:
        return (1 - t1) & _MASK
    t0 = 1
    while True:
        q = x // y
        x = x % y
        t0 = (t0 + q * t1) & _MASK
        if x == 1:
            return t0
        q = y // x
        y = y % x
        t1 = (t1 + q * t0) & _MASK
        if y == 1:
            return (1 - t1) & _MASK


def encryption_key(userkey: Sequence[int]) -> List[int]:
    """Expand an eight-word user key into the 52 encryption subkeys."""
    if len(userkey) != IDEA_KEY_WORDS:
        raise ValueError(f"user key must hold {IDEA_KEY_WORDS} words, not {len(userkey)}")
    z = [w & _MASK for w in userkey] + [0] * (KEYLEN - IDEA_KEY_WORDS)
    base = 0
    i = 0
    for _ in range(IDEA_KEY_WORDS, KEYLEN):
        i += 1
        z[base + i + 7] = ((z[base + (i & 7)] << 9) | (z[base + ((i + 1) & 7)] >> 7)) & _MASK
        base += i & 8
        i &= 7
    return z


def decryption_key(z: Sequence[int]) -> List[int]:
    """Derive the 52 decryption subkeys from the encryption subkeys ``z``."""
    if len(z) != KEYLEN:
        raise ValueError(f"key must hold {KEYLEN} subkeys, not {len(z)}")
    words = iter(z)
    pushed: List[int] = []

    def take() -> int:
        return next(words)

    t1 = inv(take())
    t2 = _neg(take())
    t3 = _neg(take())
    pushed += [inv(take()), t3, t2, t1]

    for _ in range(1, ROUNDS):
        t1 = take()
        pushed += [take(), t1]
        t1 = inv(take())
        t2 = _neg(take())
        t3 = _neg(take())
        pushed += [inv(take()), t2, t3, t1]

    t1 = take()
    pushed += [take(), t1]
    t1 = inv(take())
    t2 = _neg(take())
    t3 = _neg(take())
    pushed += [inv(take()), t3, t2, t1]

    return pushed[::-1]


def cipher_block(block: Sequence[int], key: Sequence[int]) -> Tuple[int, int, int, int]:
    """Encrypt or decrypt one block of four 16-bit words with subkeys ``key``."""
    if len(block) != 4:
        raise ValueError("a block holds exactly four words")
    if len(key) != KEYLEN:
        raise ValueError(f"key must hold {KEYLEN} subkeys, not {len(key)}")
    x1, x2, x3, x4 = (w & _MASK for w in block)
    subkeys = iter(key)
    for _ in range(ROUNDS):
        x1 = mul(x1, next(subkeys))
        x2 = (x2 + next(subkeys)) & _MASK
        x3 = (x3 + next(subkeys)) & _MASK
        x4 = mul(x4, next(subkeys))

        t2 = mul(x1 ^ x3, next(subkeys))
        t1 = mul((t2 + (x2 ^ x4)) & _MASK, next(subkeys))
        t2 = (t1 + t2) & _MASK

        x1 ^= t1
        x4 ^= t2
        t2 ^= x2
        x2 = x3 ^ t1
        x3 = t2

    return (
        mul(x1, next(subkeys)),
        (x3 + next(subkeys)) & _MASK,
        (x2 + next(subkeys)) & _MASK,
        mul(x4, next(subkeys)),
    )


def cipher(data: bytes, key: Sequence[int]) -> bytes:
    """Run every 8-byte block of ``data`` through :func:`cipher_block`.

    Each block is read and written as four little-endian 16-bit words.
    """
    if len(data) % IDEA_BLOCK_SIZE:
        raise ValueError(f"data length must be a multiple of {IDEA_BLOCK_SIZE}")
    return b"".join(
        _BLOCK.pack(*cipher_block(words, key)) for words in _BLOCK.iter_unpack(data)
    )


@dataclass
class IdeaBenchmark:
    """Encrypt and decrypt a buffer; rate is encrypt/decrypt loops per second."""

    arraysize: int = 4000
    request_secs: float = DEFAULT_REQUEST_SECS
    min_secs: float = DEFAULT_MIN_SECS
    loops: Optional[int] = None
    max_loops: int = 500000
    seed: int = 3

    def _setup(self) -> Tuple[List[int], List[int], bytes]:
        if self.arraysize < IDEA_BLOCK_SIZE or self.arraysize % IDEA_BLOCK_SIZE:
            raise ValueError(
                f"arraysize must be a positive multiple of {IDEA_BLOCK_SIZE}"
            )
        rng = random.Random(self.seed)
        userkey = [rng.randrange(60000) & _MASK for _ in range(IDEA_KEY_WORDS)]
        z = encryption_key(userkey)
        dk = decryption_key(z)
        plain = bytes(rng.randrange(255) & 0xFF for _ in range(self.arraysize))
        return z, dk, plain

    @staticmethod
    def _iteration(plain: bytes, z: Sequence[int], dk: Sequence[int], loops: int) -> float:
        watch = Stopwatch()
        watch.start()
        restored = plain
        for _ in range(loops):
            encrypted = cipher(plain, z)
            restored = cipher(encrypted, dk)
        elapsed = watch.stop()
        if restored != plain:
            raise BenchmarkError("IDEA decryption did not restore the plaintext")
        return elapsed

    def run(self) -> BenchmarkResult:
        """Calibrate if needed, then repeat the loops for ``request_secs``."""
        z, dk, plain = self._setup()
        if self.loops is None:
            self.loops = calibrate(
                lambda loops: self._iteration(plain, z, dk, loops),
                range(100, self.max_loops, 10),
                self.min_secs,
            )
        loops = self.loops
        return measure(
            lambda: (self._iteration(plain, z, dk, loops), float(loops)),
            self.request_secs,
        )