import random

import pytest

from bytemark.idea import (
    KEYLEN,
    IdeaBenchmark,
    cipher,
    cipher_block,
    decryption_key,
    encryption_key,
    inv,
    mul,
)

SAMPLE = list(range(0, 65536, 97)) + [0, 1, 2, 65535, 65534, 32768]


def test_inverse_of_zero_and_one_is_itself():
    assert inv(0) == 0
    assert inv(1) == 1


@pytest.mark.parametrize("x", SAMPLE)
def test_mul_by_inverse_gives_one(x):
    assert mul(x, inv(x)) == 1


@pytest.mark.parametrize("x", SAMPLE)
def test_mul_by_one_is_identity(x):
    assert mul(x, 1) == x
    assert mul(1, x) == x


def test_mul_is_commutative():
    rng = random.Random(7)
    for _ in range(200):
        a, b = rng.randrange(65536), rng.randrange(65536)
        assert mul(a, b) == mul(b, a)


def test_mul_stays_in_16_bits():
    rng = random.Random(11)
    for _ in range(200):
        assert 0 <= mul(rng.randrange(65536), rng.randrange(65536)) <= 0xFFFF


def test_encryption_key_keeps_user_key_first():
    userkey = [1, 2, 3, 4, 5, 6, 7, 8]
    z = encryption_key(userkey)
    assert len(z) == KEYLEN
    assert z[:8] == userkey


def test_known_vector():
    z = encryption_key([1, 2, 3, 4, 5, 6, 7, 8])
    assert cipher_block([0, 1, 2, 3], z) == (0x11FB, 0xED2B, 0x0198, 0x6DE5)


def test_block_round_trip():
    rng = random.Random(3)
    z = encryption_key([rng.randrange(60000) for _ in range(8)])
    dk = decryption_key(z)
    for _ in range(50):
        block = tuple(rng.randrange(65536) for _ in range(4))
        assert cipher_block(cipher_block(block, z), dk) == block


def test_buffer_round_trip_changes_data():
    rng = random.Random(5)
    z = encryption_key([rng.randrange(65536) for _ in range(8)])
    dk = decryption_key(z)
    data = bytes(rng.randrange(256) for _ in range(64))
    encrypted = cipher(data, z)
    assert len(encrypted) == len(data)
    assert encrypted != data
    assert cipher(encrypted, dk) == data


def test_cipher_rejects_partial_block():
    z = encryption_key([1] * 8)
    with pytest.raises(ValueError):
        cipher(b"\0" * 7, z)


def test_encryption_key_rejects_wrong_length():
    with pytest.raises(ValueError):
        encryption_key([1, 2, 3])


def test_decryption_key_rejects_wrong_length():
    with pytest.raises(ValueError):
        decryption_key([0] * 10)


def test_cipher_block_rejects_wrong_block():
    z = encryption_key([1] * 8)
    with pytest.raises(ValueError):
        cipher_block([1, 2, 3], z)


def test_benchmark_with_fixed_loops():
    bench = IdeaBenchmark(arraysize=64, request_secs=0.0, min_secs=0.0, loops=3)
    result = bench.run()
    assert result.work == 3.0
    assert result.elapsed >= 0.0


def test_benchmark_calibrates_from_first_candidate():
    bench = IdeaBenchmark(arraysize=16, request_secs=0.0, min_secs=0.0)
    result = bench.run()
    assert bench.loops == 100
    assert result.work == 100.0


def test_benchmark_rejects_bad_arraysize():
    with pytest.raises(ValueError):
        IdeaBenchmark(arraysize=13, request_secs=0.0, loops=1).run()