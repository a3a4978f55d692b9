import pytest

from sidepool.handshake import (
    CHALLENGE_DIFFICULTY,
    challenge_bytes,
    check_handshake_solution,
    handshake_hash,
    has_enough_pow,
    keccak256,
    solve_handshake,
)

CONSENSUS_ID = b"example consensus id"


def test_keccak256_of_empty_input():
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_challenge_bytes_little_endian():
    assert challenge_bytes(0x0102030405060708) == bytes([8, 7, 6, 5, 4, 3, 2, 1])


@pytest.mark.parametrize("value", [-1, 2**64])
def test_challenge_bytes_out_of_range(value):
    with pytest.raises(ValueError):
        challenge_bytes(value)


def test_handshake_hash_accepts_int_or_bytes():
    assert handshake_hash(42, CONSENSUS_ID, 7) == handshake_hash(
        challenge_bytes(42), CONSENSUS_ID, challenge_bytes(7)
    )


def test_handshake_hash_depends_on_every_part():
    base = handshake_hash(1, CONSENSUS_ID, 2)
    assert len(base) == 32
    assert handshake_hash(3, CONSENSUS_ID, 2) != base
    assert handshake_hash(1, CONSENSUS_ID + b"x", 2) != base
    assert handshake_hash(1, CONSENSUS_ID, 4) != base


def test_handshake_hash_rejects_short_challenge():
    with pytest.raises(ValueError):
        handshake_hash(b"\x00" * 7, CONSENSUS_ID, 0)


def test_pow_boundary():
    limit = (2**64 - 1) // CHALLENGE_DIFFICULTY
    assert has_enough_pow(bytes(24) + limit.to_bytes(8, "little")) is True
    assert has_enough_pow(bytes(24) + (limit + 1).to_bytes(8, "little")) is False


def test_pow_only_uses_last_word():
    assert has_enough_pow(b"\xff" * 24 + bytes(8)) is True
    assert has_enough_pow(bytes(24) + b"\xff" * 8) is False


def test_pow_rejects_wrong_length():
    with pytest.raises(ValueError):
        has_enough_pow(bytes(31))


def test_solve_and_check():
    solution, salt = solve_handshake(0x1122334455667788, CONSENSUS_ID, 0)
    assert len(salt) == 8
    assert has_enough_pow(solution)
    assert check_handshake_solution(0x1122334455667788, CONSENSUS_ID, solution, salt)
    assert not check_handshake_solution(0x1122334455667788, b"other", solution, salt)
    assert not check_handshake_solution(0x1122334455667789, CONSENSUS_ID, solution, salt)


def test_solve_starts_from_given_salt():
    solution, salt = solve_handshake(5, CONSENSUS_ID, 1000)
    assert int.from_bytes(salt, "little") >= 1000
    assert solution == handshake_hash(5, CONSENSUS_ID, salt)


def test_check_rejects_wrong_solution_length():
    with pytest.raises(ValueError):
        check_handshake_solution(1, CONSENSUS_ID, bytes(16), 0)