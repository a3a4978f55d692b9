"""Handshake challenge hashing and proof of work between peers."""

from __future__ import annotations

from Crypto.Hash import keccak

HASH_SIZE = 32
CHALLENGE_SIZE = 8
CHALLENGE_DIFFICULTY = 10000

_U64 = 2**64


def keccak256(data: bytes) -> bytes:
    """Original Keccak-256 digest (not SHA3-256) of the data."""
    h = keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def challenge_bytes(value: int) -> bytes:
    """Encode a 64-bit challenge or salt as 8 little-endian bytes."""
    if not 0 <= value < _U64:
        raise ValueError("challenge must fit in 64 unsigned bits")
    return value.to_bytes(CHALLENGE_SIZE, "little")


def _as_challenge(value: int | bytes, what: str) -> bytes:
    if isinstance(value, int):
        return challenge_bytes(value)
    value = bytes(value)
    if len(value) != CHALLENGE_SIZE:
        raise ValueError(f"{what} must be {CHALLENGE_SIZE} bytes, got {len(value)}")
    return value


def handshake_hash(challenge: int | bytes, consensus_id: bytes, salt: int | bytes) -> bytes:
    """Hash CHALLENGE | CONSENSUS_ID | SALT with Keccak-256."""
    return keccak256(
        _as_challenge(challenge, "challenge")
        + bytes(consensus_id)
        + _as_challenge(salt, "salt")
    )


def has_enough_pow(solution: bytes) -> bool:
    """True when the last 64-bit word of the hash times the difficulty fits in 64 bits."""
    solution = bytes(solution)
    if len(solution) != HASH_SIZE:
        raise ValueError(f"solution must be {HASH_SIZE} bytes, got {len(solution)}")
    value = int.from_bytes(solution[-8:], "little")
    return (value * CHALLENGE_DIFFICULTY) >> 64 == 0


def solve_handshake(
    challenge: int | bytes, consensus_id: bytes, salt: int
) -> tuple[bytes, bytes]:
    """Search salts from the given one until the hash has enough PoW.

    Returns the solution hash and the salt bytes that produced it.
    """
    challenge = _as_challenge(challenge, "challenge")
    consensus_id = bytes(consensus_id)
    salt %= _U64
    while True:
        salt_bytes = challenge_bytes(salt)
        solution = handshake_hash(challenge, consensus_id, salt_bytes)
        if has_enough_pow(solution):
            return solution, salt_bytes
        salt = (salt + 1) % _U64


def check_handshake_solution(
    challenge: int | bytes, consensus_id: bytes, solution: bytes, salt: int | bytes
) -> bool:
    """True when the solution is the hash of our challenge, consensus id and salt."""
    solution = bytes(solution)
    if len(solution) != HASH_SIZE:
        raise ValueError(f"solution must be {HASH_SIZE} bytes, got {len(solution)}")
    return handshake_hash(challenge, consensus_id, salt) == solution