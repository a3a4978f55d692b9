"""Records describing main chain blocks, miner data and found blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HASH_SIZE = 32
_DIFFICULTY_LIMIT = 2**128
_ZERO_HASH = bytes(HASH_SIZE)


def _check_hash(value: bytes, what: str) -> bytes:
    value = bytes(value)
    if len(value) != HASH_SIZE:
        raise ValueError(f"{what} must be {HASH_SIZE} bytes, got {len(value)}")
    return value


def _check_difficulty(value: int, what: str) -> int:
    if not 0 <= value < _DIFFICULTY_LIMIT:
        raise ValueError(f"{what} must fit in 128 unsigned bits")
    return value


@dataclass
class ChainMain:
    """A main chain block header as far as the pool needs it."""

    height: int = 0
    id: bytes = _ZERO_HASH
    timestamp: int = 0
    reward: int = 0
    difficulty: int = 0

    def __post_init__(self) -> None:
        self.id = _check_hash(self.id, "block id")
        self.difficulty = _check_difficulty(self.difficulty, "difficulty")


@dataclass
class MinerData:
    """Mining parameters for the next main chain block."""

    major_version: int = 0
    height: int = 0
    prev_id: bytes = _ZERO_HASH
    seed_hash: bytes = _ZERO_HASH
    difficulty: int = 0
    median_weight: int = 0
    already_generated_coins: int = 0
    median_timestamp: int = 0
    tx_backlog: list[Any] = field(default_factory=list)
    time_received: float = 0.0

    def __post_init__(self) -> None:
        self.prev_id = _check_hash(self.prev_id, "prev_id")
        self.seed_hash = _check_hash(self.seed_hash, "seed_hash")
        self.difficulty = _check_difficulty(self.difficulty, "difficulty")


@dataclass
class FoundBlock:
    """A main chain block mined by the pool."""

    timestamp: int
    height: int
    id: bytes
    block_diff: int
    total_hashes: int

    def __post_init__(self) -> None:
        self.id = _check_hash(self.id, "block id")
        self.block_diff = _check_difficulty(self.block_diff, "block difficulty")
        self.total_hashes = _check_difficulty(self.total_hashes, "total hashes")
        if self.height < 0:
            raise ValueError("height must be non-negative")

    def to_line(self) -> str:
        """Format the block as one line of the found blocks file, without newline."""
        return (
            f"{self.timestamp} {self.height} {self.id.hex()} "
            f"{self.block_diff} {self.total_hashes}"
        )


def _parse_int(token: str, what: str) -> int:
    try:
        return int(token, 10)
    except ValueError as exc:
        raise ValueError(f"invalid {what}: {token!r}") from exc


def parse_found_block(line: str) -> FoundBlock:
    """Parse one line of the found blocks file."""
    tokens = line.split()
    if len(tokens) != 5:
        raise ValueError(f"expected 5 fields, got {len(tokens)}")
    timestamp_text, height_text, id_text, diff_text, total_text = tokens
    if len(id_text) != HASH_SIZE * 2:
        raise ValueError(f"invalid block id: {id_text!r}")
    try:
        block_id = bytes.fromhex(id_text)
    except ValueError as exc:
        raise ValueError(f"invalid block id: {id_text!r}") from exc
    return FoundBlock(
        timestamp=_parse_int(timestamp_text, "timestamp"),
        height=_parse_int(height_text, "height"),
        id=block_id,
        block_diff=_parse_int(diff_text, "block difficulty"),
        total_hashes=_parse_int(total_text, "total hashes"),
    )