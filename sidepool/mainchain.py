"""Main chain block headers kept by the node: storage, pruning and lookups."""

from __future__ import annotations

import json
import string
import threading
from dataclasses import replace
from typing import Any

from .chaindata import HASH_SIZE, ChainMain

SEEDHASH_EPOCH_BLOCKS = 2048
SEEDHASH_EPOCH_LAG = 64
BLOCK_HEADERS_REQUIRED = 720
TIMESTAMP_WINDOW = 60

_U64 = 2**64
_HEX_DIGITS = frozenset(string.hexdigits)


def get_seed_height(height: int) -> int:
    """Height of the block whose hash seeds RandomX for the given height."""
    if height > SEEDHASH_EPOCH_LAG:
        return (height - SEEDHASH_EPOCH_LAG - 1) & ~(SEEDHASH_EPOCH_BLOCKS - 1)
    return 0


def sidechain_id_from_extra(extra: str | None) -> bytes | None:
    """Side chain block id from the last 64 hex characters of a block's extra.

    Returns None when there is no valid, non-zero id.
    """
    if not extra or len(extra) < HASH_SIZE * 2:
        return None
    tail = extra[-HASH_SIZE * 2 :]
    if not all(c in _HEX_DIGITS for c in tail):
        return None
    sidechain_id = bytes.fromhex(tail)
    if sidechain_id == bytes(HASH_SIZE):
        return None
    return sidechain_id


def _uint64(obj: dict[str, Any], key: str) -> int | None:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not 0 <= value < _U64:
        return None
    return value


def _hash(obj: dict[str, Any], key: str) -> bytes | None:
    value = obj.get(key)
    if not isinstance(value, str) or len(value) != HASH_SIZE * 2:
        return None
    if not all(c in _HEX_DIGITS for c in value):
        return None
    return bytes.fromhex(value)


def _header_from_json(obj: Any) -> ChainMain | None:
    if not isinstance(obj, dict):
        return None
    lo = _uint64(obj, "difficulty")
    hi = _uint64(obj, "difficulty_top64")
    if lo is None or hi is None:
        return None
    height = _uint64(obj, "height")
    timestamp = _uint64(obj, "timestamp")
    reward = _uint64(obj, "reward")
    block_id = _hash(obj, "hash")
    if height is None or timestamp is None or reward is None or block_id is None:
        return None
    return ChainMain(
        height=height,
        id=block_id,
        timestamp=timestamp,
        reward=reward,
        difficulty=(hi << 64) | lo,
    )


def _result_object(data: str | bytes, what: str) -> dict[str, Any]:
    try:
        doc = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"{what}: invalid JSON response from daemon") from exc
    if not isinstance(doc, dict):
        raise ValueError(f"{what}: invalid JSON response from daemon")
    result = doc.get("result")
    if not isinstance(result, dict):
        raise ValueError(
            f"{what}: invalid JSON response from daemon: "
            "'result' is not found or not an object"
        )
    return result


class MainChain:
    """Main chain headers indexed by height and by hash; thread-safe."""

    def __init__(self) -> None:
        self._by_height: dict[int, ChainMain] = {}
        self._by_hash: dict[bytes, ChainMain] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_height)

    def __contains__(self, height: object) -> bool:
        with self._lock:
            return height in self._by_height

    def _entry(self, height: int) -> ChainMain:
        entry = self._by_height.get(height)
        if entry is None:
            entry = ChainMain()
            self._by_height[height] = entry
        return entry

    def _store(self, header: ChainMain) -> None:
        self._by_height[header.height] = replace(header)
        self._by_hash[header.id] = replace(header)

    def handle_miner_data(self, height: int, prev_id: bytes, difficulty: int) -> None:
        """Record new miner data: difficulty at height and the previous block's id."""
        with self._lock:
            self._entry(height).difficulty = difficulty
            prev = self._entry(height - 1)
            prev.height = height - 1
            prev.id = ChainMain(id=prev_id).id
            # timestamp and reward are not known at this point
            prev.timestamp = 0
            prev.reward = 0
            self._by_hash[prev.id] = replace(prev)
            self.cleanup(height)

    def handle_chain_main(self, height: int, timestamp: int, reward: int) -> ChainMain:
        """Record a new main chain block; return its header with the known id."""
        with self._lock:
            entry = self._entry(height)
            entry.height = height
            entry.timestamp = timestamp
            entry.reward = reward
            self._by_hash[entry.id] = replace(entry)
            return replace(entry)

    def parse_block_header(self, data: str | bytes) -> ChainMain:
        """Parse and store a get_block_header_by_height reply."""
        what = "parse_block_header"
        result = _result_object(data, what)
        header_obj = result.get("block_header")
        if not isinstance(header_obj, dict):
            raise ValueError(
                f"{what}: invalid JSON response from daemon: "
                "'block_header' is not found or not an object"
            )
        if _uint64(header_obj, "difficulty") is None or _uint64(
            header_obj, "difficulty_top64"
        ) is None:
            raise ValueError(
                f"{what}: invalid JSON response from daemon: failed to parse difficulty"
            )
        header = _header_from_json(header_obj)
        if header is None:
            raise ValueError(
                f"{what}: invalid JSON response from daemon: "
                "failed to parse 'block_header'"
            )
        with self._lock:
            self._store(header)
        return replace(header)

    def parse_block_headers_range(self, data: str | bytes) -> int:
        """Parse and store a get_block_headers_range reply; return headers stored."""
        what = "parse_block_headers_range"
        result = _result_object(data, what)
        headers = result.get("headers")
        if not isinstance(headers, list):
            raise ValueError(
                f"{what}: invalid JSON response from daemon: "
                "'headers' is not found or not an array"
            )
        parsed = 0
        with self._lock:
            for obj in headers:
                header = _header_from_json(obj)
                if header is None:
                    continue
                self._store(header)
                parsed += 1
        return parsed

    def cleanup(self, height: int) -> int:
        """Drop headers older than 720 blocks except the 3 latest seed heights.

        Returns the number of headers dropped.
        """
        seed_height = get_seed_height(height)
        keep = {
            seed_height,
            seed_height - SEEDHASH_EPOCH_BLOCKS,
            seed_height - SEEDHASH_EPOCH_BLOCKS * 2,
        }
        removed = 0
        with self._lock:
            for h in sorted(self._by_height):
                if h + BLOCK_HEADERS_REQUIRED >= height:
                    break
                if h in keep:
                    continue
                entry = self._by_height.pop(h)
                self._by_hash.pop(entry.id, None)
                removed += 1
        return removed

    def median_timestamp(self) -> int:
        """Median timestamp of the latest 60 blocks, or 0 without enough blocks."""
        with self._lock:
            if len(self._by_height) <= TIMESTAMP_WINDOW:
                return 0
            latest = sorted(self._by_height, reverse=True)[:TIMESTAMP_WINDOW]
            timestamps = sorted(self._by_height[h].timestamp for h in latest)
        middle = TIMESTAMP_WINDOW // 2
        # Shifted by one block: the newest block is not known yet with new miner data
        return (timestamps[middle] + timestamps[middle + 1]) // 2

    def get_seed(self, height: int) -> bytes | None:
        """Id of the seed block for the given height, if known."""
        with self._lock:
            entry = self._by_height.get(get_seed_height(height))
            return None if entry is None else entry.id

    def get_by_hash(self, block_id: bytes) -> ChainMain | None:
        """Header of the block with this id, if known."""
        with self._lock:
            entry = self._by_hash.get(bytes(block_id))
            return None if entry is None else replace(entry)

    def difficulty_at_height(self, height: int) -> int | None:
        """Difficulty recorded for a height, if the height is known."""
        with self._lock:
            entry = self._by_height.get(height)
            return None if entry is None else entry.difficulty

    def missing_heights(self, height: int) -> list[int]:
        """Heights within the last 720 blocks that lack a header or difficulty."""
        missing = []
        with self._lock:
            h = height
            while h and h + BLOCK_HEADERS_REQUIRED > height:
                entry = self._by_height.get(h)
                if entry is None or not entry.difficulty:
                    missing.append(h)
                h -= 1
        return missing