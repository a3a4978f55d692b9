"""Daemon RPC requests and replies, found block records and API statistics."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from .chaindata import HASH_SIZE, ChainMain, FoundBlock, MinerData, parse_found_block
from .params import DEFAULT_STRATUM_PORT

MAX_BLOCKS_IN_API = 51
NONCE_SIZE = 4
_U64 = 2**64
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class RpcError(Exception):
    """A daemon reply that cannot be used.

    ``retry`` tells whether asking again later may succeed.
    """

    def __init__(self, message: str, *, retry: bool = False) -> None:
        super().__init__(message)
        self.retry = retry


@dataclass
class TxMempoolData:
    """A transaction waiting in the daemon's mempool."""

    id: bytes
    weight: int
    fee: int
    blob_size: int = 0


def _load_json(data: str | bytes, what: str, *, retry: bool = False) -> dict[str, Any]:
    try:
        doc = json.loads(data)
    except ValueError as exc:
        raise RpcError(f"{what}: invalid JSON response from daemon", retry=retry) from exc
    if not isinstance(doc, dict):
        raise RpcError(f"{what}: invalid JSON response from daemon", retry=retry)
    return doc


def _result(data: str | bytes, what: str, *, retry: bool) -> dict[str, Any]:
    doc = _load_json(data, what, retry=retry)
    result = doc.get("result")
    if not isinstance(result, dict):
        raise RpcError(f'{what} RPC response is invalid ("result" not found)', retry=retry)
    return result


def _uint64(obj: dict[str, Any], key: str) -> int | None:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _U64:
        return None
    return value


def _hash(obj: dict[str, Any], key: str) -> bytes | None:
    value = obj.get(key)
    if not isinstance(value, str) or len(value) != HASH_SIZE * 2:
        return None
    if not all(c in _HEX_DIGITS for c in value):
        return None
    return bytes.fromhex(value)


def _difficulty(obj: dict[str, Any], key: str) -> int | None:
    value = obj.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value < 2**128 else None
    if isinstance(value, str):
        text = value[2:] if value[:2] in ("0x", "0X") else value
        if not text or len(text) > 32 or not all(c in _HEX_DIGITS for c in text):
            return None
        return int(text, 16)
    return None


def load_found_blocks(path: str | Path) -> list[FoundBlock]:
    """Read the found blocks file; a missing file gives an empty list.

    A trailing incomplete record is ignored.
    """
    try:
        tokens = Path(path).read_text(encoding="ascii").split()
    except FileNotFoundError:
        return []
    complete = len(tokens) - len(tokens) % 5
    return [
        parse_found_block(" ".join(tokens[start : start + 5]))
        for start in range(0, complete, 5)
    ]


def append_found_block(path: str | Path, block: FoundBlock) -> None:
    """Append one block to the found blocks file."""
    with open(path, "a", encoding="ascii", newline="\n") as f:
        f.write(block.to_line() + "\n")


def blocks_json(found_blocks: Sequence[FoundBlock]) -> str:
    """The pool "blocks" API document: the latest 51 blocks, newest first."""
    latest = list(found_blocks)[-MAX_BLOCKS_IN_API:]
    items = (
        f'{{"height":{b.height},"hash":"{b.id.hex()}","difficulty":{b.block_diff},'
        f'"totalHashes":{b.total_hashes},"ts":{b.timestamp}}}'
        for b in reversed(latest)
    )
    return "[" + ",".join(items) + "]"


def network_stats_json(tip: ChainMain) -> str:
    """The network "stats" API document for the main chain tip."""
    return (
        f'{{"difficulty":{tip.difficulty},"hash":"{tip.id.hex()}",'
        f'"height":{tip.height},"reward":{tip.reward},"timestamp":{tip.timestamp}}}'
    )


def pool_stats_json(
    hashrate: int, miners: int, total_hashes: int, found_blocks: Sequence[FoundBlock]
) -> str:
    """The pool "stats" API document."""
    last_time = found_blocks[-1].timestamp if found_blocks else 0
    last_height = found_blocks[-1].height if found_blocks else 0
    return (
        f'{{"pool_list":["pplns"],"pool_statistics":{{"hashRate":{hashrate}'
        f',"miners":{miners}'
        f',"totalHashes":{total_hashes}'
        f',"lastBlockFoundTime":{last_time}'
        f',"lastBlockFound":{last_height}'
        f',"totalBlocksFound":{len(found_blocks)}'
        "}}"
    )


def stats_mod_json(
    tip: ChainMain,
    found_blocks: Sequence[FoundBlock],
    miners: int,
    hashrate: int,
    total_hashes: int,
    stratum_port: int = DEFAULT_STRATUM_PORT,
) -> str | None:
    """The global "stats_mod" API document, or None if total hashes went backwards."""
    if found_blocks:
        last = found_blocks[-1]
        last_time, last_height = last.timestamp, last.height
        last_hash, last_total = last.id, last.total_hashes
    else:
        last_time, last_height = 0, 0
        last_hash, last_total = bytes(HASH_SIZE), 0

    if total_hashes < last_total:
        return None

    round_hashes = (total_hashes - last_total) % _U64
    hex_id = last_hash.hex()
    short_id = f"{hex_id[:4]}...{hex_id[-4:]}"
    return (
        f'{{"config":{{"ports":[{{"port":{stratum_port},"tls":false}}],"fee":0,'
        f'"minPaymentThreshold":300000000}},"network":{{"height":{tip.height}}},'
        f'"pool":{{"stats":{{"lastBlockFound":"{last_time}000"}},'
        f'"blocks":["{short_id}:{last_time}","{last_height}"],'
        f'"miners":{miners},"hashrate":{hashrate},"roundHashes":{round_hashes}}}}}'
    )


def build_submit_block_request(
    blob: bytes,
    nonce_offset: int,
    nonce: int,
    extra_nonce_offset: int,
    extra_nonce: int,
) -> str:
    """The submit_block JSON-RPC request, with nonces written into the blob.

    An offset of 0 leaves the blob unchanged at that place.
    """
    data = bytearray(blob)
    for offset, value in ((nonce_offset, nonce), (extra_nonce_offset, extra_nonce)):
        if not offset:
            continue
        field = (value % 2**32).to_bytes(NONCE_SIZE, "little")
        end = min(offset + NONCE_SIZE, len(data))
        if offset < end:
            data[offset:end] = field[: end - offset]
    return (
        '{"jsonrpc":"2.0","id":"0","method":"submit_block","params":["'
        + data.hex()
        + '"]}'
    )


def parse_submit_block_response(data: str | bytes) -> bool:
    """True when the daemon accepted the block; RpcError otherwise."""
    doc = _load_json(data, "submit_block")
    if "error" in doc:
        error = doc["error"]
        if not isinstance(error, dict):
            raise RpcError(
                "submit_block: invalid JSON reponse from daemon: 'error' is not an object"
            )
        message = error.get("message")
        if not isinstance(message, str):
            message = "unknown error"
        raise RpcError(f"submit_block: daemon returned error: {message}")

    result = doc.get("result")
    if isinstance(result, dict) and result.get("status") == "OK":
        return True

    text = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
    raise RpcError(f"submit_block: daemon sent unrecognizable reply: {text}")


def parse_get_info(data: str | bytes, network: str) -> str:
    """Check a get_info reply against the side chain's network; return the daemon's."""
    result = _result(data, "get_info", retry=True)
    flags = {}
    for key in ("busy_syncing", "synchronized", "mainnet", "testnet", "stagenet"):
        value = result.get(key)
        if not isinstance(value, bool):
            raise RpcError("get_info RPC response is invalid", retry=True)
        flags[key] = value

    if flags["busy_syncing"] or not flags["synchronized"]:
        state = "busy syncing" if flags["busy_syncing"] else "not synchronized"
        raise RpcError(f"monerod is {state}", retry=True)

    daemon_network = "invalid"
    for name in ("mainnet", "testnet", "stagenet"):
        if flags[name]:
            daemon_network = name

    if daemon_network != network:
        raise RpcError(
            f"monerod is on {daemon_network}, but you're mining to a {network} sidechain"
        )
    return daemon_network


def parse_get_version(data: str | bytes, disable_randomx: bool) -> int:
    """Check that the daemon's RPC version is new enough; return it."""
    result = _result(data, "get_version", retry=True)
    status = result.get("status")
    version = _uint64(result, "version")
    if not isinstance(status, str) or version is None:
        raise RpcError("get_version RPC response is invalid", retry=True)
    if status != "OK":
        raise RpcError("get_version RPC failed", retry=True)

    required = 0x30009 if disable_randomx else 0x30008
    if version < required:
        raise RpcError(
            f"monerod RPC v{version >> 16}.{version & 65535} is incompatible, "
            f"update to RPC >= v{required >> 16}.{required & 65535} "
            "(Monero v0.17.3.0 or newer)"
        )
    return version


def _parse_tx_backlog(entries: Iterable[Any]) -> list[TxMempoolData]:
    backlog = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        tx_id = _hash(entry, "id")
        weight = _uint64(entry, "weight")
        fee = _uint64(entry, "fee")
        if tx_id is None or weight is None or fee is None:
            continue
        backlog.append(TxMempoolData(id=tx_id, weight=weight, fee=fee, blob_size=0))
    return backlog


def parse_miner_data(data: str | bytes) -> MinerData:
    """Parse a get_miner_data reply into MinerData."""
    doc = _load_json(data, "get_miner_data")
    result = doc.get("result")
    if not isinstance(result, dict):
        raise RpcError("get_miner_data RPC response is invalid, skipping it")

    major_version = _uint64(result, "major_version")
    height = _uint64(result, "height")
    prev_id = _hash(result, "prev_id")
    seed_hash = _hash(result, "seed_hash")
    median_weight = _uint64(result, "median_weight")
    already_generated_coins = _uint64(result, "already_generated_coins")
    difficulty = _difficulty(result, "difficulty")
    fields = (
        major_version,
        height,
        prev_id,
        seed_hash,
        median_weight,
        already_generated_coins,
        difficulty,
    )
    if any(value is None for value in fields):
        raise RpcError("get_miner_data RPC response failed to parse, skipping it")

    backlog = result.get("tx_backlog")
    return MinerData(
        major_version=major_version,
        height=height,
        prev_id=prev_id,
        seed_hash=seed_hash,
        difficulty=difficulty,
        median_weight=median_weight,
        already_generated_coins=already_generated_coins,
        tx_backlog=_parse_tx_backlog(backlog) if isinstance(backlog, list) else [],
    )