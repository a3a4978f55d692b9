# sidepool

`sidepool` holds pieces a decentralized mining sidechain node is built from:
option parsing, the peer handshake hash, a peer list, main chain header
tracking, daemon RPC reply parsing and the JSON statistics files. It is a
library only; there is no command-line program.

## Modules

- `sidepool.params`: `parse_args(argv)` turns command-line style options
  (`--host`, `--rpc-port`, `--zmq-port`, `--wallet`, `--stratum`, `--p2p`,
  `--addpeers`, `--loglevel`, `--data-api`, `--out-peers`, `--in-peers`,
  `--start-mining`, `--mini`, `--no-cache` and others) into a `Params`
  dataclass. Peer counts and thread counts are clamped to their allowed
  ranges. When no `--stratum` is given, it defaults to listening on port 3333
  on all IPv6 and IPv4 addresses. An unknown option, or an option missing its
  value, raises `UnknownParameterError`. `Params.ok()` is true when host, both
  daemon ports and a wallet are set.
- `sidepool.handshake`: `keccak256` (original Keccak, not SHA3),
  `challenge_bytes`, `handshake_hash` over challenge, consensus id and salt,
  `has_enough_pow`, `solve_handshake` (searches salts until the hash has
  enough proof of work) and `check_handshake_solution`.
- `sidepool.peers`: `Peer` and a thread-safe `PeerList` with `update`,
  `merge`, `on_connect_failed` (drops a peer after 10 failures), `remove`,
  `remove_ip`, `touch_connected`, `prune` (drops peers unseen for an hour),
  `save`, `load` and `add_addresses`. Helpers: `ip_to_raw`, `raw_to_ip`,
  `parse_peer_addresses` for `ip:port` / `[ip]:port` comma lists,
  `format_peer`, and `parse_monerod_peer_list` for a daemon's `white_list`
  reply, sorted most recently seen first.
- `sidepool.chaindata`: the records `ChainMain`, `MinerData` and
  `FoundBlock`, with `parse_found_block` and `FoundBlock.to_line` for the
  one-line-per-block found blocks format.
- `sidepool.mainchain`: `MainChain` stores headers by height and by hash. It
  records miner data and new blocks, parses `get_block_header_by_height` and
  `get_block_headers_range` replies, prunes headers older than 720 blocks
  (keeping the three latest seed heights), and gives the median timestamp of
  the latest 60 blocks, seed ids, lookups by hash, difficulty by height and
  missing heights. `get_seed_height` and `sidechain_id_from_extra` are
  module-level helpers.
- `sidepool.rpc`: parses `get_info`, `get_version`, `get_miner_data` and
  `submit_block` replies, raising `RpcError` (whose `retry` flag says whether
  asking again may help). `build_submit_block_request` writes the nonces into
  a block blob and returns the request text. It also reads and appends the
  found blocks file (`load_found_blocks`, `append_found_block`) and renders
  the statistics documents (`blocks_json`, `network_stats_json`,
  `pool_stats_json`, `stats_mod_json`).
- `sidepool.api`: `ApiWriter(api_path, local_stats=False)` creates the
  `network/` and `pool/` subdirectories (and `local/` when asked) under an
  existing directory. `set(category, filename, content)` queues a string,
  bytes or a callable producing one, keeping the latest content per file and
  at most 16384 bytes; `flush()` writes the queued files and returns the
  paths written. `Category` selects the subdirectory.

## Examples

Solving and checking a handshake:

```python
from sidepool.handshake import challenge_bytes, solve_handshake, check_handshake_solution

challenge = challenge_bytes(0x0123456789ABCDEF)
consensus_id = b"example consensus id"
solution, salt = solve_handshake(challenge, consensus_id, 0)
assert check_handshake_solution(challenge, consensus_id, solution, salt)
```

Parsing options:

```python
from sidepool.params import parse_args

params = parse_args(["--host", "127.0.0.1", "--mini", "--out-peers", "32"])
print(params.ok())  # False: no wallet given
```

Looking up the seed height for a main chain height:

```python
from sidepool.mainchain import get_seed_height

print(get_seed_height(3_000_000))
```

## What the package does not do

- It opens no network connections and runs no server: there is no peer
  listener, no encoding or decoding of peer-to-peer wire messages and no
  handling of a peer's incoming message stream.
- It sends no RPC requests to a daemon; it only builds request text and
  parses replies you obtain yourself.
- It does not mine, build block templates or serve stratum clients.
- It has no command to start a node.