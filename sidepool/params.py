"""Command line parameters of the pool node."""

from __future__ import annotations

import re
import sys
from collections import deque
from dataclasses import dataclass
from typing import Sequence

DEFAULT_STRATUM_PORT = 3333
MAX_LOG_LEVEL = 6

_ULONG_MAX = 2**64 - 1
_NUMBER = re.compile(r"\s*([+-]?)(\d+)")

_STRING_OPTIONS = {
    "--host": "host",
    "--wallet": "wallet",
    "--stratum": "stratum_addresses",
    "--p2p": "p2p_addresses",
    "--addpeers": "p2p_peer_list",
    "--config": "config",
    "--data-api": "api_path",
    "--rpc-login": "rpc_login",
}

_PORT_OPTIONS = {
    "--rpc-port": "rpc_port",
    "--zmq-port": "zmq_port",
}

# option -> (field, lowest, highest)
_CLAMPED_OPTIONS = {
    "--out-peers": ("max_outgoing_peers", 10, 1000),
    "--in-peers": ("max_incoming_peers", 10, 1000),
    "--start-mining": ("miner_threads", 1, 64),
}

# option -> (field, value it sets)
_FLAG_OPTIONS = {
    "--light-mode": ("light_mode", True),
    "--local-api": ("local_stats", True),
    "--stratum-api": ("local_stats", True),
    "--no-cache": ("block_cache", False),
    "--no-color": ("console_colors", False),
    "--no-randomx": ("disable_randomx", True),
    "--mini": ("mini", True),
    "--no-autodiff": ("auto_diff", False),
}


class UnknownParameterError(ValueError):
    """Raised for a command line argument that is not understood."""

    def __init__(self, parameter: str) -> None:
        super().__init__(f"Unknown command line parameter {parameter}")
        self.parameter = parameter


def _strtol(text: str) -> int:
    match = _NUMBER.match(text)
    if not match:
        return 0
    value = int(match.group(2))
    return -value if match.group(1) == "-" else value


def _strtoul(text: str) -> int:
    value = _strtol(text)
    if abs(value) > _ULONG_MAX:
        return _ULONG_MAX
    return value % (_ULONG_MAX + 1)


def _clamp(value: int, lowest: int, highest: int) -> int:
    return min(max(value, lowest), highest)


@dataclass
class Params:
    """Settings of a node, with the defaults used when an option is absent."""

    host: str = "127.0.0.1"
    rpc_port: int = 18081
    zmq_port: int = 18083
    light_mode: bool = False
    wallet: str = ""
    stratum_addresses: str = ""
    p2p_addresses: str = ""
    p2p_peer_list: str = ""
    config: str = ""
    api_path: str = ""
    local_stats: bool = False
    block_cache: bool = True
    disable_randomx: bool = True
    max_outgoing_peers: int = 10
    max_incoming_peers: int = 1000
    miner_threads: int = 0
    mini: bool = False
    auto_diff: bool = True
    rpc_login: str = ""
    log_level: int | None = None
    console_colors: bool = True

    def ok(self) -> bool:
        """True when host, both daemon ports and a wallet address are set."""
        return bool(self.host) and bool(self.rpc_port) and bool(self.zmq_port) and bool(self.wallet)


def parse_args(argv: Sequence[str] | None = None) -> Params:
    """Parse command line arguments (without the program name) into Params."""
    if argv is None:
        argv = sys.argv[1:]
    params = Params()
    args = deque(argv)

    while args:
        arg = args.popleft()

        if arg in _FLAG_OPTIONS:
            name, value = _FLAG_OPTIONS[arg]
            setattr(params, name, value)
            continue

        takes_value = (
            arg in _STRING_OPTIONS
            or arg in _PORT_OPTIONS
            or arg in _CLAMPED_OPTIONS
            or arg == "--loglevel"
        )
        if not takes_value or not args:
            raise UnknownParameterError(arg)

        value = args.popleft()
        if arg in _STRING_OPTIONS:
            setattr(params, _STRING_OPTIONS[arg], value)
        elif arg in _PORT_OPTIONS:
            setattr(params, _PORT_OPTIONS[arg], _strtoul(value) & 0xFFFFFFFF)
        elif arg in _CLAMPED_OPTIONS:
            name, lowest, highest = _CLAMPED_OPTIONS[arg]
            setattr(params, name, _clamp(_strtoul(value), lowest, highest))
        else:
            params.log_level = _clamp(_strtol(value), 0, MAX_LOG_LEVEL)

    if not params.stratum_addresses:
        port = DEFAULT_STRATUM_PORT
        params.stratum_addresses = f"[::]:{port},0.0.0.0:{port}"

    return params