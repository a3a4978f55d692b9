"""Building blocks for a decentralized mining sidechain node: options, handshake, peers, chain data and stats."""

__version__ = "0.1.0"

__all__ = [
    "api",
    "chaindata",
    "handshake",
    "mainchain",
    "params",
    "peers",
    "rpc",
]