"""Known peers of the side chain network and their persistence."""

from __future__ import annotations

import ipaddress
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

log = logging.getLogger(__name__)

_IPV4_PREFIX = bytes(10) + b"\xff\xff"
MAX_FAILED_CONNECTIONS = 10
PEER_EXPIRY_SECONDS = 3600

BanCheck = Callable[[bytes], bool]


def _never_banned(addr: bytes) -> bool:
    return False


@dataclass
class Peer:
    """A peer address with its connection history."""

    is_v6: bool
    addr: bytes
    port: int
    num_failed_connections: int = 0
    last_seen: int = 0


def ip_to_raw(ip: str) -> bytes:
    """Convert a textual IP address to 16 bytes; IPv4 becomes IPv4-mapped."""
    address = ipaddress.ip_address(ip)
    if address.version == 4:
        return _IPV4_PREFIX + address.packed
    return address.packed


def raw_to_ip(raw: bytes, is_v6: bool) -> str:
    """Convert a 16-byte address back to text."""
    raw = bytes(raw)
    if len(raw) != 16:
        raise ValueError("raw address must be 16 bytes")
    if is_v6:
        return ipaddress.IPv6Address(raw).compressed
    return str(ipaddress.IPv4Address(raw[12:]))


def parse_peer_addresses(text: str) -> Iterator[tuple[bool, str, int]]:
    """Yield (is_v6, ip, port) for each "ip:port" or "[ip]:port" in a comma list."""
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        if item.startswith("["):
            host, sep, rest = item[1:].partition("]")
            if not sep or not rest.startswith(":"):
                continue
            port_text = rest[1:]
            is_v6 = True
        else:
            host, sep, port_text = item.rpartition(":")
            if not sep:
                continue
            is_v6 = False
        if not host or not (port_text.isascii() and port_text.isdigit()):
            continue
        port = int(port_text)
        if port >= 65536:
            continue
        yield is_v6, host, port


def format_peer(peer: Peer) -> str:
    """Format a peer as it is written to the saved peer list."""
    ip = raw_to_ip(peer.addr, peer.is_v6)
    if peer.is_v6:
        return f"[{ip}]:{peer.port}"
    return f"{ip}:{peer.port}"


def parse_monerod_peer_list(
    data: str | bytes, port: int, is_banned: BanCheck | None = None
) -> list[Peer]:
    """Parse a daemon peer list reply into peers, most recently seen first."""
    prefix = "/get_peer_list RPC request returned invalid JSON"
    try:
        doc = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"{prefix} (parse error)") from exc
    if not isinstance(doc, dict):
        raise ValueError(f"{prefix} (not an object)")
    if "white_list" not in doc:
        raise ValueError(f"{prefix} ('white_list' not found)")
    white_list = doc["white_list"]
    if not isinstance(white_list, list):
        raise ValueError(f"{prefix} ('white_list' is not an array)")

    is_banned = is_banned or _never_banned
    peers = []
    for entry in white_list:
        if not isinstance(entry, dict):
            continue
        host = entry.get("host")
        last_seen = entry.get("last_seen")
        if not isinstance(host, str):
            continue
        if isinstance(last_seen, bool) or not isinstance(last_seen, int) or last_seen < 0:
            continue
        is_v6 = ":" in host
        try:
            address = ipaddress.ip_address(host)
        except ValueError:
            continue
        if (address.version == 6) != is_v6:
            continue
        addr = ip_to_raw(host)
        if is_banned(addr):
            continue
        peers.append(Peer(is_v6, addr, port, 0, last_seen))

    peers.sort(key=lambda p: p.last_seen, reverse=True)
    return peers


class PeerList:
    """Thread-safe list of known peers."""

    def __init__(self, is_banned: BanCheck | None = None) -> None:
        self._peers: list[Peer] = []
        self._lock = threading.Lock()
        self._is_banned = is_banned or _never_banned

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)

    def __iter__(self) -> Iterator[Peer]:
        return iter(self.peers)

    @property
    def peers(self) -> list[Peer]:
        """A snapshot of the current peers."""
        with self._lock:
            return list(self._peers)

    def _find(self, is_v6: bool, addr: bytes) -> Peer | None:
        return next(
            (p for p in self._peers if p.is_v6 == is_v6 and p.addr == addr), None
        )

    def update(self, is_v6: bool, addr: bytes, port: int, now: int) -> None:
        """Record a peer's listen port, resetting its failure count."""
        addr = bytes(addr)
        with self._lock:
            peer = self._find(is_v6, addr)
            if peer is not None:
                peer.port = port
                peer.num_failed_connections = 0
                peer.last_seen = now
            elif not self._is_banned(addr):
                self._peers.append(Peer(is_v6, addr, port, 0, now))

    def merge(self, is_v6: bool, addr: bytes, port: int, now: int) -> bool:
        """Merge a peer learnt from another node; True if it was added."""
        addr = bytes(addr)
        with self._lock:
            peer = self._find(is_v6, addr)
            if peer is not None:
                peer.last_seen = now
                return False
            if self._is_banned(addr):
                return False
            self._peers.append(Peer(is_v6, addr, port, 0, now))
            return True

    def on_connect_failed(self, is_v6: bool, addr: bytes, port: int) -> None:
        """Count a failed connection; drop the peer after too many failures."""
        addr = bytes(addr)
        with self._lock:
            for index, peer in enumerate(self._peers):
                if peer.is_v6 == is_v6 and peer.port == port and peer.addr == addr:
                    peer.num_failed_connections += 1
                    if peer.num_failed_connections >= MAX_FAILED_CONNECTIONS:
                        del self._peers[index]
                    return

    def remove(self, is_v6: bool, addr: bytes, port: int) -> bool:
        """Remove the first peer matching family, address and port."""
        addr = bytes(addr)
        with self._lock:
            for index, peer in enumerate(self._peers):
                if peer.is_v6 == is_v6 and peer.port == port and peer.addr == addr:
                    del self._peers[index]
                    return True
        return False

    def remove_ip(self, addr: bytes) -> bool:
        """Remove the first peer with the given address."""
        addr = bytes(addr)
        with self._lock:
            for index, peer in enumerate(self._peers):
                if peer.addr == addr:
                    del self._peers[index]
                    return True
        return False

    def touch_connected(self, addrs: Iterable[bytes], now: int) -> None:
        """Mark peers with a currently connected address as seen now."""
        connected = {bytes(a) for a in addrs}
        with self._lock:
            for peer in self._peers:
                if peer.addr in connected:
                    peer.last_seen = now

    def prune(self, now: int) -> int:
        """Drop peers not seen for over an hour; return how many were dropped."""
        with self._lock:
            before = len(self._peers)
            self._peers = [
                p for p in self._peers if p.last_seen + PEER_EXPIRY_SECONDS >= now
            ]
            return before - len(self._peers)

    def save(self, path: str | Path) -> int:
        """Write the peers one per line; return how many were written."""
        peers = self.peers
        with open(path, "w", encoding="ascii", newline="\n") as f:
            for peer in peers:
                f.write(format_peer(peer) + "\n")
        log.debug("peer list saved (%d peers)", len(peers))
        return len(peers)

    def load(self, path: str | Path, now: int) -> int:
        """Add peers from a saved peer list file; a missing file adds none."""
        try:
            lines = Path(path).read_text(encoding="ascii").splitlines()
        except FileNotFoundError:
            return 0
        return self.add_addresses(",".join(l.strip() for l in lines if l.strip()), now)

    def add_addresses(self, text: str, now: int) -> int:
        """Add peers from a comma separated address list; return how many were added."""
        added = 0
        with self._lock:
            for is_v6, ip, port in parse_peer_addresses(text):
                try:
                    address = ipaddress.ip_address(ip)
                except ValueError:
                    log.error("failed to parse address %s", ip)
                    continue
                if (address.version == 6) != is_v6:
                    log.error("failed to parse address %s", ip)
                    continue
                addr = ip_to_raw(ip)
                if self._find(is_v6, addr) is not None or self._is_banned(addr):
                    continue
                self._peers.append(Peer(is_v6, addr, port, 0, now))
                added += 1
        log.debug("peer list loaded (%d peers)", added)
        return added