"""
Pick the local address that shares a subnet with the server.

The publisher socket has to bind on an address the server can reach, so
after each discovery we look for a local IPv4 interface inside the server's
subnet (a /24 unless told otherwise).  Interfaces are visited in the order
``psutil.net_if_addrs()`` reports them; that order is platform dependent, so
with several matching interfaces the winner is not guaranteed to be stable
across machines.
"""
from __future__ import annotations
import ipaddress
import socket
from typing import Iterable, List, Optional

import psutil

from .config import DEFAULT_SUBNET_MASK
from .errors import MalformedAddressError

LOOPBACK = "127.0.0.1"


def _parse(addr: str, what: str) -> bytes:
    try:
        return ipaddress.IPv4Address(addr).packed
    except (ipaddress.AddressValueError, ValueError) as ex:
        raise MalformedAddressError(f"malformed {what}: {addr!r}") from ex


def local_ipv4_addresses() -> List[str]:
    out: List[str] = []
    for _iface, addrs in psutil.net_if_addrs().items():
        for a in addrs:
            if a.family == socket.AF_INET:
                out.append(a.address)
    return out


def same_subnet(a: str, b: str, mask: str = DEFAULT_SUBNET_MASK) -> bool:
    ab, bb, mb = _parse(a, "address"), _parse(b, "address"), _parse(mask, "subnet mask")
    return all((x & m) == (y & m) for x, y, m in zip(ab, bb, mb))


def local_ip_in_subnet(
    peer_ip: str,
    mask: str = DEFAULT_SUBNET_MASK,
    addresses: Optional[Iterable[str]] = None,
) -> str:
    """
    Return the first local IPv4 address in the same subnet as `peer_ip`.

    `addresses` overrides interface enumeration (mainly for tests).  Falls
    back to loopback when nothing matches; a malformed `peer_ip` or `mask`
    raises MalformedAddressError instead.
    """
    peer = _parse(peer_ip, "address")
    m = _parse(mask, "subnet mask")
    candidates = local_ipv4_addresses() if addresses is None else addresses
    for local in candidates:
        try:
            lb = ipaddress.IPv4Address(local).packed
        except (ipaddress.AddressValueError, ValueError):
            continue
        if all((x & k) == (y & k) for x, y, k in zip(peer, lb, m)):
            return local
    return LOOPBACK
