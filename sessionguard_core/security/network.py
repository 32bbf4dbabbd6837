# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Client address helpers.

Addresses arrive from proxies and sockets in several spellings of the same
host (``::1``, ``::ffff:10.0.0.5``). Everything that compares or scores an
address works on the canonical form returned by ``normalize_ip``.
"""

import ipaddress

LOOPBACK_IPV4 = "127.0.0.1"

# RFC 1918 ranges treated as internal network access
PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def normalize_ip(value: str | None) -> str:
    """
    Collapse equivalent address spellings to one canonical string.

    - ``::1`` becomes ``127.0.0.1``
    - IPv4-mapped IPv6 (``::ffff:a.b.c.d``) becomes ``a.b.c.d``
    - other valid addresses are returned in compressed form
    - unparseable input is returned stripped, unchanged otherwise
    """
    if not value:
        return ""
    raw = value.strip()
    # Zone ids ("fe80::1%eth0") are not part of the address identity
    candidate = raw.split("%", 1)[0]
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return raw

    if isinstance(address, ipaddress.IPv6Address):
        if address == ipaddress.IPv6Address("::1"):
            return LOOPBACK_IPV4
        if address.ipv4_mapped is not None:
            return str(address.ipv4_mapped)
    return str(address)


def is_private_ip(value: str | None) -> bool:
    """True when the address falls in one of the RFC 1918 ranges."""
    try:
        address = ipaddress.ip_address(normalize_ip(value))
    except ValueError:
        return False
    if not isinstance(address, ipaddress.IPv4Address):
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


__all__ = [
    "LOOPBACK_IPV4",
    "PRIVATE_NETWORKS",
    "normalize_ip",
    "is_private_ip",
]
