"""IP network versions and their properties."""

from __future__ import annotations

from enum import IntEnum
from ipaddress import IPv4Address, IPv6Address

IPAddress = IPv4Address | IPv6Address


class IPNetwork(IntEnum):
    """An IP network version; its integer value is 4 or 6."""

    IP4 = 4
    IP6 = 6

    def describe(self) -> str:
        """Human-readable name such as ``IPv4``."""
        return f"IPv{int(self)}"

    def record_type(self) -> str:
        """The DNS record type holding addresses of this network."""
        return "A" if self is IPNetwork.IP4 else "AAAA"

    def normalize_ip(self, ip: IPAddress | None) -> IPAddress | None:
        """Convert ``ip`` to this network's form, or ``None`` if impossible.

        IPv4-mapped IPv6 addresses become IPv4 for ``IP4``; IPv4 addresses
        become IPv4-mapped IPv6 addresses for ``IP6``.
        """
        if ip is None:
            return None
        if self is IPNetwork.IP4:
            if isinstance(ip, IPv6Address) and ip.ipv4_mapped is not None:
                ip = ip.ipv4_mapped
            return ip if isinstance(ip, IPv4Address) else None
        if isinstance(ip, IPv4Address):
            return IPv6Address(f"::ffff:{ip}")
        return ip

    def udp_network(self) -> str:
        """Name of the UDP network of this version."""
        return "udp4" if self is IPNetwork.IP4 else "udp6"