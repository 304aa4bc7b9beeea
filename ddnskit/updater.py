"""Detecting addresses and pushing them to every configured domain."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ddnskit.ipnet import IPAddress, IPNetwork
from ddnskit.pp import PP, Emoji
from ddnskit.provider import Provider
from ddnskit.setter import TTL_AUTO, Setter

# Whether the hints after a failed detection are still to be shown.
message_should_display: dict[IPNetwork, bool] = {IPNetwork.IP4: True, IPNetwork.IP6: True}


@dataclass
class UpdateConfig:
    """What to update: domains and providers per network, proxy flags and TTL."""

    domains: Mapping[IPNetwork, Sequence[str]] = field(default_factory=dict)
    providers: Mapping[IPNetwork, Provider | None] = field(default_factory=dict)
    proxied: Mapping[str, bool] = field(default_factory=dict)
    ttl: int = TTL_AUTO


def _get_proxied(ppfmt: PP, config: UpdateConfig, domain: str) -> bool:
    proxied = config.proxied.get(domain)
    if proxied is not None:
        return proxied
    ppfmt.warning(Emoji.IMPOSSIBLE, f"Proxied[{domain}] not initialized; please report the bug")
    return False


def _set_ip(
    ppfmt: PP, config: UpdateConfig, setter: Setter, ip_network: IPNetwork, ip: IPAddress | None
) -> bool:
    results = [
        setter.set(
            ppfmt, domain, ip_network, ip, config.ttl, _get_proxied(ppfmt, config, domain)
        )
        for domain in config.domains.get(ip_network, ())
    ]
    return all(results)


def _detect_ip(
    ppfmt: PP, provider: Provider, ip_network: IPNetwork
) -> IPAddress | None:
    ip = provider.get_ip(ppfmt, ip_network)
    if ip is not None:
        message_should_display[ip_network] = False
        ppfmt.info(Emoji.INTERNET, f"Detected the {ip_network.describe()} address: {ip}")
        return ip

    ppfmt.error(Emoji.ERROR, f"Failed to detect the {ip_network.describe()} address")
    if message_should_display.get(ip_network, False):
        message_should_display[ip_network] = False
        if ip_network is IPNetwork.IP6:
            ppfmt.info(
                Emoji.CONFIG,
                "If you are using Docker or Kubernetes, IPv6 often requires additional setups",
            )
            ppfmt.info(Emoji.CONFIG, "Read more about IPv6 networks in the documentation")
            ppfmt.info(
                Emoji.CONFIG,
                "If your network does not support IPv6, you can disable it with IP6_PROVIDER=none",
            )
        else:
            ppfmt.info(
                Emoji.CONFIG,
                "If your network does not support IPv4, you can disable it with IP4_PROVIDER=none",
            )
    return None


def update_ips(ppfmt: PP, config: UpdateConfig, setter: Setter) -> bool:
    """Detect each enabled network's address and set it on its domains."""
    ok = True
    for ip_network in IPNetwork:
        provider = config.providers.get(ip_network)
        if provider is None:
            continue
        ip = _detect_ip(ppfmt, provider, ip_network)
        if ip is None:
            ok = False
            continue
        if not _set_ip(ppfmt, config, setter, ip_network, ip):
            ok = False
    return ok


def clear_ips(ppfmt: PP, config: UpdateConfig, setter: Setter) -> bool:
    """Delete the records of every enabled network's domains."""
    ok = True
    for ip_network in IPNetwork:
        if config.providers.get(ip_network) is None:
            continue
        if not _set_ip(ppfmt, config, setter, ip_network, None):
            ok = False
    return ok