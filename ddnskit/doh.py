"""Detecting the IP address with a TXT query sent over DNS-over-HTTPS."""

from __future__ import annotations

import ipaddress
import json
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype

from ddnskit.ipnet import IPAddress, IPNetwork
from ddnskit.pp import PP, Emoji
from ddnskit.provider import Provider, fetch, normalize_ip

_DNS_MESSAGE = "application/dns-message"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def new_dns_query(
    ppfmt: PP, query_id: int, name: str, rdclass: dns.rdataclass.RdataClass
) -> bytes | None:
    """Build a non-recursive TXT query for ``name`` in ``rdclass``.

    ``name`` must be fully qualified (end with a dot). On failure the
    problem is reported through ``ppfmt`` and ``None`` is returned.
    """
    if not 0 <= query_id <= 0xFFFF:
        raise ValueError("query_id must fit in 16 bits")

    if not name.endswith("."):
        ppfmt.warning(
            Emoji.ERROR,
            f"Failed to prepare the DNS query: {_quote(name)} is not fully qualified",
        )
        return None

    try:
        query = dns.message.make_query(dns.name.from_text(name), dns.rdatatype.TXT, rdclass)
        query.id = query_id
        query.flags = 0  # a plain query; no recursion wanted
        return query.to_wire()
    except (dns.exception.DNSException, ValueError) as err:
        ppfmt.warning(Emoji.ERROR, f"Failed to prepare the DNS query: {err}")
        return None


def _parse_answers(
    ppfmt: PP, message: dns.message.Message, name: str, rdclass: dns.rdataclass.RdataClass
) -> IPAddress | None:
    qname = dns.name.from_text(name)
    ip_string = ""

    for rrset in message.answer:
        if rrset.name != qname or rrset.rdtype != dns.rdatatype.TXT or rrset.rdclass != rdclass:
            continue
        for rdata in rrset:
            for raw in rdata.strings:
                text = raw.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                if ip_string:
                    ppfmt.warning(
                        Emoji.IMPOSSIBLE,
                        "Invalid DNS response: more than one string in TXT records",
                    )
                    return None
                ip_string = text

    if not ip_string:
        ppfmt.warning(
            Emoji.IMPOSSIBLE,
            "Invalid DNS response: no TXT records or all TXT records are empty",
        )
        return None

    try:
        return ipaddress.ip_address(ip_string)
    except ValueError:
        ppfmt.error(
            Emoji.IMPOSSIBLE,
            "Invalid DNS response: failed to parse the IP address in the TXT record: "
            f"{ip_string}",
        )
        return None


def parse_dns_response(
    ppfmt: PP,
    response: bytes,
    query_id: int,
    name: str,
    rdclass: dns.rdataclass.RdataClass,
) -> IPAddress | None:
    """Extract the single address held in the TXT answers of ``response``."""
    try:
        message = dns.message.from_wire(response, one_rr_per_rrset=True)
    except (dns.exception.DNSException, ValueError) as err:
        ppfmt.warning(Emoji.IMPOSSIBLE, f"Invalid DNS response: {err}")
        return None

    if message.id != query_id:
        ppfmt.warning(Emoji.IMPOSSIBLE, "Invalid DNS response: mismatched transaction ID")
        return None
    if not message.flags & dns.flags.QR:
        ppfmt.warning(Emoji.IMPOSSIBLE, "Invalid DNS response: QR was not set")
        return None
    if message.flags & dns.flags.TC:
        ppfmt.warning(Emoji.IMPOSSIBLE, "Invalid DNS response: TC was set")
        return None
    rcode = message.rcode()
    if rcode != dns.rcode.NOERROR:
        ppfmt.warning(
            Emoji.IMPOSSIBLE,
            f"Invalid DNS response: response code is {dns.rcode.to_text(rcode)}",
        )
        return None

    return _parse_answers(ppfmt, message, name, rdclass)


@dataclass
class DNSOverHTTPS(Provider):
    """Asks a DNS-over-HTTPS server for a TXT record holding the address.

    ``params`` maps each network to a ``(url, name, rdclass)`` triple.
    """

    name: str
    params: Mapping[IPNetwork, tuple[str, str, dns.rdataclass.RdataClass]] = field(
        default_factory=dict
    )

    def get_ip(self, ppfmt: PP, ip_network: IPNetwork) -> IPAddress | None:
        param = self.params.get(ip_network)
        if param is None:
            ppfmt.warning(Emoji.IMPOSSIBLE, f"Unhandled IP network: {ip_network.describe()}")
            return None
        url, qname, rdclass = param

        query_id = secrets.randbits(16)
        query = new_dns_query(ppfmt, query_id, qname, rdclass)
        if query is None:
            return None

        try:
            body = fetch(url, "POST", _DNS_MESSAGE, _DNS_MESSAGE, query)
        except OSError as err:
            ppfmt.warning(Emoji.ERROR, str(err))
            return None

        ip = parse_dns_response(ppfmt, body, query_id, qname, rdclass)
        return normalize_ip(ppfmt, ip_network, ip)


def new_cloudflare_doh() -> DNSOverHTTPS:
    """Cloudflare's resolvers, asked for ``whoami.cloudflare.`` in class CHAOS."""
    return DNSOverHTTPS(
        name="cloudflare.doh",
        params={
            IPNetwork.IP4: (
                "https://1.1.1.1/dns-query",
                "whoami.cloudflare.",
                dns.rdataclass.CH,
            ),
            IPNetwork.IP6: (
                "https://[2606:4700:4700::1111]/dns-query",
                "whoami.cloudflare.",
                dns.rdataclass.CH,
            ),
        },
    )