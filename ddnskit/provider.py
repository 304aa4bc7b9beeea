"""Providers that detect the public IP address of this machine."""

from __future__ import annotations

import http.client
import ipaddress
import json
import re
import socket
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from urllib.error import HTTPError
from urllib.parse import urlsplit
from urllib.request import ProxyHandler, Request, build_opener

from ddnskit.ipnet import IPAddress, IPNetwork
from ddnskit.pp import PP, Emoji

_REQUEST_TIMEOUT = 10.0
_DEFAULT_OPENER = build_opener()
_DIRECT_OPENER = build_opener(ProxyHandler({}))


class _FetchError(OSError):
    """An HTTP(S) exchange failed; the message is ready to report."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class Provider(ABC):
    """A way to detect the IP address of this machine."""

    name: str

    @abstractmethod
    def get_ip(self, ppfmt: PP, ip_network: IPNetwork) -> IPAddress | None:
        """Detect the address in ``ip_network``, or return ``None``."""


def provider_name(provider: Provider | None) -> str:
    """Name of ``provider``, or ``none`` when there is no provider."""
    return "none" if provider is None else provider.name


def normalize_ip(ppfmt: PP, ip_network: IPNetwork, ip: IPAddress | None) -> IPAddress | None:
    """Bring ``ip`` into the form of ``ip_network``, reporting a mismatch."""
    if ip is None:
        return None
    normalized = ip_network.normalize_ip(ip)
    if normalized is None:
        ppfmt.warning(
            Emoji.ERROR, f"{_quote(str(ip))} is not a valid {ip_network.describe()} address"
        )
    return normalized


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def fetch(
    url: str,
    method: str = "GET",
    content_type: str = "",
    accept: str = "",
    body: bytes | None = None,
) -> bytes:
    """Send one HTTP(S) request and return the response body.

    The body is returned whatever the status code. Raises OSError with a
    message ready to report when the request cannot be sent or read.
    """
    headers = {}
    if content_type:
        headers["Content-Type"] = content_type
    if accept:
        headers["Accept"] = accept

    try:
        request = Request(url, data=body, method=method, headers=headers)
        host = urlsplit(url).hostname or ""
        opener = _DIRECT_OPENER if _is_loopback(host) else _DEFAULT_OPENER
        response = opener.open(request, timeout=_REQUEST_TIMEOUT)
    except HTTPError as err:
        response = err
    except (OSError, http.client.HTTPException, ValueError) as err:
        raise _FetchError(f"Failed to send HTTP(S) request to {_quote(url)}: {err}") from err

    try:
        with response:
            return response.read()
    except (OSError, http.client.HTTPException) as err:
        raise _FetchError(f"Failed to read HTTP(S) response from {_quote(url)}: {err}") from err


def _detect(
    ppfmt: PP, url: str, extract: Callable[[PP, bytes], IPAddress | None]
) -> IPAddress | None:
    try:
        body = fetch(url)
    except _FetchError as err:
        ppfmt.warning(Emoji.ERROR, str(err))
        return None
    return extract(ppfmt, body)


def _unhandled(ppfmt: PP, ip_network: IPNetwork) -> None:
    ppfmt.warning(Emoji.IMPOSSIBLE, f"Unhandled IP network: {ip_network.describe()}")


@dataclass
class HTTP(Provider):
    """Reads a bare IP address from the body of an HTTP(S) response."""

    name: str
    urls: Mapping[IPNetwork, str] = field(default_factory=dict)

    def get_ip(self, ppfmt: PP, ip_network: IPNetwork) -> IPAddress | None:
        url = self.urls.get(ip_network)
        if url is None:
            _unhandled(ppfmt, ip_network)
            return None

        def extract(_ppfmt: PP, body: bytes) -> IPAddress | None:
            text = body.decode("utf-8", errors="replace")
            try:
                return ipaddress.ip_address(text)
            except ValueError:
                ppfmt.error(
                    Emoji.IMPOSSIBLE,
                    f"Failed to parse the IP address in the response of {_quote(url)}: {text}",
                )
                return None

        return normalize_ip(ppfmt, ip_network, _detect(ppfmt, url, extract))


@dataclass
class CloudflareTrace(Provider):
    """Reads the address from a ``field=value`` line of a trace page.

    ``params`` maps each network to a ``(url, field)`` pair.
    """

    name: str
    params: Mapping[IPNetwork, tuple[str, str]] = field(default_factory=dict)

    def get_ip(self, ppfmt: PP, ip_network: IPNetwork) -> IPAddress | None:
        param = self.params.get(ip_network)
        if param is None:
            _unhandled(ppfmt, ip_network)
            return None
        url, key = param
        pattern = re.compile(rf"^{re.escape(key)}=(.*)$", re.MULTILINE)

        def extract(ppfmt: PP, body: bytes) -> IPAddress | None:
            text = body.decode("utf-8", errors="replace")
            match = pattern.search(text)
            if match is None:
                ppfmt.warning(
                    Emoji.ERROR,
                    f"Failed to find the IP address in the response of {_quote(url)}: {text}",
                )
                return None
            ip_string = match.group(1)
            try:
                return ipaddress.ip_address(ip_string)
            except ValueError:
                ppfmt.warning(
                    Emoji.ERROR,
                    f"Failed to parse the IP address in the response of {_quote(url)}: {ip_string}",
                )
                return None

        return normalize_ip(ppfmt, ip_network, _detect(ppfmt, url, extract))


def _split_host_port(address: str) -> tuple[str, int]:
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {address!r}")
        host, rest = address[1:end], address[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {address!r}")
        port = rest[1:]
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address {address!r}")
        if ":" in host:
            raise ValueError(f"too many colons in address {address!r}")
    if not port.isdigit():
        raise ValueError(f"invalid port {port!r}")
    return host, int(port)


@dataclass
class Local(Provider):
    """Uses the local address the system picks to reach a remote UDP address."""

    name: str
    remote_udp_addrs: Mapping[IPNetwork, str] = field(default_factory=dict)

    def get_ip(self, ppfmt: PP, ip_network: IPNetwork) -> IPAddress | None:
        remote = self.remote_udp_addrs.get(ip_network)
        if remote is None:
            _unhandled(ppfmt, ip_network)
            return None

        family = socket.AF_INET if ip_network is IPNetwork.IP4 else socket.AF_INET6
        try:
            host, port = _split_host_port(remote)
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.connect((host, port))
                local = sock.getsockname()[0]
            ip = ipaddress.ip_address(local)
        except (OSError, ValueError, OverflowError) as err:
            ppfmt.warning(
                Emoji.ERROR, f"Failed to detect a local {ip_network.describe()} address: {err}"
            )
            return None

        return normalize_ip(ppfmt, ip_network, ip)


def new_ipify() -> HTTP:
    """The ipify service."""
    return HTTP(
        name="ipify",
        urls={
            IPNetwork.IP4: "https://api4.ipify.org",
            IPNetwork.IP6: "https://api6.ipify.org",
        },
    )


def new_cloudflare_trace() -> CloudflareTrace:
    """Cloudflare's trace page."""
    return CloudflareTrace(
        name="cloudflare.trace",
        params={
            IPNetwork.IP4: ("https://1.1.1.1/cdn-cgi/trace", "ip"),
            IPNetwork.IP6: ("https://[2606:4700:4700::1111]/cdn-cgi/trace", "ip"),
        },
    )


def new_local() -> Local:
    """The local address used to reach Cloudflare's resolvers."""
    return Local(
        name="local",
        remote_udp_addrs={
            IPNetwork.IP4: "1.1.1.1:443",
            IPNetwork.IP6: "[2606:4700:4700::1111]:443",
        },
    )