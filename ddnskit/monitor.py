"""Monitors that are told when updating starts, succeeds or fails."""

from __future__ import annotations

import base64
import http.client
import ipaddress
import json
import posixpath
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.error import HTTPError
from urllib.parse import SplitResult, unquote, urlsplit, urlunsplit
from urllib.request import ProxyHandler, Request, build_opener

from ddnskit.pp import PP, Emoji

HEALTHCHECKS_DEFAULT_TIMEOUT = 10.0
HEALTHCHECKS_DEFAULT_MAX_RETRIES = 5

_DEFAULT_OPENER = build_opener()
_DIRECT_OPENER = build_opener(ProxyHandler({}))
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class Monitor(ABC):
    """A service that is notified about the state of the updater."""

    @abstractmethod
    def describe_service(self) -> str:
        """Name of the monitoring service."""

    @abstractmethod
    def success(self, ppfmt: PP) -> bool:
        """Report a successful update."""

    @abstractmethod
    def start(self, ppfmt: PP) -> bool:
        """Report that the updater has started."""

    @abstractmethod
    def failure(self, ppfmt: PP) -> bool:
        """Report a failed update."""

    @abstractmethod
    def exit_status(self, ppfmt: PP, code: int) -> bool:
        """Report the exit status of the updater."""


def _is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _open(request: Request, timeout: float):
    host = urlsplit(request.full_url).hostname or ""
    opener = _DIRECT_OPENER if _is_loopback(host) else _DEFAULT_OPENER
    return opener.open(request, timeout=timeout)


def _parse_url(raw_url: str) -> SplitResult:
    if _CONTROL_CHARS.search(raw_url):
        raise ValueError("invalid control character in URL")
    if raw_url.startswith(":"):
        raise ValueError("missing protocol scheme")
    parsed = urlsplit(raw_url)
    _ = parsed.port  # raises ValueError on a malformed port
    return parsed


def _join_path(base: str, endpoint: str) -> str:
    parts = [part for part in (base, endpoint) if part]
    if not parts:
        return ""
    joined = posixpath.normpath(re.sub("/+", "/", "/".join(parts)))
    if endpoint.endswith("/") and not joined.endswith("/"):
        joined += "/"
    return joined


@dataclass
class HealthChecks(Monitor):
    """A Healthchecks.io check pinged over HTTP(S)."""

    base_url: SplitResult
    timeout: float = HEALTHCHECKS_DEFAULT_TIMEOUT
    max_retries: int = HEALTHCHECKS_DEFAULT_MAX_RETRIES
    retry_delay: float = 1.0

    def describe_service(self) -> str:
        return "Healthchecks.io"

    def _request(self, endpoint: str) -> Request:
        base = self.base_url
        netloc = base.netloc.rpartition("@")[2]
        url = urlunsplit((base.scheme, netloc, _join_path(base.path, endpoint), base.query, ""))
        headers = {}
        if base.username is not None:
            credentials = f"{unquote(base.username)}:{unquote(base.password or '')}"
            encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {encoded}"
        return Request(url, method="GET", headers=headers)

    def _ping(self, ppfmt: PP, endpoint: str) -> bool:
        description = json.dumps(endpoint, ensure_ascii=False) if endpoint else "default (root)"

        try:
            request = self._request(endpoint)
        except ValueError as err:
            ppfmt.warning(
                Emoji.IMPOSSIBLE,
                f"Failed to prepare HTTP(S) request to the {description} "
                f"endpoint of Healthchecks.io: {err}",
            )
            return False

        for attempt in range(self.max_retries):
            if attempt > 0:
                time.sleep(self.retry_delay * 2 ** (attempt - 1))

            try:
                response = _open(request, self.timeout)
                status = response.status
            except HTTPError as err:
                response, status = err, err.code
            except (OSError, http.client.HTTPException, ValueError) as err:
                ppfmt.warning(
                    Emoji.ERROR,
                    f"Failed to send HTTP(S) request to the {description} "
                    f"endpoint of Healthchecks.io: {err}",
                )
                ppfmt.info(Emoji.REPEAT_ONCE, "Trying again . . .")
                continue

            try:
                with response:
                    body = response.read()
            except (OSError, http.client.HTTPException) as err:
                ppfmt.warning(
                    Emoji.ERROR,
                    f"Failed to read HTTP(S) response from the {description} "
                    f"endpoint of Healthchecks.io: {err}",
                )
                ppfmt.info(Emoji.REPEAT_ONCE, "Trying again . . .")
                continue

            text = body.decode("utf-8", errors="replace").strip()
            if text != "OK":
                ppfmt.warning(
                    Emoji.ERROR,
                    f"Failed to ping the {description} endpoint of Healthchecks.io; "
                    f"got response code: {status} {text}",
                )
                return False

            ppfmt.info(
                Emoji.NOTIFICATION,
                f"Successfully pinged the {description} endpoint of Healthchecks.io",
            )
            return True

        ppfmt.warning(
            Emoji.ERROR,
            f"Failed to send HTTP(S) request to the {description} endpoint of "
            f"Healthchecks.io in {self.max_retries} time(s)",
        )
        return False

    def success(self, ppfmt: PP) -> bool:
        return self._ping(ppfmt, "")

    def start(self, ppfmt: PP) -> bool:
        return self._ping(ppfmt, "/start")

    def failure(self, ppfmt: PP) -> bool:
        return self._ping(ppfmt, "/fail")

    def exit_status(self, ppfmt: PP, code: int) -> bool:
        if not 0 <= code <= 255:
            ppfmt.error(Emoji.IMPOSSIBLE, f"Exit code ({code}) not within the range 0-255")
            return False
        return self._ping(ppfmt, f"/{code}")


def new_health_checks(
    ppfmt: PP, raw_url: str, *, max_retries: int = HEALTHCHECKS_DEFAULT_MAX_RETRIES
) -> HealthChecks | None:
    """Create a Healthchecks.io monitor, or report the problem and return ``None``.

    Raises ValueError if ``max_retries`` is not positive.
    """
    if max_retries <= 0:
        raise ValueError("max_retries must be positive")

    try:
        parsed = _parse_url(raw_url)
    except ValueError:
        ppfmt.error(Emoji.USER_ERROR, "Failed to parse the Healthchecks.io URL (redacted)")
        return None

    if not (parsed.scheme and parsed.netloc.rpartition("@")[2]):
        ppfmt.error(
            Emoji.USER_ERROR,
            "The Healthchecks.io URL (redacted) does not look like a valid URL.",
        )
        ppfmt.error(
            Emoji.USER_ERROR,
            'A valid example is "https://hc-ping.com/01234567-0123-0123-0123-0123456789abc".',
        )
        return None

    return HealthChecks(base_url=parsed, max_retries=max_retries)


def success_all(ppfmt: PP, monitors: Iterable[Monitor]) -> bool:
    """Report success to every monitor; true if all of them succeeded."""
    return all([m.success(ppfmt) for m in monitors])


def start_all(ppfmt: PP, monitors: Iterable[Monitor]) -> bool:
    """Report the start to every monitor; true if all of them succeeded."""
    return all([m.start(ppfmt) for m in monitors])


def failure_all(ppfmt: PP, monitors: Iterable[Monitor]) -> bool:
    """Report failure to every monitor; true if all of them succeeded."""
    return all([m.failure(ppfmt) for m in monitors])


def exit_status_all(ppfmt: PP, monitors: Iterable[Monitor], code: int) -> bool:
    """Report an exit status to every monitor; true if all of them succeeded."""
    return all([m.exit_status(ppfmt, code) for m in monitors])