"""Bringing the DNS records of one domain in line with a detected address."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

from ddnskit.ipnet import IPAddress, IPNetwork
from ddnskit.pp import PP, Emoji

TTL_AUTO = 1


class Handle(ABC):
    """Access to the records of a DNS service."""

    @abstractmethod
    def list_records(
        self, ppfmt: PP, domain: str, ip_network: IPNetwork
    ) -> Mapping[str, IPAddress | None] | None:
        """Map record IDs to their addresses, or return ``None`` on failure."""

    @abstractmethod
    def update_record(
        self, ppfmt: PP, domain: str, ip_network: IPNetwork, record_id: str, ip: IPAddress
    ) -> bool:
        """Point an existing record at ``ip``."""

    @abstractmethod
    def delete_record(self, ppfmt: PP, domain: str, ip_network: IPNetwork, record_id: str) -> bool:
        """Delete a record."""

    @abstractmethod
    def create_record(
        self,
        ppfmt: PP,
        domain: str,
        ip_network: IPNetwork,
        ip: IPAddress,
        ttl: int,
        proxied: bool,
    ) -> str | None:
        """Create a record and return its ID, or ``None`` on failure."""


def partition_records(
    records: Mapping[str, IPAddress | None], target: IPAddress | None
) -> tuple[list[str], list[str]]:
    """Split record IDs into those already at ``target`` and the rest, each sorted.

    With no target, every record is in the second list.
    """
    if target is None:
        return [], sorted(records)
    matched = sorted(rid for rid, ip in records.items() if ip == target)
    unmatched = sorted(rid for rid, ip in records.items() if ip != target)
    return matched, unmatched


@dataclass
class Setter:
    """Updates the records of a domain through a :class:`Handle`."""

    handle: Handle

    def set(
        self,
        ppfmt: PP,
        domain: str,
        ip_network: IPNetwork,
        ip: IPAddress | None,
        ttl: int,
        proxied: bool,
    ) -> bool:
        """Make ``domain`` hold exactly one record for ``ip`` in ``ip_network``.

        Existing records are reused where possible so that their TTL and
        proxy settings survive. With ``ip`` of ``None`` every record is
        deleted. Returns whether the records ended up consistent.
        """
        record_type = ip_network.record_type()
        described = json.dumps(domain, ensure_ascii=False)
        handle = self.handle

        records = handle.list_records(ppfmt, domain, ip_network)
        if records is None:
            ppfmt.error(
                Emoji.ERROR,
                f"Failed to retrieve the current {record_type} records of {described}",
            )
            return False

        matched, stale = partition_records(records, ip)

        # With no address, "up to date" means every record is to be deleted.
        up_to_date = ip is None
        duplicates: list[str] = []
        if not up_to_date and matched:
            up_to_date = True
            duplicates = matched[1:]

        if up_to_date and not duplicates and not stale:
            ppfmt.info(
                Emoji.ALREADY_DONE,
                f"The {record_type} records of {described} are already up to date",
            )
            return True

        # Stale records still present; one that cannot be deleted keeps counting.
        undeleted = len(stale)

        if not up_to_date:
            pending = iter(stale)
            for record_id in pending:
                if handle.update_record(ppfmt, domain, ip_network, record_id, ip):
                    ppfmt.notice(
                        Emoji.UPDATE_RECORD,
                        f"Updated a stale {record_type} record of {described} (ID: {record_id})",
                    )
                    up_to_date = True
                    undeleted -= 1
                    break
                if handle.delete_record(ppfmt, domain, ip_network, record_id):
                    ppfmt.notice(
                        Emoji.DEL_RECORD,
                        f"Deleted a stale {record_type} record of {described} (ID: {record_id})",
                    )
                    undeleted -= 1
            stale = list(pending)

        if not up_to_date:
            new_id = handle.create_record(ppfmt, domain, ip_network, ip, ttl, proxied)
            if new_id is not None:
                ppfmt.notice(
                    Emoji.ADD_RECORD,
                    f"Added a new {record_type} record of {described} (ID: {new_id})",
                )
                up_to_date = True

        for record_id in stale:
            if handle.delete_record(ppfmt, domain, ip_network, record_id):
                ppfmt.notice(
                    Emoji.DEL_RECORD,
                    f"Deleted a stale {record_type} record of {described} (ID: {record_id})",
                )
                undeleted -= 1

        for record_id in duplicates:
            if handle.delete_record(ppfmt, domain, ip_network, record_id):
                ppfmt.notice(
                    Emoji.DEL_RECORD,
                    f"Deleted a duplicate {record_type} record of {described} (ID: {record_id})",
                )

        if not up_to_date or undeleted > 0:
            ppfmt.error(
                Emoji.ERROR,
                f"Failed to complete updating of {record_type} records of {described}; "
                "records might be inconsistent",
            )
            return False

        return True