"""inventory.py — Resolve an EC2 instance id to its Zabbix host.

Hosts are matched on the inventory ``alias`` field, which the provisioning
side sets to the instance id. Exactly one match is expected; more than one
is a data-integrity problem upstream and is never guessed at.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from config import DEFAULT_MARKER_PREFIX, logger
from errors import ResolutionError, ZabbixApiError
from zabbix_client import ZabbixApiClient

__all__ = [
    "HostRecord",
    "InventoryResolver",
    "TransitionDecision",
    "is_marked",
]


class TransitionDecision(enum.Enum):
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    ALREADY_TRANSITIONED = "already_transitioned"
    ACTIONABLE = "actionable"


@dataclass(frozen=True)
class HostRecord:
    host_id: str
    host_name: str
    inventory_alias: str = ""
    visible_name: str = ""

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "HostRecord":
        host_id = str(row.get("hostid") or "").strip()
        if not host_id:
            raise ResolutionError("host.get returned a host without hostid")
        inventory = row.get("inventory")
        # Zabbix returns an empty list instead of an object when inventory is disabled.
        alias = inventory.get("alias", "") if isinstance(inventory, dict) else ""
        return cls(
            host_id=host_id,
            host_name=str(row.get("host") or ""),
            inventory_alias=str(alias or "").strip(),
            visible_name=str(row.get("name") or ""),
        )


def is_marked(host_name: str, marker_prefix: str = DEFAULT_MARKER_PREFIX) -> bool:
    return bool(marker_prefix) and host_name.startswith(marker_prefix)


class InventoryResolver:
    def __init__(self, client: ZabbixApiClient, marker_prefix: str = DEFAULT_MARKER_PREFIX):
        self.client = client
        self.marker_prefix = marker_prefix

    @staticmethod
    def query_params(instance_id: str) -> Dict[str, Any]:
        return {
            "output": ["hostid", "host", "name"],
            "selectInventory": ["alias"],
            "searchInventory": {"alias": instance_id},
        }

    def resolve(self, instance_id: str) -> Tuple[Optional[HostRecord], TransitionDecision]:
        logger.info("Getting zabbix host corresponding to instanceid %s", instance_id)
        try:
            rows = self.client.get_hosts(self.query_params(instance_id))
        except ZabbixApiError as exc:
            logger.error("Error getting hosts from zabbix api: %s", exc)
            raise ResolutionError(f"host lookup failed for {instance_id}: {exc}") from exc

        # searchInventory is a substring match: i-123 also finds i-1234.
        records = [HostRecord.from_api(row) for row in rows]
        matches = [record for record in records if record.inventory_alias == instance_id]
        if len(matches) != len(records):
            logger.debug(
                "Ignoring partial alias matches for %s: %s",
                instance_id,
                ", ".join(f"{r.host_id}={r.inventory_alias}" for r in records if r not in matches),
            )

        if not matches:
            logger.info("Zabbix host not found for instanceid %s, do nothing", instance_id)
            return None, TransitionDecision.NOT_FOUND
        if len(matches) > 1:
            logger.error(
                "More than one host found for instanceid %s (hostids: %s), do nothing",
                instance_id,
                ", ".join(record.host_id for record in matches),
            )
            return None, TransitionDecision.AMBIGUOUS

        record = matches[0]
        if is_marked(record.host_name, self.marker_prefix):
            logger.info("Zabbix host %s already marked as %s", record.host_id, record.host_name)
            return record, TransitionDecision.ALREADY_TRANSITIONED
        return record, TransitionDecision.ACTIONABLE
