"""transition.py — Take a resolved Zabbix host out of active monitoring.

Two mutually exclusive policies, chosen once from Configuration:

  disable (default)  rename to <marker><name>, set status disabled, record
                     an audit annotation in the host description
  delete             host.delete

A host whose name already carries the marker is left untouched, so a
redelivered termination notification is a no-op. The check and the update
are two separate API calls; two concurrent deliveries for the same instance
can both pass the check. Zabbix has no conditional update to close that gap.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import Configuration, logger
from errors import TransitionError, ZabbixApiError
from inventory import HostRecord, is_marked
from lifecycle_event import InstanceTerminationEvent
from serialization import _audit_annotation, _now_z
from zabbix_client import ZabbixApiClient

__all__ = [
    "ACTION_DISABLE",
    "HOST_STATUS_DISABLED",
    "OUTCOME_ALREADY_UPDATED",
    "OUTCOME_DELETED",
    "OUTCOME_DISABLED",
    "TRIGGER_ACTION",
    "HostTransitioner",
    "HostUpdate",
    "plan_update",
]

HOST_STATUS_DISABLED = 1
ACTION_DISABLE = "disable"
TRIGGER_ACTION = "autoscaling:EC2_INSTANCE_TERMINATE"

OUTCOME_ALREADY_UPDATED = "host already updated"
OUTCOME_DELETED = "deleted"
OUTCOME_DISABLED = "disabled"


@dataclass(frozen=True)
class HostUpdate:
    host_id: str
    new_name: str
    annotation: str

    def to_params(self) -> Dict[str, Any]:
        return {
            "hostid": self.host_id,
            "host": self.new_name,
            "name": self.new_name,
            "description": self.annotation,
            "status": HOST_STATUS_DISABLED,
        }


def plan_update(
    record: HostRecord,
    marker_prefix: str,
    event: Optional[InstanceTerminationEvent] = None,
    now: Optional[str] = None,
) -> HostUpdate:
    extra: Dict[str, Any] = {}
    if event is not None:
        extra = {
            "instance_id": event.instance_id,
            "autoscaling_group": event.autoscaling_group_name,
            "cause": event.cause,
        }
    annotation = _audit_annotation(
        transitioned_at=now or _now_z(),
        action=ACTION_DISABLE,
        trigger=TRIGGER_ACTION,
        previous_host=record.host_name,
        previous_name=record.visible_name,
        extra=extra,
    )
    return HostUpdate(
        host_id=record.host_id,
        new_name=f"{marker_prefix}{record.host_name}",
        annotation=annotation,
    )


class HostTransitioner:
    def __init__(self, client: ZabbixApiClient, config: Configuration):
        self.client = client
        self.delete_mode = config.delete_mode
        self.marker_prefix = config.marker_prefix

    def transition(self, record: HostRecord, event: Optional[InstanceTerminationEvent] = None) -> str:
        if is_marked(record.host_name, self.marker_prefix):
            logger.info("Zabbix host %s already updated, do nothing", record.host_id)
            return OUTCOME_ALREADY_UPDATED
        if self.delete_mode:
            return self._delete(record)
        return self._disable(record, event)

    def _delete(self, record: HostRecord) -> str:
        logger.info("Deleting zabbix host %s", record.host_id)
        try:
            self.client.delete_hosts([record.host_id])
        except ZabbixApiError as exc:
            logger.error("Error deleting host from zabbix api: %s", exc)
            raise TransitionError(f"host.delete failed for {record.host_id}: {exc}") from exc
        return OUTCOME_DELETED

    def _disable(self, record: HostRecord, event: Optional[InstanceTerminationEvent]) -> str:
        update = plan_update(record, self.marker_prefix, event)
        logger.info("Disabling zabbix host %s, renaming to %s", record.host_id, update.new_name)
        try:
            self.client.update_host(update.to_params())
        except ZabbixApiError as exc:
            logger.error("Error disabling host from zabbix api: %s", exc)
            raise TransitionError(f"host.update failed for {record.host_id}: {exc}") from exc
        return OUTCOME_DISABLED
