"""lifecycle_event.py — Canonical instance termination event."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from envelope import LifecyclePayload
from errors import ParseError

__all__ = [
    "InstanceTerminationEvent",
    "parse_lifecycle_event",
]


@dataclass(frozen=True)
class InstanceTerminationEvent:
    instance_id: str
    autoscaling_group_name: str = ""
    cause: str = ""
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    status_code: str = ""
    source: str = ""
    detail_type: str = ""
    account: str = ""
    region: str = ""
    time: str = ""


def _text(mapping: Dict[str, Any], key: str) -> str:
    value = mapping.get(key)
    return value if isinstance(value, str) else ""


def parse_lifecycle_event(payload: LifecyclePayload) -> InstanceTerminationEvent:
    """Build the canonical event; unknown fields are ignored."""
    detail = payload.detail
    instance_id = detail.get("EC2InstanceId")
    if not isinstance(instance_id, str) or not instance_id.strip():
        raise ParseError("lifecycle payload is missing EC2InstanceId")

    wrapper = payload.wrapper
    return InstanceTerminationEvent(
        instance_id=instance_id.strip(),
        autoscaling_group_name=_text(detail, "AutoScalingGroupName"),
        cause=_text(detail, "Cause"),
        description=_text(detail, "Description"),
        start_time=_text(detail, "StartTime"),
        end_time=_text(detail, "EndTime"),
        status_code=_text(detail, "StatusCode"),
        source=_text(wrapper, "source"),
        detail_type=_text(wrapper, "detail-type") or _text(detail, "Event"),
        account=_text(wrapper, "account"),
        region=_text(wrapper, "region"),
        time=_text(wrapper, "time"),
    )
