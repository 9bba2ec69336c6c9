"""envelope.py — Unwrap the delivery envelope to the lifecycle payload.

Accepted envelopes (Lambda event, exactly one record):

    {"Records": [{"EventSource": "aws:sns", "Sns": {"Message": "<json>"}}]}
    {"Records": [{"eventSource": "aws:sqs", "body": "<json>"}]}

The JSON message is one of two shapes:

    nested (EventBridge rule -> SNS), canonical:
        {"source": "aws.autoscaling", "detail-type": "...", "detail": {...}}
    flat (Auto Scaling notification -> SNS):
        {"EC2InstanceId": "i-...", "AutoScalingGroupName": "...", ...}
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from config import logger
from errors import ParseError

__all__ = [
    "SHAPE_EVENTBRIDGE",
    "SHAPE_FLAT",
    "LifecyclePayload",
    "decode_envelope",
]

SHAPE_EVENTBRIDGE = "eventbridge"
SHAPE_FLAT = "flat"


@dataclass(frozen=True)
class LifecyclePayload:
    shape: str
    detail: Dict[str, Any]
    wrapper: Dict[str, Any] = field(default_factory=dict)


def _record_message(record: Any) -> str:
    if not isinstance(record, dict):
        raise ParseError("envelope record is not an object")
    sns = record.get("Sns") or record.get("sns")
    if isinstance(sns, dict):
        message = sns.get("Message", sns.get("message"))
    elif "body" in record:
        message = record.get("body")
    else:
        raise ParseError("envelope record carries neither an SNS message nor an SQS body")
    if not isinstance(message, str) or not message.strip():
        raise ParseError("envelope record message is empty")
    return message


def _loads_object(raw: str, what: str) -> Dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"cannot unmarshal {what}: {exc}") from exc
    if not isinstance(value, dict):
        raise ParseError(f"{what} is not a JSON object")
    return value


def _classify(message: Dict[str, Any]) -> LifecyclePayload:
    if "detail" in message:
        detail = message.get("detail")
        if isinstance(detail, str):
            detail = _loads_object(detail, "event detail")
        if not isinstance(detail, dict):
            raise ParseError("event detail is not an object")
        wrapper = {k: v for k, v in message.items() if k != "detail"}
        return LifecyclePayload(shape=SHAPE_EVENTBRIDGE, detail=detail, wrapper=wrapper)
    if "EC2InstanceId" in message:
        return LifecyclePayload(shape=SHAPE_FLAT, detail=message)
    raise ParseError(
        "unrecognized lifecycle payload shape (keys: %s)" % ", ".join(sorted(message.keys())[:10])
    )


def decode_envelope(envelope: Any) -> LifecyclePayload:
    """Return the lifecycle payload carried by the single envelope record.

    SNS delivers one record per invocation; SQS triggers must use BatchSize=1.
    A batch is rejected whole so the queue redelivers every record.
    """
    if not isinstance(envelope, dict):
        raise ParseError("envelope is not an object")
    records = envelope.get("Records")
    if not isinstance(records, list) or not records:
        raise ParseError("envelope contains no records")
    if len(records) > 1:
        logger.error("Envelope carries %d records, expected exactly one", len(records))
        raise ParseError(f"envelope carries {len(records)} records, expected exactly one")

    message = _loads_object(_record_message(records[0]), "message from envelope record")
    payload = _classify(message)
    logger.debug("Decoded %s lifecycle payload: %s", payload.shape, json.dumps(payload.detail, default=str))
    return payload
