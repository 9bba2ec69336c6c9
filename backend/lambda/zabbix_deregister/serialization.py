"""serialization.py — Timestamps, audit annotations, structured observability.
"""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Optional

from config import logger

__all__ = [
    "_audit_annotation",
    "_emit_structured_observability",
    "_now_z",
]


def _now_z() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _audit_annotation(
    *,
    transitioned_at: str,
    action: str,
    trigger: str,
    previous_host: str,
    previous_name: str = "",
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """Render the host description written alongside a transition."""
    payload: Dict[str, Any] = {
        "transitioned_at": transitioned_at,
        "action": action,
        "trigger": trigger,
        "previous_host": previous_host,
        "previous_name": previous_name,
    }
    if extra:
        payload.update({k: v for k, v in extra.items() if v})
    return json.dumps(payload, sort_keys=True)


def _emit_structured_observability(
    *,
    component: str,
    event: str,
    outcome: Optional[str] = None,
    latency_ms: Optional[int] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": component,
        "event": event,
        "outcome": str(outcome or ""),
        "latency_ms": int(max(0, latency_ms or 0)),
        "error_code": str(error_code or ""),
    }
    if extra:
        payload.update(extra)
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True, default=str))
