"""zabbix_deregister/lambda_function.py

Takes terminated Auto Scaling instances out of Zabbix monitoring.

Flow:
  Auto Scaling "EC2 Instance Terminate Successful"
  → EventBridge rule → SNS topic (or SQS queue) → this Lambda
  → decode envelope → parse lifecycle detail → Zabbix host.get by inventory alias
  → host.update (disable + rename with ZDTP_ marker) or host.delete

Return values:
  "<instance id>"          host disabled or deleted
  "host not found"         no Zabbix host carries the instance alias
  "host already updated"   host already bears the purge marker (redelivery)

Any other failure is raised so the delivery mechanism can retry. The core
never retries on its own.
"""

from __future__ import annotations

import http.client
import json
import time
import urllib.request
from typing import Any, Dict, Optional

from config import Configuration, load_configuration, logger
from envelope import decode_envelope
from errors import AmbiguousMatchError, ResolutionError, ZabbixApiError
from inventory import InventoryResolver, TransitionDecision
from lifecycle_event import parse_lifecycle_event
from serialization import _emit_structured_observability
from transition import OUTCOME_ALREADY_UPDATED, HostTransitioner
from zabbix_client import ZabbixApiClient

OUTCOME_NOT_FOUND = "host not found"

# ---------------------------------------------------------------------------
# Cold-start configuration
# ---------------------------------------------------------------------------

_config: Optional[Configuration] = None


def _get_configuration() -> Configuration:
    global _config
    if _config is None:
        logger.info("Initializing environment")
        _config = load_configuration()
    return _config


def _log_outbound_ip(url: str) -> None:
    """Debug aid: log the public address Lambda egress traffic comes from."""
    try:
        with urllib.request.urlopen(url, timeout=5) as resp:
            body = resp.read().decode("utf-8", errors="replace").strip()
    except (http.client.HTTPException, OSError) as exc:
        logger.warning("Error getting internet ip address: %s", exc)
        return
    logger.info("Lambda outbound traffic from : %s", body)


# ---------------------------------------------------------------------------
# Core flow
# ---------------------------------------------------------------------------


def process_notification(envelope: Dict[str, Any], config: Configuration, client: ZabbixApiClient) -> str:
    event = parse_lifecycle_event(decode_envelope(envelope))
    logger.info(
        "Handling termination of %s (group=%s, detail-type=%s)",
        event.instance_id,
        event.autoscaling_group_name or "-",
        event.detail_type or "-",
    )

    logger.info("Authenticating to zabbix api")
    try:
        client.login(config.user, config.password)
    except ZabbixApiError as exc:
        logger.error("Error logging in to zabbix api: %s", exc)
        raise ResolutionError(f"zabbix login failed: {exc}") from exc

    record, decision = InventoryResolver(client, config.marker_prefix).resolve(event.instance_id)
    if decision is TransitionDecision.NOT_FOUND:
        return OUTCOME_NOT_FOUND
    if decision is TransitionDecision.AMBIGUOUS:
        raise AmbiguousMatchError(f"more than one hosts found for {event.instance_id}")
    if decision is TransitionDecision.ALREADY_TRANSITIONED:
        return OUTCOME_ALREADY_UPDATED

    outcome = HostTransitioner(client, config).transition(record, event)
    if outcome == OUTCOME_ALREADY_UPDATED:
        return outcome
    logger.info("Function finished successfully")
    return event.instance_id


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict[str, Any], context: Any) -> str:
    config = _get_configuration()
    if config.debug:
        logger.setLevel("DEBUG")
        logger.debug("Catching event from lambda parameter: %s", json.dumps(event, default=str))
        _log_outbound_ip(config.ip_echo_url)

    started = time.perf_counter()
    request_id = str(getattr(context, "aws_request_id", "") or "")
    client = ZabbixApiClient(config.url, timeout_seconds=config.timeout_seconds)
    try:
        result = process_notification(event, config, client)
    except Exception as exc:
        _emit_structured_observability(
            component="zabbix_deregister",
            event="deregister_host",
            latency_ms=int((time.perf_counter() - started) * 1000),
            error_code=exc.__class__.__name__,
            extra={"request_id": request_id, "delete_mode": config.delete_mode, "error": str(exc)},
        )
        raise

    _emit_structured_observability(
        component="zabbix_deregister",
        event="deregister_host",
        outcome=result,
        latency_ms=int((time.perf_counter() - started) * 1000),
        extra={"request_id": request_id, "delete_mode": config.delete_mode},
    )
    return result
