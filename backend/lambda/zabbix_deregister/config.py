"""config.py — Environment configuration, constants, logging.

Settings are read once per container by ``lambda_function._get_configuration``
and passed explicitly into the core; nothing below mutates after load.

Environment variables:
  ZABBIX_URL              Zabbix JSON-RPC endpoint (required)
  ZABBIX_USER             API user (required; KMS ciphertext when KMS_ENCRYPTED)
  ZABBIX_PASS             API password (required; KMS ciphertext when KMS_ENCRYPTED)
  DELETING_HOST           Delete the host instead of disabling it (default: false)
  DEBUG                   Verbose logging (default: false)
  KMS_ENCRYPTED           Decrypt ZABBIX_USER / ZABBIX_PASS with KMS (default: false)
  ZABBIX_TIMEOUT_SECONDS  HTTP timeout for Zabbix API calls (default: 10)
  HOST_MARKER_PREFIX      Prefix marking a host as pending purge (default: ZDTP_)
  IP_ECHO_URL             Outbound IP echo service used in debug mode (default: http://ip.clara.net)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from errors import ConfigurationError

__all__ = [
    "DEFAULT_IP_ECHO_URL",
    "DEFAULT_MARKER_PREFIX",
    "DEFAULT_TIMEOUT_SECONDS",
    "KMS_REGION",
    "Configuration",
    "load_configuration",
    "logger",
]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_MARKER_PREFIX = "ZDTP_"
DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_IP_ECHO_URL = "http://ip.clara.net"
KMS_REGION = os.environ.get("KMS_REGION", os.environ.get("AWS_REGION", "us-west-2"))

_TRUE_VALUES = {"1", "t", "true", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "no", "off"}


@dataclass(frozen=True)
class Configuration:
    url: str
    user: str
    password: str
    delete_mode: bool = False
    debug: bool = False
    kms_encrypted: bool = False
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    marker_prefix: str = DEFAULT_MARKER_PREFIX
    ip_echo_url: str = DEFAULT_IP_ECHO_URL

    def __repr__(self) -> str:
        return (
            f"Configuration(url={self.url!r}, user={self.user!r}, password='***', "
            f"delete_mode={self.delete_mode}, debug={self.debug}, "
            f"kms_encrypted={self.kms_encrypted}, timeout_seconds={self.timeout_seconds}, "
            f"marker_prefix={self.marker_prefix!r})"
        )


def _parse_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = str(environ.get(name, "") or "").strip()
    if not raw:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = str(environ.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _required(environ: Mapping[str, str], name: str, label: str) -> str:
    value = str(environ.get(name, "") or "").strip()
    if not value:
        logger.error("Error parsing %s environment variable not set", name)
        raise ConfigurationError(f"zabbix {label} not set")
    return value


def load_configuration(
    environ: Optional[Mapping[str, str]] = None,
    *,
    decrypt: Optional[Callable[[str], str]] = None,
) -> Configuration:
    """Build a Configuration from ``environ`` (defaults to ``os.environ``).

    When KMS_ENCRYPTED is set, user and password are passed through
    ``decrypt`` (defaults to the KMS helper in aws_clients).
    """
    env = os.environ if environ is None else environ

    url = _required(env, "ZABBIX_URL", "url")
    user = _required(env, "ZABBIX_USER", "user")
    password = _required(env, "ZABBIX_PASS", "password")

    kms_encrypted = _parse_bool(env, "KMS_ENCRYPTED")
    if kms_encrypted:
        if decrypt is None:
            from aws_clients import _decrypt_env_value as decrypt
        user = decrypt(user)
        password = decrypt(password)
        if not user or not password:
            raise ConfigurationError("decrypted zabbix credentials are empty")

    marker_prefix = str(env.get("HOST_MARKER_PREFIX", "") or "").strip() or DEFAULT_MARKER_PREFIX

    return Configuration(
        url=url,
        user=user,
        password=password,
        delete_mode=_parse_bool(env, "DELETING_HOST"),
        debug=_parse_bool(env, "DEBUG"),
        kms_encrypted=kms_encrypted,
        timeout_seconds=_parse_positive_int(env, "ZABBIX_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        marker_prefix=marker_prefix,
        ip_echo_url=str(env.get("IP_ECHO_URL", "") or "").strip() or DEFAULT_IP_ECHO_URL,
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)
