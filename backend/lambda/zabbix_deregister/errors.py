"""errors.py — Error taxonomy for the zabbix_deregister Lambda.

"host not found" and "host already updated" are successful no-op outcomes
and never raise.
"""
from __future__ import annotations

from typing import Any, Optional

__all__ = [
    "AmbiguousMatchError",
    "ConfigurationError",
    "ParseError",
    "ResolutionError",
    "TransitionError",
    "ZabbixApiError",
]


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or malformed."""


class ParseError(ValueError):
    """Raised when the delivery envelope or lifecycle payload cannot be decoded."""


class ResolutionError(RuntimeError):
    """Raised when the Zabbix login or host lookup fails."""


class AmbiguousMatchError(RuntimeError):
    """Raised when more than one Zabbix host carries the instance alias."""


class TransitionError(RuntimeError):
    """Raised when the host.update / host.delete call fails."""


class ZabbixApiError(RuntimeError):
    """Transport or JSON-RPC level failure talking to the Zabbix API."""

    def __init__(self, message: str, *, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        base = super().__str__()
        if self.code is None:
            return base
        if self.data:
            return f"{base} (code {self.code}): {self.data}"
        return f"{base} (code {self.code})"
