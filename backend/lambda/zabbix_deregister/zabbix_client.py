"""zabbix_client.py — Minimal synchronous Zabbix JSON-RPC 2.0 client.

Only the calls the deregistration flow needs: apiinfo.version, user.login,
host.get, host.update, host.delete. No retries; callers decide what a
failure means.

The login and auth style follow the server version, read once per client:

  < 5.4   user.login {"user": ...}      token in the "auth" body member
  >= 5.4  user.login {"username": ...}  token in the "auth" body member
  >= 6.4  user.login {"username": ...}  token as "Authorization: Bearer"
"""
from __future__ import annotations

import http.client
import itertools
import json
import ssl
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional, Sequence, Tuple

import certifi

from config import DEFAULT_TIMEOUT_SECONDS, logger
from errors import ZabbixApiError

__all__ = [
    "ZabbixApiClient",
]

_CERT_BUNDLE = certifi.where()
_UNAUTHENTICATED_METHODS = {"user.login", "apiinfo.version"}
_USERNAME_PARAM_SINCE = (5, 4)
_BEARER_AUTH_SINCE = (6, 4)


def _parse_version(raw: Any) -> Tuple[int, int]:
    parts = str(raw or "").strip().split(".")
    try:
        return int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except ValueError as exc:
        raise ZabbixApiError(f"unrecognized Zabbix API version: {raw!r}") from exc


class ZabbixApiClient:
    """JSON-RPC adapter for the Zabbix frontend API (``api_jsonrpc.php``)."""

    def __init__(self, url: str, *, timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.auth: Optional[str] = None
        self.version: Optional[Tuple[int, int]] = None
        self._ids = itertools.count(1)

    def _post(self, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        req = urllib.request.Request(
            url=self.url,
            method="POST",
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json-rpc", **(headers or {})},
        )
        context = ssl.create_default_context(cafile=_CERT_BUNDLE)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds, context=context) as resp:
                raw_body = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            raise ZabbixApiError(f"Zabbix API request failed (http_{exc.code})") from exc
        except urllib.error.URLError as exc:
            raise ZabbixApiError(f"Zabbix API unreachable: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ZabbixApiError("Zabbix API request timed out") from exc
        except (http.client.HTTPException, OSError) as exc:
            raise ZabbixApiError(f"Zabbix API transport error: {exc.__class__.__name__}: {exc}") from exc

        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError as exc:
            raise ZabbixApiError(f"Zabbix API returned invalid JSON: {raw_body[:200]}") from exc
        if not isinstance(payload, dict):
            raise ZabbixApiError("Zabbix API returned a non-object response")
        return payload

    def _uses_bearer(self) -> bool:
        return self.version is not None and self.version >= _BEARER_AUTH_SINCE

    def call(self, method: str, params: Any) -> Any:
        body: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        headers: Dict[str, str] = {}
        if method not in _UNAUTHENTICATED_METHODS:
            if not self.auth:
                raise ZabbixApiError(f"{method} requires an authenticated session")
            if self._uses_bearer():
                headers["Authorization"] = f"Bearer {self.auth}"
            else:
                body["auth"] = self.auth

        logger.debug("Zabbix API call %s (id=%s)", method, body["id"])
        payload = self._post(body, headers)
        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                raise ZabbixApiError(
                    str(error.get("message") or f"{method} failed"),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise ZabbixApiError(f"{method} failed: {error}")
        if "result" not in payload:
            raise ZabbixApiError(f"{method} response has no result")
        return payload["result"]

    def api_version(self) -> Tuple[int, int]:
        if self.version is None:
            self.version = _parse_version(self.call("apiinfo.version", []))
            logger.debug("Zabbix API version %s.%s", *self.version)
        return self.version

    def login(self, user: str, password: str) -> str:
        self.auth = None
        user_param = "username" if self.api_version() >= _USERNAME_PARAM_SINCE else "user"
        token = self.call("user.login", {user_param: user, "password": password})
        if not isinstance(token, str) or not token:
            raise ZabbixApiError("user.login returned no session token")
        self.auth = token
        return token

    def get_hosts(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        result = self.call("host.get", params)
        if not isinstance(result, list):
            raise ZabbixApiError("host.get returned a non-list result")
        return [row for row in result if isinstance(row, dict)]

    def update_host(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self.call("host.update", params)

    def delete_hosts(self, host_ids: Sequence[str]) -> Dict[str, Any]:
        return self.call("host.delete", list(host_ids))
