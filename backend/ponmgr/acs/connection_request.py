"""CWMP Connection Request client (ACS -> CPE "call home now")."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

logger = logging.getLogger(__name__)


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class ConnectionRequestConfig:
    timeout_seconds: float
    verify_tls: bool


class ConnectionRequestService:
    """Pokes a CPE's ConnectionRequestURL so it opens a session immediately."""

    def __init__(self, config: ConnectionRequestConfig):
        self.config = config

    @classmethod
    def from_app_config(cls, app_config: dict[str, Any]) -> "ConnectionRequestService":
        try:
            timeout_seconds = float(app_config.get("ACS_CONNECTION_REQUEST_TIMEOUT_SECONDS", 8.0))
        except (TypeError, ValueError):
            timeout_seconds = 8.0
        timeout_seconds = max(2.0, min(timeout_seconds, 60.0))
        return cls(
            ConnectionRequestConfig(
                timeout_seconds=timeout_seconds,
                verify_tls=_as_bool(app_config.get("ACS_CONNECTION_REQUEST_VERIFY_TLS"), default=True),
            )
        )

    def send(self, url: str | None, username: str = "", password: str = "") -> tuple[dict[str, Any], int]:
        target = str(url or "").strip()
        if not target:
            return {"success": False, "error": "Device has not reported a ConnectionRequestURL"}, 400

        try:
            response = requests.get(
                target,
                auth=HTTPDigestAuth(username, password) if username else None,
                timeout=self.config.timeout_seconds,
                verify=self.config.verify_tls,
            )
            challenge = response.headers.get("WWW-Authenticate", "")
            if response.status_code == 401 and username and challenge.lower().startswith("basic"):
                response = requests.get(
                    target,
                    auth=HTTPBasicAuth(username, password),
                    timeout=self.config.timeout_seconds,
                    verify=self.config.verify_tls,
                )
        except requests.Timeout:
            logger.warning("Connection request to %s timed out", target)
            return {"success": False, "error": "Connection request timed out", "error_kind": "timeout"}, 504
        except requests.RequestException as exc:
            logger.warning("Connection request to %s failed: %s", target, exc)
            return {"success": False, "error": str(exc), "error_kind": "connection"}, 502

        success = response.status_code in (200, 204)
        body = {"success": success, "status_code": response.status_code}
        if not success:
            body["error"] = f"CPE answered HTTP {response.status_code}"
            if response.status_code == 401:
                body["error_kind"] = "authentication"
        return body, 200 if success else 502
