"""Locations of the EdgeX core and support services and HTTP access to them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

BUILD_VERSION = ""
BUILD_TIME = ""

API_PREFIX = "/api/v2"
REQUEST_TIMEOUT = 30.0

CORE_METADATA_SERVICE_KEY = "core-metadata"
CORE_DATA_SERVICE_KEY = "core-data"
CORE_COMMAND_SERVICE_KEY = "core-command"
SUPPORT_SCHEDULER_SERVICE_KEY = "support-scheduler"
SUPPORT_NOTIFICATIONS_SERVICE_KEY = "support-notifications"


class EdgexError(Exception):
    """A request to an EdgeX service failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text.strip() or response.reason or ""


@dataclass(frozen=True)
class Service:
    """Hostname and port of an EdgeX microservice."""

    host: str
    port: int

    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Send a request to the service's v2 API and return the decoded JSON reply."""
        url = f"{self.base_url()}{API_PREFIX}{path}"
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=body,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise EdgexError(f"failed to send a http request to {url}: {exc}") from exc

        if not response.ok:
            raise EdgexError(
                f"request failed with status code {response.status_code}: "
                f"{_error_detail(response)}",
                response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise EdgexError(f"invalid JSON in response from {url}: {exc}") from exc


_CORE_SERVICES: dict[str, Service] = {
    CORE_METADATA_SERVICE_KEY: Service("localhost", 59881),
    CORE_DATA_SERVICE_KEY: Service("localhost", 59880),
    CORE_COMMAND_SERVICE_KEY: Service("localhost", 59882),
    SUPPORT_SCHEDULER_SERVICE_KEY: Service("localhost", 59861),
    SUPPORT_NOTIFICATIONS_SERVICE_KEY: Service("localhost", 59860),
}


def core_service(key: str) -> Service:
    """Return the configured location of the named core or support service."""
    try:
        return _CORE_SERVICES[key]
    except KeyError:
        raise KeyError(f"unknown service {key!r}") from None


def core_services() -> dict[str, Service]:
    """Return all configured core and support services, keyed by service key."""
    return dict(_CORE_SERVICES)