"""
HTTP transport for the CapRover control API.

Wraps a requests.Session, unpacks the {status, description, data}
envelope and translates transport failures into caprover_api errors.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .config import ClientConfig
from .errors import RemoteOperationError, RemoteTimeoutError, TransientNetworkError
from .status import OK_STATUSES

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v2/login"

# Gateway statuses worth another attempt
TRANSIENT_HTTP_STATUSES = {502, 503, 504}


@dataclass
class ApiResponse:
    """Unpacked CapRover response envelope."""
    status: int
    description: str
    data: Any = None


def check_errors(payload: Any) -> ApiResponse:
    """
    Validate a response envelope.

    Args:
        payload: Decoded JSON body

    Returns:
        ApiResponse for OK / partially OK statuses

    Raises:
        RemoteOperationError: For any other status, or a body that is not an envelope
    """
    if not isinstance(payload, dict):
        raise RemoteOperationError(f"Unexpected response body: {payload!r}")
    status = payload.get("status")
    description = payload.get("description", "")
    if status not in OK_STATUSES:
        logger.error(description)
        raise RemoteOperationError(description or f"Unexpected status {status}", status)
    logger.debug(description)
    return ApiResponse(status=status, description=description, data=payload.get("data"))


class CaproverTransport:
    """Authenticated session against one CapRover instance."""

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.base_url
        self.session = session or requests.Session()
        self.session.headers.update({
            "accept": "application/json, text/plain, */*",
            "x-namespace": config.namespace,
            "content-type": "application/json;charset=UTF-8",
        })

    def login(self) -> None:
        """Exchange the password for an auth token."""
        logger.info("Attempting to login to CapRover dashboard...")
        response = self.post(LOGIN_PATH, {"password": self.config.password})
        self.session.headers["x-captain-auth"] = response.data["token"]

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._request("GET", path, params=params)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._request("POST", path, json=body)

    def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.config.request_timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise RemoteTimeoutError(f"{method} {path} timed out: {e}") from e
        except (requests.exceptions.ConnectionError, requests.exceptions.ChunkedEncodingError,
                requests.exceptions.ContentDecodingError) as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteOperationError(f"{method} {path} failed: {e}") from e

        if response.status_code in TRANSIENT_HTTP_STATUSES:
            raise TransientNetworkError(f"{method} {path} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise RemoteOperationError(f"{method} {path} returned HTTP {response.status_code}", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteOperationError(f"{method} {path} returned a non-JSON body") from e
        return check_errors(payload)
