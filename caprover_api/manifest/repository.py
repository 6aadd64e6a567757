"""
Manifest retrieval from a one-click app repository.
"""

import logging
from pathlib import Path
from typing import Optional

import requests

from ..config import PUBLIC_ONE_CLICK_APP_PATH
from ..errors import RemoteOperationError, RemoteTimeoutError, TransientNetworkError
from ..transport import TRANSIENT_HTTP_STATUSES

logger = logging.getLogger(__name__)

MANIFEST_EXTENSION = ".yml"


class ManifestRepository:
    """
    Fetch raw manifest text by name.

    base_path is either an http(s) URL prefix or a local directory.
    """

    def __init__(self, base_path: str = PUBLIC_ONE_CLICK_APP_PATH,
                 session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.base_path = base_path
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def is_remote(self) -> bool:
        return self.base_path.startswith("http://") or self.base_path.startswith("https://")

    def location(self, manifest_name: str) -> str:
        if self.is_remote:
            return f"{self.base_path}{manifest_name}{MANIFEST_EXTENSION}"
        return str(Path(self.base_path).expanduser() / f"{manifest_name}{MANIFEST_EXTENSION}")

    def fetch(self, manifest_name: str) -> str:
        """
        Raises:
            TransientNetworkError: Connection failure
            RemoteTimeoutError: The download timed out
            RemoteOperationError: Manifest missing or unreadable
        """
        location = self.location(manifest_name)
        logger.info(f"Downloading one-click app definition from {location}")

        if not self.is_remote:
            path = Path(location)
            if not path.exists():
                raise RemoteOperationError(f"Manifest {manifest_name} not found at {location}")
            return path.read_text(encoding="utf-8")

        try:
            response = self.session.get(location, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise RemoteTimeoutError(f"Download of {location} timed out: {e}") from e
        except (requests.exceptions.ConnectionError, requests.exceptions.ChunkedEncodingError,
                requests.exceptions.ContentDecodingError) as e:
            raise TransientNetworkError(f"Download of {location} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteOperationError(f"Download of {location} failed: {e}") from e

        if response.status_code in TRANSIENT_HTTP_STATUSES:
            raise TransientNetworkError(f"Download of {location} returned HTTP {response.status_code}")
        if response.status_code == 404:
            raise RemoteOperationError(f"Manifest {manifest_name} not found at {location}", 404)
        if response.status_code >= 400:
            raise RemoteOperationError(f"Download of {location} returned HTTP {response.status_code}",
                                       response.status_code)
        return response.text
