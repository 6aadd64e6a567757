"""
Client configuration and the per-run deployment context.
"""

import os
from dataclasses import dataclass
from typing import Optional

PUBLIC_ONE_CLICK_APP_PATH = "https://raw.githubusercontent.com/caprover/one-click-apps/master/public/v4/apps/"


def normalize_base_url(dashboard_url: str, protocol: str = "https://") -> str:
    """
    Turn a dashboard URL as copied from the browser into an API base URL.

    Args:
        dashboard_url: e.g. "captain.example.com/#/apps"
        protocol: Prefix used when the URL has no scheme

    Returns:
        Base URL without trailing slash or dashboard fragment
    """
    clean_url = dashboard_url.split("/#")[0].rstrip("/")
    if clean_url.startswith("http"):
        return clean_url
    return protocol + clean_url


@dataclass
class ClientConfig:
    """Connection and timing settings for a CapRover client."""
    dashboard_url: str
    password: str
    protocol: str = "https://"
    schema_version: int = 2
    namespace: str = "captain"
    one_click_repository: str = PUBLIC_ONE_CLICK_APP_PATH
    request_timeout: float = 30.0

    # RetryingExecutor
    retry_attempts: int = 3
    retry_delay: float = 1.0

    # BuildWaiter
    build_poll_interval: float = 1.0
    build_poll_attempts: int = 60
    build_settle_delay: float = 0.5

    @property
    def base_url(self) -> str:
        return normalize_base_url(self.dashboard_url, self.protocol)

    @classmethod
    def from_env(cls, dashboard_url: Optional[str] = None, password: Optional[str] = None) -> "ClientConfig":
        """
        Build a config from CAPROVER_* environment variables.

        Explicit arguments win over the environment.

        Raises:
            ValueError: If the URL or password is not available
        """
        dashboard_url = dashboard_url or os.environ.get("CAPROVER_URL")
        password = password or os.environ.get("CAPROVER_PASSWORD")
        if not dashboard_url:
            raise ValueError("CapRover dashboard URL not set (CAPROVER_URL)")
        if not password:
            raise ValueError("CapRover password not set (CAPROVER_PASSWORD)")

        return cls(
            dashboard_url=dashboard_url,
            password=password,
            protocol=os.environ.get("CAPROVER_PROTOCOL", "https://"),
            namespace=os.environ.get("CAPROVER_NAMESPACE", "captain"),
            one_click_repository=os.environ.get("CAPROVER_ONE_CLICK_REPOSITORY", PUBLIC_ONE_CLICK_APP_PATH),
        )


@dataclass(frozen=True)
class DeploymentContext:
    """
    Values learned once while connecting, read-only afterwards.

    root_domain comes from the system info endpoint and is substituted
    for $$cap_root_domain in manifests.
    """
    base_url: str
    namespace: str
    schema_version: int
    root_domain: str
