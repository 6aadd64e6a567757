"""
One-click bundle deployment: fetch, resolve, parse, schedule.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .build import BuildWaiter
from .client import CaproverClient
from .config import ClientConfig
from .manifest import ManifestParser, ManifestRepository, VariableResolver
from .retry import RetryingExecutor
from .scheduler import DependencyScheduler

logger = logging.getLogger(__name__)


@dataclass
class DeploymentReport:
    """Outcome of a successful bundle deployment."""
    manifest: str
    app_name: str
    deployed: List[str] = field(default_factory=list)
    display_name: Optional[str] = None
    instructions: Optional[str] = None


def executor_from_config(config: ClientConfig) -> RetryingExecutor:
    return RetryingExecutor(attempts=config.retry_attempts, delay=config.retry_delay)


def waiter_for(client: CaproverClient) -> BuildWaiter:
    config = client.config
    return BuildWaiter(
        client.get_runtime_info,
        interval=config.build_poll_interval,
        max_attempts=config.build_poll_attempts,
        settle_delay=config.build_settle_delay,
    )


class BundleOrchestrator:
    """Entry point for deploying a one-click app bundle."""

    def __init__(
        self,
        client: CaproverClient,
        repository: Optional[ManifestRepository] = None,
        executor: Optional[RetryingExecutor] = None,
        waiter: Optional[BuildWaiter] = None,
        parser: Optional[ManifestParser] = None,
    ):
        self.client = client
        self.repository = repository or ManifestRepository(
            client.config.one_click_repository, timeout=client.config.request_timeout
        )
        self.executor = executor or executor_from_config(client.config)
        self.waiter = waiter or waiter_for(client)
        self.parser = parser or ManifestParser()

    def deploy(self, manifest_name: str, app_name: str,
               variables: Optional[Mapping[str, Any]] = None) -> DeploymentReport:
        """
        Deploy every service of a manifest as instance app_name.

        Fails fast: services deployed before an error are left in place.
        """
        if self.client.context is None:
            raise RuntimeError("client is not connected: call connect() first")

        logger.info(f"Starting one-click deployment for {manifest_name} as {app_name}")

        raw_manifest = self.executor.run(self.repository.fetch, manifest_name)
        resolved = VariableResolver(self.client.context).resolve(raw_manifest, app_name, variables)
        bundle = self.parser.parse(resolved)
        if bundle.display_name:
            logger.info(f"Bundle {manifest_name} is {bundle.display_name}")
        if bundle.instructions_start:
            logger.info(bundle.instructions_start)

        scheduler = DependencyScheduler(self.client, self.executor, self.waiter)
        deployed = scheduler.deploy(bundle)

        logger.info(f"Deployed all services in >>{manifest_name}<<")
        if bundle.instructions_end:
            logger.info(bundle.instructions_end)

        return DeploymentReport(
            manifest=manifest_name,
            app_name=app_name,
            deployed=deployed,
            display_name=bundle.display_name,
            instructions=bundle.instructions_end,
        )
