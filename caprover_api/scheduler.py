"""
Dependency-ordered rollout of a bundle's services.
"""

import logging
from enum import Enum
from typing import Dict, List

from .build import BuildWaiter
from .client import CaproverClient
from .errors import DependencyResolutionError
from .manifest.models import Bundle, ServiceSpec
from .retry import RetryingExecutor

logger = logging.getLogger(__name__)


class DeploymentState(Enum):
    PENDING = "pending"
    DEPLOYED = "deployed"


class DependencyScheduler:
    """
    Deploy services wave by wave, strictly one at a time.

    Each pass walks the pending services in manifest order and deploys
    every one whose dependencies are already deployed. A pass that makes
    no progress means a cycle or an unknown dependency.
    """

    def __init__(self, client: CaproverClient, executor: RetryingExecutor, waiter: BuildWaiter):
        self.client = client
        self.executor = executor
        self.waiter = waiter

    def deploy(self, bundle: Bundle) -> List[str]:
        """
        Returns:
            Service names in the order they were deployed

        Raises:
            DependencyResolutionError: No pending service can make progress
            BuildFailedError, BuildTimeoutError: A build did not complete
        """
        states: Dict[str, DeploymentState] = {name: DeploymentState.PENDING for name in bundle.services}
        order: List[str] = []

        while True:
            pending = [name for name, state in states.items() if state is DeploymentState.PENDING]
            if not pending:
                return order

            deployed_in_pass = 0
            for name in pending:
                service = bundle.services[name]
                if all(states.get(dep) is DeploymentState.DEPLOYED for dep in service.depends_on):
                    self.deploy_service(service)
                    states[name] = DeploymentState.DEPLOYED
                    order.append(name)
                    deployed_in_pass += 1

            if deployed_in_pass == 0:
                raise DependencyResolutionError(pending)
            logger.debug(f"Pass deployed {deployed_in_pass} service(s)")

    def deploy_service(self, service: ServiceSpec) -> None:
        """Create, configure, deploy, then wait for the build."""
        name = service.name
        logger.info(f"Deploying service: {name}")

        self.executor.run(self.client.register_app, name, service.has_persistent_data)
        self.executor.run(self.client.update_app, name, **service.update_payload())
        self.executor.run(
            self.client.deploy_app,
            name,
            image_name=service.image,
            dockerfile_lines=service.extras.dockerfile_lines,
        )
        self.waiter.wait_or_raise(name)
        logger.info(f"{name} | Deployed")
