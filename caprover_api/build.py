"""
Build readiness polling for a single service.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .errors import BuildFailedError, BuildTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class ServiceRuntimeInfo:
    """One poll of a service's build flags."""
    is_building: bool
    is_build_failed: bool


class BuildOutcome(Enum):
    """Build states. BUILDING is the only non-terminal one."""
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class BuildWaiter:
    """
    Poll a service until it stops building.

    fetch is called with the service name and must return a
    ServiceRuntimeInfo. Poll errors propagate; polls are never retried.
    """

    def __init__(
        self,
        fetch: Callable[[str], ServiceRuntimeInfo],
        interval: float = 1.0,
        max_attempts: int = 60,
        settle_delay: float = 0.5,
        deadline: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch = fetch
        self.interval = interval
        self.max_attempts = max_attempts
        self.settle_delay = settle_delay
        self.deadline = deadline
        self.sleep = sleep
        self.clock = clock

    @staticmethod
    def classify(info: ServiceRuntimeInfo) -> BuildOutcome:
        if info.is_build_failed:
            return BuildOutcome.FAILED
        if not info.is_building:
            return BuildOutcome.READY
        return BuildOutcome.BUILDING

    def poll(self, app_name: str) -> BuildOutcome:
        """Run the poll loop until a terminal outcome, without confirmation."""
        for attempt in range(1, self.max_attempts + 1):
            if self.deadline is not None and self.clock() >= self.deadline:
                logger.warning(f"{app_name} | Deadline passed while building")
                return BuildOutcome.TIMED_OUT

            self.sleep(self.interval)
            outcome = self.classify(self.fetch(app_name))
            logger.debug(f"{app_name} | Poll {attempt}/{self.max_attempts}: {outcome.value}")
            if outcome is not BuildOutcome.BUILDING:
                return outcome

        return BuildOutcome.TIMED_OUT

    def wait(self, app_name: str) -> BuildOutcome:
        """
        Poll until terminal, then confirm a READY result once more.

        The build-failed flag can lag the building flag, so READY is
        re-checked after settle_delay.
        """
        outcome = self.poll(app_name)
        if outcome is BuildOutcome.READY:
            logger.info(f"{app_name} | App building finished...")
            self.sleep(self.settle_delay)
            if self.fetch(app_name).is_build_failed:
                outcome = BuildOutcome.FAILED
        return outcome

    def wait_or_raise(self, app_name: str) -> None:
        """
        Raises:
            BuildFailedError: If the build failed
            BuildTimeoutError: If polls or the deadline ran out
        """
        outcome = self.wait(app_name)
        if outcome is BuildOutcome.FAILED:
            raise BuildFailedError(app_name)
        if outcome is BuildOutcome.TIMED_OUT:
            raise BuildTimeoutError(app_name, self.max_attempts)
