"""
Bounded retry for single remote operations.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

from .errors import TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryingExecutor:
    """
    Run an operation, retrying only transient failures.

    Any exception not listed in retry_on propagates on the first attempt.
    When attempts run out the last transient error propagates unchanged.
    """

    def __init__(
        self,
        attempts: int = 3,
        delay: float = 1.0,
        retry_on: Tuple[Type[BaseException], ...] = (TransientNetworkError,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.delay = delay
        self.retry_on = retry_on
        self.sleep = sleep

    def run(self, operation: Callable[..., T], *args, **kwargs) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.attempts:
                    raise
                logger.warning(f"Attempt {attempt} failed. Retrying in {self.delay}s... {e}")
                self.sleep(self.delay)
