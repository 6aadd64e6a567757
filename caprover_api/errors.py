"""
Exception hierarchy for the CapRover client and bundle orchestrator.
"""

from typing import Iterable, Optional


class CaproverError(Exception):
    """Base class for every error raised by caprover_api."""


class MissingVariableError(CaproverError):
    """A required manifest variable has neither a supplied value nor a default."""

    def __init__(self, var_id: str, label: str, description: Optional[str] = None):
        self.var_id = var_id
        self.label = label
        self.description = description
        super().__init__(
            f"Missing required variable: {label} ({var_id}). Description: {description}"
        )


class InvalidVariableError(CaproverError):
    """A variable value does not match the manifest's validRegex."""

    def __init__(self, var_id: str, value: str, pattern: str):
        self.var_id = var_id
        self.value = value
        self.pattern = pattern
        super().__init__(f"Invalid value for {var_id}: {value!r} does not match {pattern}")


class ManifestParseError(CaproverError):
    """The resolved manifest document is not a valid bundle."""


class DependencyResolutionError(CaproverError):
    """
    Deployment stalled: the remaining services can never be satisfied.

    Covers both a dependency cycle and a reference to a service the
    bundle does not define.
    """

    def __init__(self, pending: Iterable[str]):
        self.pending = list(pending)
        super().__init__(
            "Circular dependency or missing dependency detected. "
            f"Cannot deploy: {', '.join(self.pending)}"
        )


class BuildFailedError(CaproverError):
    """The platform reported a failed build for a service."""

    def __init__(self, app_name: str):
        self.app_name = app_name
        super().__init__(f"App build failed for {app_name}. Check the CapRover logs.")


class BuildTimeoutError(CaproverError):
    """A service was still building when the poll budget ran out."""

    def __init__(self, app_name: str, attempts: int):
        self.app_name = app_name
        self.attempts = attempts
        super().__init__(f"App building timeout reached for {app_name} after {attempts} polls")


class TransientNetworkError(CaproverError):
    """Connection-level failure; safe to retry."""


class RemoteTimeoutError(CaproverError):
    """The request itself timed out; not retried."""


class RemoteOperationError(CaproverError):
    """The control API answered with a failure status."""

    def __init__(self, description: str, status: Optional[int] = None):
        self.description = description
        self.status = status
        super().__init__(description)
