"""
One-click app manifests: models, variable resolution, parsing and retrieval.
"""

from .models import Bundle, ManifestVariable, ServiceExtras, ServiceSpec, VolumeMount
from .parser import ManifestParser
from .repository import ManifestRepository
from .variables import VariableResolver, variable_token

__all__ = [
    "Bundle",
    "ManifestVariable",
    "ServiceExtras",
    "ServiceSpec",
    "VolumeMount",
    "ManifestParser",
    "ManifestRepository",
    "VariableResolver",
    "variable_token",
]
