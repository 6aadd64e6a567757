"""
caprover_api - client and one-click bundle orchestrator for CapRover.

This package provides a thin client for the CapRover control API and a
deployment orchestrator for multi-service one-click app manifests.
"""

__version__ = "0.1.0"
__author__ = "caprover-api contributors"
