"""Command line interface for caprover_api."""

from .main import main

__all__ = ["main"]
