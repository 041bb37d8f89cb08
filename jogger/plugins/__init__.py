"""
Query providers for the launcher.
"""
from jogger.plugins.registry import build_default_registry

__all__ = ["build_default_registry"]
