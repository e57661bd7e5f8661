"""
Local package for the capkeeper supervisor.

This package provides the merged runtime configuration through the
effective_settings object and hosts the supervisor package.
"""

from .config import MergedSettings, effective_settings

__all__ = ["MergedSettings", "effective_settings"]
