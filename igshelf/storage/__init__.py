"""
Storage Layer.

This package handles all data persistence: the timeline JSON file and the
configuration file.
"""

from .config_manager import ConfigManager
from .timeline import JSONTimelineStore

__all__ = ["ConfigManager", "JSONTimelineStore"]
