"""
Configuration for benchsink.
"""

from .config import SinkConfig

__all__ = ["SinkConfig"]
