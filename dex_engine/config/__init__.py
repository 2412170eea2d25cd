"""
Configuration module for the exchange engine.

This module provides environment-driven settings for the engine and its
servers.
"""

from .settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
