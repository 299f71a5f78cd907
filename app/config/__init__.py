"""
Configuration package for the spa booking engine.

This package contains the environment settings, logging setup and the
Redis client factory used by the availability cache.
"""

from app.config.settings import Settings, get_settings, settings

__all__ = ['Settings', 'get_settings', 'settings']
