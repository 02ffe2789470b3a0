"""
Configuration module for the queue router.

This package provides environment-based configuration management using Pydantic Settings.
"""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
