"""Application settings loading."""

from .app import AppSettings, ConfigurationError, get_settings


__all__ = ["AppSettings", "ConfigurationError", "get_settings"]
