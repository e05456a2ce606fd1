"""Configuration helpers for the store API."""

from .settings import ApiSettings, StoreSettings, get_api_settings, get_settings

__all__ = ["ApiSettings", "StoreSettings", "get_api_settings", "get_settings"]
