"""Configuration module for the Centrify auth backend service."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
