"""Configuration module for Market CLI.

Centralized configuration management using pydantic-settings, with strict
validation of all environment variables.
"""

from config.settings import GlobalConfig, get_config

__all__ = ["GlobalConfig", "get_config"]
