"""
Configuration Module

Layered framework configuration (defaults, YAML file, .env, environment).
"""

from .settings import (
    DEFAULT_CONFIG_FILE,
    ConfigProvider,
    FrameworkConfig,
    deep_merge,
)

__all__ = ['DEFAULT_CONFIG_FILE', 'ConfigProvider', 'FrameworkConfig', 'deep_merge']
