"""Configuration management package for testdb."""

from .config_manager import ConfigManager, ConfigValidationError

__all__ = ['ConfigManager', 'ConfigValidationError']
