"""
Configuration Management

This module provides centralized configuration management
for the spendwise application.
"""

from .settings import (
    Settings,
    DatabaseConfig,
    SecurityConfig,
    RateLimitConfig,
    AutomationConfig,
    AppConfig,
)
from .environment import Environment, EnvironmentManager

__all__ = [
    "Settings",
    "DatabaseConfig",
    "SecurityConfig",
    "RateLimitConfig",
    "AutomationConfig",
    "AppConfig",
    "Environment",
    "EnvironmentManager",
]
