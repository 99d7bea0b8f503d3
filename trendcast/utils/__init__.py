"""
Utilities package for the trendcast engine.

Main components:
- ConfigManager: YAML configuration with environment overrides
- LoggingManager: logging setup for the process
- PerformanceLogger / ErrorTracker: timing and failure tracking helpers
"""

from trendcast.utils.config import ConfigManager, load_config, create_default_config, resolve_config
from trendcast.utils.logging import LoggingManager, PerformanceLogger, ErrorTracker, setup_logging

__all__ = [
    # Configuration
    "ConfigManager",
    "load_config",
    "create_default_config",
    "resolve_config",

    # Logging
    "LoggingManager",
    "PerformanceLogger",
    "ErrorTracker",
    "setup_logging",
]
