"""
Logging utilities for the trendcast engine.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures handlers and levels for the process and provides two helpers:

- PerformanceLogger: times named operations (used around model training)
- ErrorTracker: counts and logs per-symbol failures in batch operations
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional


class TrendcastFormatter(logging.Formatter):
    """Formatter that prefixes records carrying a ``symbol`` attribute."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        symbol = getattr(record, 'symbol', None)
        if symbol:
            return f"[{symbol}] {message}"
        return message


class LoggingManager:
    """Manages logging configuration for the engine."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize logging manager.

        Args:
            config: Logging configuration dictionary
        """
        self.config = {**self._get_default_config(), **(config or {})}
        self._setup_logging()

    def _get_default_config(self) -> Dict[str, Any]:
        return {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'file': None,
            'console': True,
            'max_bytes': 10 * 1024 * 1024,  # 10MB
            'backup_count': 5,
            'components': {
                'indicators': 'INFO',
                'features': 'INFO',
                'modeling': 'INFO',
                'analysis': 'INFO',
            }
        }

    def _setup_logging(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, str(self.config['level']).upper()))
        root_logger.handlers.clear()

        formatter = TrendcastFormatter(
            fmt=self.config['format'],
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if self.config.get('file'):
            log_file = Path(self.config['file'])
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=self.config.get('max_bytes', 10 * 1024 * 1024),
                backupCount=self.config.get('backup_count', 5),
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        if self.config.get('console', True):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        for component, level in self.config.get('components', {}).items():
            logging.getLogger(f'trendcast.{component}').setLevel(getattr(logging, level.upper()))

    def set_level(self, level: str, component: Optional[str] = None) -> None:
        """Set logging level for the root logger or one component."""
        name = f'trendcast.{component}' if component else None
        logging.getLogger(name).setLevel(getattr(logging, level.upper()))


class PerformanceLogger:
    """Performance logging utilities."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.start_times: Dict[str, float] = {}

    def start_timer(self, operation: str) -> None:
        """Start timing an operation."""
        self.start_times[operation] = time.perf_counter()
        self.logger.debug(f"Started {operation}")

    def end_timer(self, operation: str, log_level: str = 'INFO') -> float:
        """End timing an operation and log duration.

        Returns:
            Duration in seconds (0.0 if the timer was never started)
        """
        if operation not in self.start_times:
            self.logger.warning(f"No start time found for operation: {operation}")
            return 0.0

        duration = time.perf_counter() - self.start_times.pop(operation)
        getattr(self.logger, log_level.lower())(f"Completed {operation} in {duration:.3f} seconds")
        return duration

    def cancel_timer(self, operation: str) -> None:
        """Discard the timer of an operation that failed."""
        if self.start_times.pop(operation, None) is not None:
            self.logger.debug(f"Abandoned {operation}")


class ErrorTracker:
    """Tracks and logs errors with context."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Dict[str, int] = {}

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  component: Optional[str] = None) -> None:
        """Log error with context information.

        Args:
            error: Exception that occurred
            context: Additional context information
            component: Component where error occurred
        """
        error_type = type(error).__name__
        error_key = f"{component}.{error_type}" if component else error_type
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        log_msg = f"Error in {component}: {error_type}: {error}" if component else f"{error_type}: {error}"
        if context:
            log_msg += " (Context: " + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"

        self.logger.error(log_msg)

    def get_error_summary(self) -> Dict[str, int]:
        """Get summary of error counts by type."""
        return self.error_counts.copy()

    def clear_error_counts(self) -> None:
        self.error_counts.clear()


def setup_logging(config: Optional[Dict[str, Any]] = None) -> LoggingManager:
    """Setup logging for the engine."""
    return LoggingManager(config)
