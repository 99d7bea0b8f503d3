"""
Configuration management for the trendcast engine.

Configuration is resolved in three layers: built-in defaults, an optional
YAML file, and environment variable overrides (``TRENDCAST_<SECTION>_<KEY>``).
The merged result is validated once on load.

Sections:
- indicators: lookback periods for the indicator engine
- features: warm-up offset and volume window for feature extraction
- labeling: return thresholds for the up/down/flat target
- modeling: training thresholds, preprocessing, feature weights, model expiry
- prediction: score thresholds and inference context length
- trend: vote weights and thresholds for the rule-based classifier
- logging: log level, format and handlers
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'indicators': {
        'rsi_period': 14,
        'macd_params': {'fast': 12, 'slow': 26, 'signal': 9},
        'bollinger_period': 20,
        'bollinger_std_dev': 2,
        'stoch_k_period': 14,
        'stoch_d_period': 3,
        'williams_period': 14,
    },
    'features': {
        'warmup': 50,
        'volume_window': 20,
    },
    'labeling': {
        'up_threshold': 0.02,
        'down_threshold': -0.02,
    },
    'modeling': {
        'min_training_candles': 100,
        'min_training_examples': 10,
        'scale_features': True,
        'model_max_age_hours': 24,
        # Declared for compatibility; the regression does not consume them.
        'feature_weights': {
            'rsi': 0.2,
            'macd': 0.25,
            'sma_ratio': 0.15,
            'volume_trend': 0.1,
            'price_momentum': 0.2,
            'bollinger_position': 0.1,
        },
    },
    'prediction': {
        'bullish_threshold': 0.6,
        'bearish_threshold': 0.4,
        'context_candles': 21,
    },
    'trend': {
        'sma_weight': 2,
        'rsi_weight': 1,
        'macd_weight': 1,
        'rsi_oversold': 30,
        'rsi_overbought': 70,
        'bullish_ratio': 0.6,
        'bearish_ratio': 0.4,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file': None,
        'console': True,
    },
}


class ConfigManager:
    """Centralized configuration management."""

    def __init__(self, config_path: Optional[str] = None, env_prefix: str = "TRENDCAST_"):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file
            env_prefix: Prefix for environment variables
        """
        self.config_path = Path(config_path) if config_path else Path("config/default.yaml")
        self.env_prefix = env_prefix
        self.config: Dict[str, Any] = {}

        self.load_config()

        logger.info(f"ConfigManager initialized with config: {self.config_path}")

    def load_config(self) -> None:
        """Load configuration from defaults, file and environment variables."""
        self.config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f)
                if yaml_config:
                    self.config = self._merge_configs(self.config, yaml_config)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load configuration file {self.config_path}: {e}")
                logger.info("Using default configuration")

        self._load_env_overrides()
        self._validate_config()

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries.

        Args:
            base: Base configuration dictionary
            override: Override configuration dictionary

        Returns:
            Merged configuration dictionary
        """
        merged = base.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    @staticmethod
    def _parse_env_value(env_value: str) -> Any:
        lowered = env_value.lower()
        if lowered in ('true', 'false'):
            return lowered == 'true'
        if env_value.replace('.', '', 1).lstrip('-').isdigit():
            return float(env_value) if '.' in env_value else int(env_value)
        return env_value

    def _match_env_keys(self, config: Any, remainder: str) -> List[str]:
        """Split an env key remainder along existing (underscored) config keys."""
        if isinstance(config, dict):
            if remainder in config:
                return [remainder]
            for key in sorted(config, key=len, reverse=True):
                if isinstance(config[key], dict) and remainder.startswith(f"{key}_"):
                    return [key] + self._match_env_keys(config[key], remainder[len(key) + 1:])
        return remainder.split('_')

    def _load_env_overrides(self) -> None:
        """Load configuration overrides from environment variables.

        ``TRENDCAST_PREDICTION_CONTEXT_CANDLES=30`` sets
        ``prediction.context_candles``: the first token names the section and
        the remainder is matched against that section's existing keys before
        falling back to one nesting level per underscore.
        """
        env_overrides: Dict[str, Any] = {}

        for env_var, env_value in os.environ.items():
            if not env_var.startswith(self.env_prefix):
                continue

            config_key = env_var[len(self.env_prefix):].lower()
            section, _, remainder = config_key.partition('_')
            if not remainder:
                continue

            keys = [section] + self._match_env_keys(self.config.get(section), remainder)

            current = env_overrides
            for key in keys[:-1]:
                current = current.setdefault(key, {})
            current[keys[-1]] = self._parse_env_value(env_value)

        if env_overrides:
            self.config = self._merge_configs(self.config, env_overrides)
            logger.info("Applied environment variable overrides")

    def _validate_config(self) -> None:
        """Validate configuration parameters."""
        validation_errors = []

        indicators = self.config.get('indicators', {})
        periods = {
            'rsi_period': indicators.get('rsi_period'),
            'bollinger_period': indicators.get('bollinger_period'),
            'stoch_k_period': indicators.get('stoch_k_period'),
            'stoch_d_period': indicators.get('stoch_d_period'),
            'williams_period': indicators.get('williams_period'),
        }
        periods.update({f"macd_params.{k}": v for k, v in indicators.get('macd_params', {}).items()})
        for name, period in periods.items():
            if not isinstance(period, int) or period < 1:
                validation_errors.append(f"indicators.{name} must be a positive integer, got {period!r}")

        macd = indicators.get('macd_params', {})
        if macd.get('fast', 0) >= macd.get('slow', 0):
            validation_errors.append("indicators.macd_params.fast must be shorter than slow")

        labeling = self.config.get('labeling', {})
        if labeling.get('up_threshold', 0.0) <= labeling.get('down_threshold', 0.0):
            validation_errors.append("labeling.up_threshold must be greater than labeling.down_threshold")

        modeling = self.config.get('modeling', {})
        if modeling.get('min_training_examples', 1) < 1:
            validation_errors.append("modeling.min_training_examples must be at least 1")

        prediction = self.config.get('prediction', {})
        if prediction.get('bullish_threshold', 0.6) <= prediction.get('bearish_threshold', 0.4):
            validation_errors.append("prediction.bullish_threshold must be greater than bearish_threshold")
        if prediction.get('context_candles', 1) < 1:
            validation_errors.append("prediction.context_candles must be at least 1")

        trend = self.config.get('trend', {})
        if trend.get('bullish_ratio', 0.6) <= trend.get('bearish_ratio', 0.4):
            validation_errors.append("trend.bullish_ratio must be greater than trend.bearish_ratio")
        if trend.get('rsi_oversold', 30) >= trend.get('rsi_overbought', 70):
            validation_errors.append("trend.rsi_oversold must be below trend.rsi_overbought")

        if validation_errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"- {error}" for error in validation_errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.debug("Configuration validation passed")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation, e.g., 'trend.sma_weight')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            config = config.setdefault(k, {})

        config[keys[-1]] = value
        logger.debug(f"Set configuration {key} = {value}")

    def update(self, updates: Dict[str, Any]) -> None:
        """Update configuration with dictionary of values.

        Args:
            updates: Dictionary of configuration updates
        """
        self.config = self._merge_configs(self.config, updates)
        self._validate_config()
        logger.info("Configuration updated")

    def save_config(self, output_path: Optional[str] = None) -> None:
        """Save current configuration to YAML file.

        Args:
            output_path: Optional output path (defaults to original config path)
        """
        output_path = Path(output_path) if output_path else self.config_path
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.config, f, default_flow_style=False, indent=2, sort_keys=True)
        logger.info(f"Configuration saved to {output_path}")

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return self.config.get(section, {})

    def list_keys(self, section: Optional[str] = None) -> List[str]:
        """List configuration keys in a section, or top-level sections."""
        if section:
            return list(self.get_section(section).keys())
        return list(self.config.keys())

    def to_yaml(self, section: Optional[str] = None) -> str:
        """Render the configuration (or one section) as YAML."""
        config_to_dump = {section: self.get_section(section)} if section else self.config
        return yaml.dump(config_to_dump, default_flow_style=False, indent=2, sort_keys=True)

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.get('logging.level', 'INFO')).upper()

    def __repr__(self) -> str:
        return f"ConfigManager(config_path='{self.config_path}', sections={list(self.config.keys())})"

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def resolve_config(config: Optional[Any]) -> Dict[str, Any]:
    """Return a plain config dict from a dict, a ConfigManager or None.

    Missing sections are filled from the defaults so components can be built
    from partial dicts in tests.
    """
    if config is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    if isinstance(config, ConfigManager):
        return config.config

    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **values}
        else:
            merged[section] = values
    return merged


def load_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to load configuration.

    Args:
        config_path: Optional path to configuration file

    Returns:
        ConfigManager instance
    """
    return ConfigManager(config_path=config_path)


def create_default_config(output_path: str = "config/default.yaml") -> None:
    """Write the default configuration to a YAML file."""
    config_manager = ConfigManager(config_path=output_path)
    config_manager.save_config(output_path)
    logger.info(f"Default configuration created: {output_path}")
