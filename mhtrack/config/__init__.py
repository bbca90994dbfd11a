"""Configuration for mhtrack."""

from .config_loader import (
    Settings,
    InferenceConfig,
    LearningConfig,
    LoggingConfig,
    Config,
    load_config,
    save_config,
    DEFAULT_CONFIG_PATH
)

__all__ = [
    'Settings',
    'InferenceConfig',
    'LearningConfig',
    'LoggingConfig',
    'Config',
    'load_config',
    'save_config',
    'DEFAULT_CONFIG_PATH'
]
