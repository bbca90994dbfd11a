"""Configuration loader for mhtrack."""

import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


@dataclass
class Settings:
    """Model settings shared by the model builder, verifier and solver."""
    states_share_weights: bool = True
    allow_partial_merger_appearance: bool = False
    require_separate_children_of_division: bool = True
    allow_length_one_tracks: bool = True
    optimizer_ep_gap: float = 0.01
    optimizer_verbose: bool = False
    optimizer_num_threads: int = 1
    optimizer_time_limit: Optional[float] = None
    non_negative_weights_only: bool = False

    # keys of the "settings" block in JSON model files
    _JSON_KEYS = {
        'statesShareWeights': 'states_share_weights',
        'allowPartialMergerAppearance': 'allow_partial_merger_appearance',
        'requireSeparateChildrenOfDivision': 'require_separate_children_of_division',
        'allowLengthOneTracks': 'allow_length_one_tracks',
        'optimizerEpGap': 'optimizer_ep_gap',
        'optimizerVerbose': 'optimizer_verbose',
        'optimizerNumThreads': 'optimizer_num_threads',
        'optimizerTimeLimit': 'optimizer_time_limit',
        'nonNegativeWeightsOnly': 'non_negative_weights_only',
    }

    @classmethod
    def from_json_dict(cls, settings_dict: Dict[str, Any]) -> 'Settings':
        """
        Create Settings from a camelCase JSON "settings" block.

        Unknown keys are ignored, missing keys keep their defaults.
        """
        kwargs = {}
        for json_key, attr in cls._JSON_KEYS.items():
            if json_key in settings_dict:
                kwargs[attr] = settings_dict[json_key]
        return cls(**kwargs)

    def to_json_dict(self) -> Dict[str, Any]:
        """Convert Settings to a camelCase JSON "settings" block."""
        return {json_key: getattr(self, attr) for json_key, attr in self._JSON_KEYS.items()}


@dataclass
class InferenceConfig:
    """Inference configuration."""
    with_integer_constraints: bool = True
    cutting_planes: bool = False
    retry_with_integer_constraints: bool = False
    with_division_constraints: bool = True
    with_merger_constraints: bool = True


@dataclass
class LearningConfig:
    """Structured max-margin learning configuration."""
    regularizer: float = 1.0
    learning_rate: float = 0.1
    max_iterations: int = 50
    tolerance: float = 1e-6


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration class."""
    settings: Settings = field(default_factory=Settings)
    inference: InferenceConfig = field(default_factory=InferenceConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        return cls(
            settings=Settings(**config_dict.get('settings', {})),
            inference=InferenceConfig(**config_dict.get('inference', {})),
            learning=LearningConfig(**config_dict.get('learning', {})),
            logging=LoggingConfig(**config_dict.get('logging', {}))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            'settings': asdict(self.settings),
            'inference': asdict(self.inference),
            'learning': asdict(self.learning),
            'logging': asdict(self.logging)
        }


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file. If None, uses defaults.

    Returns:
        Config object with all settings.
    """
    if config_path is None:
        return Config()

    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found. Using defaults.")
        return Config()

    with open(config_path, 'r') as f:
        config_dict = yaml.safe_load(f) or {}

    return Config.from_dict(config_dict)


def save_config(config: Config, path: str):
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save.
        path: Path where to save the config.
    """
    config_dict = config.to_dict()

    with open(path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)
