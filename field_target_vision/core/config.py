"""
Configuration Management
========================

Provides the tunable parameter set for the vision pipeline with:
- YAML file loading and saving
- Environment variable overrides
- Default values
- Explicit reload for hot-reloading between loop iterations

A Config is an ordinary value passed to the components that need it.
There is no global instance.
"""

import os
import yaml
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration."""
    camera_id: int = 0
    width: int = 640
    height: int = 480


@dataclass
class NetworkConfig:
    """Result publisher configuration."""
    host: str = "10.8.62.2"
    data_port: int = 5801


@dataclass
class DiagnosticsConfig:
    """Diagnostics configuration."""
    use_test_image: bool = False
    test_image_path: str = ""
    use_test_video: bool = False
    test_video_path: str = ""
    display_debug_images: bool = False
    read_setup_file: bool = False
    wait_key_delay: int = 1


@dataclass
class ProcessingConfig:
    """Contour filtering, corner refinement and pose settings."""
    contour_size_threshold: int = 80
    contour_approximation_accuracy: float = 7.0
    shape_factor_min: float = 0.4
    shape_factor_max: float = 0.8
    area_stddev_factor: float = 1.25
    image_edge_threshold: float = 10.0

    # Corner refinement
    corner_window: int = 5
    max_corner_subpixel_iterations: int = 100
    corner_subpixel_threshold: float = 0.1

    # Pose
    use_world_coordinates: bool = False
    x_offset: float = 0.0
    y_offset: float = 0.0
    z_offset: float = 0.0
    shooter_offset: float = 215.0
    min_target_depth: float = 500.0


@dataclass
class HSVFilterConfig:
    """Color segmentation bounds (OpenCV HSV ranges)."""
    low_h: int = 40
    low_s: int = 50
    low_v: int = 30
    high_h: int = 150
    high_s: int = 255
    high_v: int = 200
    morphology_iterations: int = 1

    @property
    def low(self) -> tuple:
        return (self.low_h, self.low_s, self.low_v)

    @property
    def high(self) -> tuple:
        return (self.high_h, self.high_s, self.high_v)


@dataclass
class VisionConfig:
    """Model selection."""
    target_model: str = "rapid_react"
    camera_model: str = "ps3eye_zoom"
    finder_name: str = "Main"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    console_enabled: bool = True
    file_enabled: bool = False
    file_path: str = "/var/log/field_target_vision.log"
    max_file_size: int = 10485760
    backup_count: int = 3


# Section name -> dataclass, in file order
SECTIONS = {
    'camera': CameraConfig,
    'network': NetworkConfig,
    'diagnostics': DiagnosticsConfig,
    'processing': ProcessingConfig,
    'hsv_filter': HSVFilterConfig,
    'vision': VisionConfig,
    'logging': LoggingConfig,
}


def _build_section(section_cls, values: Dict[str, Any]):
    """Build a section dataclass from a raw dict, ignoring unknown keys."""
    defaults = section_cls()
    kwargs = {}
    for f in fields(section_cls):
        if f.name not in values:
            continue
        default = getattr(defaults, f.name)
        value = values[f.name]
        try:
            # Coerce to the default's type so "5801" and 5801 behave the same
            if isinstance(default, bool):
                value = value if isinstance(value, bool) else str(value).lower() in ('1', 'true', 'yes', 'on')
            elif isinstance(default, (int, float, str)):
                value = type(default)(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value for {section_cls.__name__}.{f.name}: {value!r}, using default")
            value = default
        kwargs[f.name] = value
    return section_cls(**kwargs)


class Config:
    """
    Tunable parameter set.

    Loads configuration from a YAML file with environment variable overrides.

    Usage:
        config = Config.load("config/vision_config.yaml")

        low = config.hsv_filter.low
        threshold = config.processing.contour_size_threshold

        # Between loop iterations (hot reload)
        config.reload()
    """

    def __init__(self, config_path: Optional[str] = None):
        self._raw: Dict[str, Any] = {}
        self._config_path: Optional[Path] = Path(config_path) if config_path else None
        # "section.field" -> value, re-applied after every load
        self._overrides: Dict[str, Any] = {}

        # Initialize sub-configs with defaults
        self.camera = CameraConfig()
        self.network = NetworkConfig()
        self.diagnostics = DiagnosticsConfig()
        self.processing = ProcessingConfig()
        self.hsv_filter = HSVFilterConfig()
        self.vision = VisionConfig()
        self.logging = LoggingConfig()

    @property
    def path(self) -> Optional[Path]:
        return self._config_path

    @classmethod
    def load(cls, config_path: str, create_if_missing: bool = False) -> 'Config':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML file
            create_if_missing: Write a file with default values if none exists

        Returns:
            Config instance (defaults if the file could not be read)
        """
        instance = cls(config_path)

        if not instance._config_path.exists():
            if create_if_missing:
                logger.info(f"Config file not found, writing defaults: {config_path}")
                instance.save()
            else:
                logger.warning(f"Config file not found: {config_path}, using defaults")
            instance._apply_env_overrides()
            return instance

        instance._load_file()
        return instance

    def reload(self) -> bool:
        """
        Re-read the backing file.

        Returns:
            True if the file was read, False if there is no file or it failed
        """
        if self._config_path is None or not self._config_path.exists():
            return False
        return self._load_file()

    def _load_file(self) -> bool:
        """Load and parse YAML configuration file."""
        try:
            with open(self._config_path, 'r') as f:
                self._raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            return False

        if not isinstance(self._raw, dict):
            logger.error(f"Config root must be a mapping: {self._config_path}")
            self._raw = {}
            return False

        logger.debug(f"Loaded config from: {self._config_path}")
        self._parse_config()
        self._apply_env_overrides()
        self._apply_overrides()
        return True

    def _parse_config(self) -> None:
        """Parse raw config into typed dataclasses."""
        for name, section_cls in SECTIONS.items():
            values = self._raw.get(name)
            if isinstance(values, dict):
                setattr(self, name, _build_section(section_cls, values))
            else:
                setattr(self, name, section_cls())

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        if os.environ.get('FTV_CAMERA_ID'):
            self.camera.camera_id = int(os.environ['FTV_CAMERA_ID'])

        if os.environ.get('FTV_DATA_HOST'):
            self.network.host = os.environ['FTV_DATA_HOST']
        if os.environ.get('FTV_DATA_PORT'):
            self.network.data_port = int(os.environ['FTV_DATA_PORT'])

        if os.environ.get('FTV_DEBUG_IMAGES'):
            self.diagnostics.display_debug_images = os.environ['FTV_DEBUG_IMAGES'].lower() in ('1', 'true', 'yes')

        if os.environ.get('FTV_LOG_LEVEL'):
            self.logging.level = os.environ['FTV_LOG_LEVEL']

    def set_override(self, key: str, value: Any) -> None:
        """
        Pin a value by "section.field" key so reloads keep it.

        Command line options use this; the file and the environment
        cannot change an overridden value.

        Raises:
            KeyError: If the section or field does not exist
        """
        section_name, _, field_name = key.partition('.')
        section = getattr(self, section_name, None) if section_name in SECTIONS else None
        if section is None or field_name not in {f.name for f in fields(section)}:
            raise KeyError(f"Unknown config key: {key}")

        self._overrides[key] = value
        setattr(section, field_name, value)

    def _apply_overrides(self) -> None:
        for key, value in self._overrides.items():
            section_name, _, field_name = key.partition('.')
            setattr(getattr(self, section_name), field_name, value)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Get all sections as plain dicts."""
        return {name: asdict(getattr(self, name)) for name in SECTIONS}

    def save(self, config_path: Optional[str] = None) -> None:
        """
        Write the current values as YAML.

        Args:
            config_path: Destination, defaults to the file this config was loaded from
        """
        path = Path(config_path) if config_path else self._config_path
        if path is None:
            raise ValueError("No config path to save to")

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        if self._config_path is None:
            self._config_path = path
        logger.info(f"Saved config to: {path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get raw config value by dot-notation key."""
        keys = key.split('.')
        value = self._raw
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def __repr__(self) -> str:
        return f"Config(path={self._config_path}, target_model={self.vision.target_model})"


def load_config(config_path: str, create_if_missing: bool = False) -> Config:
    """Load configuration from file."""
    return Config.load(config_path, create_if_missing=create_if_missing)
