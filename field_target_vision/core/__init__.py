"""
Core Module
===========

Contains infrastructure shared across the vision system:
- Configuration management
- Logging setup
"""

from .config import (
    Config,
    load_config,
    CameraConfig,
    NetworkConfig,
    DiagnosticsConfig,
    ProcessingConfig,
    HSVFilterConfig,
    VisionConfig,
    LoggingConfig,
)
from .logging_setup import setup_logging

__all__ = [
    'Config',
    'load_config',
    'CameraConfig',
    'NetworkConfig',
    'DiagnosticsConfig',
    'ProcessingConfig',
    'HSVFilterConfig',
    'VisionConfig',
    'LoggingConfig',
    'setup_logging',
]
