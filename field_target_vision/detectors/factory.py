"""
Finder Factory
==============

Builds a TargetFinder from configuration.
"""

import logging
from typing import Optional

from field_target_vision.core.config import Config
from field_target_vision.models import create_camera_model, create_target_model
from .target_finder import TargetFinder

logger = logging.getLogger(__name__)


def create_finder(config: Config, name: Optional[str] = None) -> TargetFinder:
    """
    Create a finder for the models named in config.vision.

    Args:
        config: Configuration object
        name: Finder name, defaults to config.vision.finder_name

    Returns:
        TargetFinder instance

    Raises:
        ValueError: If a model name is not registered
    """
    vision = config.vision
    target_model = create_target_model(vision.target_model)
    camera_model = create_camera_model(vision.camera_model)

    finder = TargetFinder(
        target_model,
        camera_model,
        config=config,
        name=name or vision.finder_name,
    )
    logger.info(f"Created finder '{finder.name}': target={target_model.name}, camera={camera_model.name}")
    return finder
