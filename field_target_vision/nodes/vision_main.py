#!/usr/bin/env python3
"""
Vision Entry Point
==================

Loads the tunable parameter file, opens the frame source, and runs the
vision loop until it stops (Escape in a debug window) or Ctrl-C.

Usage:
    field_target_vision --config config/vision_config.yaml
    field_target_vision --mock-camera --debug
"""

import argparse
import logging
import sys
import time

from field_target_vision.core import Config, setup_logging
from field_target_vision.detectors import create_finder
from field_target_vision.hardware import create_camera
from field_target_vision.network import create_data_sender
from field_target_vision.threads import VisionLoop

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "config/vision_config.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Field target vision")
    parser.add_argument("--config", default=DEFAULT_CONFIG,
                        help="Tunable parameter file (created with defaults if missing)")
    parser.add_argument("--mock-camera", action="store_true",
                        help="Use a blank mock frame source")
    parser.add_argument("--mock-sender", action="store_true",
                        help="Keep results in memory instead of sending them")
    parser.add_argument("--debug", action="store_true",
                        help="Show debug images (Escape quits)")
    parser.add_argument("--log-level", default=None,
                        help="Override the configured log level")
    return parser


def build_loop(config: Config, use_mock_camera: bool = False, use_mock_sender: bool = False) -> VisionLoop:
    """Wire camera, finder and publisher from config."""
    camera = create_camera(config, use_mock=use_mock_camera)

    finder = None
    if camera is not None and camera.is_opened:
        finder = create_finder(config)
    else:
        logger.info("Finder will not be used")

    sender = create_data_sender(config, use_mock=use_mock_sender)
    return VisionLoop(config, camera, finder, sender)


def main(args=None) -> int:
    options = build_parser().parse_args(args)

    config = Config.load(options.config, create_if_missing=True)
    if options.log_level:
        config.set_override('logging.level', options.log_level)
    if options.debug:
        config.set_override('diagnostics.display_debug_images', True)

    setup_logging(config.logging)

    try:
        loop = build_loop(config, options.mock_camera, options.mock_sender)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if not loop.start():
        return 1

    try:
        while loop.is_running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        loop.stop()
        loop.wait(timeout=5.0)

    return 0


if __name__ == '__main__':
    sys.exit(main())
