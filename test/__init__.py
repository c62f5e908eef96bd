"""
Field Target Vision - Test Suite
================================

Unit tests for the detection pipeline, configuration and vision loop.
All tests run on synthetic frames; no camera or robot is required.

Test Categories:
    - unit/test_config.py        : Parameter file loading, reload, logging setup
    - unit/test_models.py        : Target and camera models
    - unit/test_geometry.py      : Contour scoring, corner ordering, transforms
    - unit/test_target_finder.py : Detection and pose pipeline
    - unit/test_vision_data.py   : Result types and wire format
    - unit/test_vision_loop.py   : Threaded capture / process / publish loop
    - unit/test_hardware.py      : Frame sources and result publishers
    - unit/test_vision_main.py   : Command line entry point

Usage:
    # Run all tests
    pytest test/

    # Run specific test with verbose output
    pytest test/unit/test_target_finder.py -v
"""

__version__ = "1.0.0"
