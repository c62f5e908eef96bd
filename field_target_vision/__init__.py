"""
Field Target Vision Package
===========================

Finds retroreflective field targets in a camera feed, solves their 3D
pose relative to the robot, and publishes the results every frame.

Subpackages:
    - core:      Configuration (YAML, env overrides, hot reload) and logging setup
    - models:    Target geometry and camera calibration models
    - detectors: Target finder pipeline, result types, debug rendering
    - hardware:  Frame sources (OpenCV capture, mock)
    - network:   Result publishers (UDP JSON, mock)
    - threads:   Vision loop controller
    - nodes:     Command line entry point

Example:
    from field_target_vision.core import Config
    from field_target_vision.detectors import create_finder

    finder = create_finder(Config())
    result = finder.process(frame)
"""

__version__ = '1.0.0'
