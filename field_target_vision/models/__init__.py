"""
Models Module
=============

Static target geometry and camera calibration data:
- Target models (Rapid React hub tape, Infinite Recharge power port)
- Camera models (PS3 Eye zoom / wide)
"""

from .target_model import (
    TargetModel,
    RapidReactTargetModel,
    InfiniteRechargeTargetModel,
    create_target_model,
)
from .camera_model import (
    CameraModel,
    PS3EyeZoomModel,
    PS3EyeWideModel,
    create_camera_model,
)

__all__ = [
    'TargetModel',
    'RapidReactTargetModel',
    'InfiniteRechargeTargetModel',
    'create_target_model',
    'CameraModel',
    'PS3EyeZoomModel',
    'PS3EyeWideModel',
    'create_camera_model',
]
