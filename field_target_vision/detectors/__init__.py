"""
Detectors Module
================

Retroreflective target detection and pose estimation:
- Result types and wire format (VisionData, VisionMessage)
- TargetFinder pipeline
- Debug rendering
"""

from .base import (
    VisionStatus,
    VisionData,
    VisionMessage,
    FinderResult,
    encode_messages,
    decode_messages,
)
from .target_finder import (
    TargetFinder,
    TargetSection,
    Target,
    CornerRefinement,
    refine_corners,
)
from .debug_draw import draw_debug_image
from .factory import create_finder

__all__ = [
    'VisionStatus',
    'VisionData',
    'VisionMessage',
    'FinderResult',
    'encode_messages',
    'decode_messages',
    'TargetFinder',
    'TargetSection',
    'Target',
    'CornerRefinement',
    'refine_corners',
    'draw_debug_image',
    'create_finder',
]
