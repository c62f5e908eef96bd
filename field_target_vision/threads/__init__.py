"""Worker threads."""

from .vision_loop import VisionLoop

__all__ = ['VisionLoop']
