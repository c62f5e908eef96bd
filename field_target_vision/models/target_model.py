"""
Target Geometry Models
======================

Static catalogs of a physical field target's 3D key points.

Coordinates are in millimetres in the target frame: x to the right,
y down, z away from the viewer. Sub-target key points are returned in the
canonical corner order used by the finder (see detectors.geometry.order_corners):

    0: bottom-right   1: top-left   2: top-right   3: bottom-left
"""

from abc import ABC, abstractmethod
from typing import Dict, Type

import numpy as np

DEFAULT_AXES = [
    (0.0, 0.0, 0.0),
    (100.0, 0.0, 0.0),
    (0.0, 100.0, 0.0),
    (0.0, 0.0, 100.0),
]


def _frozen(points) -> np.ndarray:
    array = np.array(points, dtype=np.float64).reshape(-1, 3)
    array.setflags(write=False)
    return array


class TargetModel(ABC):
    """
    Base class for target geometry variants.

    Subclasses provide the full key point list, the axis points used for
    display, and the per sub-target key point subsets.
    """

    def __init__(self, key_points, axes=None):
        self._key_points = _frozen(key_points)
        self._axes = _frozen(axes if axes is not None else DEFAULT_AXES)

    @property
    @abstractmethod
    def name(self) -> str:
        """Target model name."""
        pass

    def key_points(self) -> np.ndarray:
        """All 3D key points of the target, shape (N, 3)."""
        return self._key_points

    def axes(self) -> np.ndarray:
        """Origin and axis end points for drawing, shape (4, 3)."""
        return self._axes

    @abstractmethod
    def sub_target_key_points(self, index: int) -> np.ndarray:
        """
        Key points of one sub-target, in canonical corner order.

        Args:
            index: Sub-target index

        Returns:
            Array of shape (4, 3), or shape (0, 3) for an unknown index
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(points={len(self._key_points)})"


class RapidReactTargetModel(TargetModel):
    """
    2022 upper hub vision tape strip: 5 in x 2 in rectangle.

    The first key point sits 500 mm behind the strip and is only used for
    reprojection in debug images.
    """

    def __init__(self):
        super().__init__([
            (0.0, 0.0, -500.0),
            (0.0, 0.0, 0.0),
            (127.0, 0.0, 0.0),
            (0.0, 50.8, 0.0),
            (127.0, 50.8, 0.0),
        ])
        # There is only one sub-target for this field
        kp = self._key_points
        self._sub_target = _frozen([kp[4], kp[1], kp[2], kp[3]])

    @property
    def name(self) -> str:
        return "rapid_react"

    def sub_target_key_points(self, index: int) -> np.ndarray:
        return self._sub_target


class InfiniteRechargeTargetModel(TargetModel):
    """2020 power port outline (trapezoid of the outer tape corners)."""

    def __init__(self):
        super().__init__([
            (0.0, 0.0, 0.0),
            (58.6486, 0.0, 0.0),
            (938.3014, 0.0, 0.0),
            (996.95, 0.0, 0.0),
            (278.384, 381.0, 0.0),
            (718.566, 381.0, 0.0),
            (249.047, 431.8, 0.0),
            (747.903, 431.8, 0.0),
        ])
        self._sub_targets = {
            0: _frozen([
                (747.903, 431.8, 0.0),
                (0.0, 0.0, 0.0),
                (996.95, 0.0, 0.0),
                (249.047, 431.8, 0.0),
            ]),
        }

    @property
    def name(self) -> str:
        return "infinite_recharge"

    def sub_target_key_points(self, index: int) -> np.ndarray:
        return self._sub_targets.get(index, _frozen([]))


_registry: Dict[str, Type[TargetModel]] = {
    'rapid_react': RapidReactTargetModel,
    'infinite_recharge': InfiniteRechargeTargetModel,
}

_aliases: Dict[str, str] = {
    '2022': 'rapid_react',
    'hub': 'rapid_react',
    '2020': 'infinite_recharge',
    'power_port': 'infinite_recharge',
}


def create_target_model(name: str = "rapid_react") -> TargetModel:
    """
    Create a target model by name.

    Raises:
        ValueError: If the name is not registered
    """
    resolved = name.lower().strip()
    resolved = _aliases.get(resolved, resolved)

    if resolved not in _registry:
        available = ', '.join(_registry.keys())
        raise ValueError(f"Unknown target model: '{name}'. Available models: {available}")

    return _registry[resolved]()
