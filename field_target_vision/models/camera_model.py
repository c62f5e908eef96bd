"""
Camera Models
=============

Intrinsic matrix and distortion coefficients for calibrated cameras.
"""

from typing import Dict, Callable

import numpy as np


class CameraModel:
    """
    Immutable pinhole camera model.

    Args:
        camera_matrix: 3x3 intrinsic matrix
        distortion_coefficients: Distortion vector (k1, k2, p1, p2[, k3...])
        name: Model name for logging
    """

    def __init__(self, camera_matrix, distortion_coefficients, name: str = "custom"):
        matrix = np.array(camera_matrix, dtype=np.float64).reshape(3, 3)
        dist = np.array(distortion_coefficients, dtype=np.float64).reshape(-1, 1)
        matrix.setflags(write=False)
        dist.setflags(write=False)

        self._camera_matrix = matrix
        self._distortion = dist
        self.name = name

    def intrinsics(self) -> np.ndarray:
        return self._camera_matrix

    def distortion_coefficients(self) -> np.ndarray:
        return self._distortion

    @property
    def focal_length(self) -> tuple:
        return (self._camera_matrix[0, 0], self._camera_matrix[1, 1])

    @property
    def principal_point(self) -> tuple:
        return (self._camera_matrix[0, 2], self._camera_matrix[1, 2])

    def __repr__(self) -> str:
        fx, fy = self.focal_length
        return f"CameraModel({self.name}, fx={fx:.1f}, fy={fy:.1f})"


class PS3EyeZoomModel(CameraModel):
    """PS3 Eye at the zoom (narrow) lens setting, 640x480."""

    def __init__(self):
        super().__init__(
            [[7.8260817835479315e+02, 0.0, 3.1426738665012704e+02],
             [0.0, 7.8260817835479315e+02, 2.2242433404695547e+02],
             [0.0, 0.0, 1.0]],
            [-3.5326210117989726e-02, -1.1750649659599417e+00, 0.0, 0.0, 1.3380806380359025e+00],
            name="ps3eye_zoom")


class PS3EyeWideModel(CameraModel):
    """PS3 Eye at the wide angle lens setting, 640x480."""

    def __init__(self):
        super().__init__(
            [[5.3978998477177777e+02, 0.0, 3.1387384515857258e+02],
             [0.0, 5.3959736049747960e+02, 2.3186414031626754e+02],
             [0.0, 0.0, 1.0]],
            [-1.2177044514044434e-01, 1.6107320330688607e-01, -1.0523229353437240e-03,
             -3.2604889426788471e-03, 0.0],
            name="ps3eye_wide")


_registry: Dict[str, Callable[[], CameraModel]] = {
    'ps3eye_zoom': PS3EyeZoomModel,
    'ps3eye_wide': PS3EyeWideModel,
}

_aliases: Dict[str, str] = {
    'ps3eye': 'ps3eye_zoom',
    'zoom': 'ps3eye_zoom',
    'wide': 'ps3eye_wide',
}


def create_camera_model(name: str = "ps3eye_zoom") -> CameraModel:
    """
    Create a camera model by name.

    Raises:
        ValueError: If the name is not registered
    """
    resolved = name.lower().strip()
    resolved = _aliases.get(resolved, resolved)

    if resolved not in _registry:
        available = ', '.join(_registry.keys())
        raise ValueError(f"Unknown camera model: '{name}'. Available models: {available}")

    return _registry[resolved]()
