"""
Geometry Helpers
================

Pure numeric helpers used by the target finder: contour scoring,
frame-relative area statistics, canonical corner ordering and rigid
transform math.
"""

import math
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

SINGULAR_EPSILON = 1e-6


def shape_factor(polygon: np.ndarray) -> float:
    """
    Isoperimetric compactness 4*pi*A/P^2 of a closed polygon.

    1.0 for a circle, pi/4 for a square. 0.0 for a degenerate polygon.
    """
    pts = np.asarray(polygon, dtype=np.float32).reshape(-1, 1, 2)
    area = cv2.contourArea(pts)
    perimeter = cv2.arcLength(pts, True)
    if perimeter <= 0:
        return 0.0
    return (4.0 * math.pi * area) / (perimeter ** 2)


def area_bounds(areas: Iterable[float], factor: float = 1.25) -> Tuple[float, float]:
    """
    Accepted area band mean +/- factor * stddev (population stddev).

    Returns:
        (low, high); (-inf, inf) for an empty input
    """
    values = np.asarray(list(areas), dtype=np.float64)
    if values.size == 0:
        return (-math.inf, math.inf)
    mean = float(values.mean())
    std = float(values.std())
    return (mean - factor * std, mean + factor * std)


def is_area_outlier(area: float, bounds: Tuple[float, float]) -> bool:
    low, high = bounds
    return area < low or area > high


def normalize_rect_angle(rect) -> tuple:
    """
    Put a minAreaRect angle on the long-axis convention used for drawing.

    Adds 180 degrees when width < height, otherwise 90.
    """
    center, size, angle = rect
    if size[0] < size[1]:
        angle += 180.0
    else:
        angle += 90.0
    return (center, size, angle)


def is_near_edge(point, image_size: Tuple[int, int], margin: float) -> bool:
    """True if point is closer than margin to any edge of a (width, height) image."""
    x, y = point
    width, height = image_size
    return x < margin or x > width - margin or y < margin or y > height - margin


def order_corners(corners: np.ndarray, center) -> np.ndarray:
    """
    Order four corners by quadrant around center.

        0: x >= cx, y >= cy
        1: x <  cx, y <  cy
        2: x >= cx, y <  cy
        3: x <  cx, y >= cy

    Corners that land in an already filled quadrant fill the empty slots in
    their input order.

    Args:
        corners: Array of shape (4, 2)
        center: (cx, cy)

    Returns:
        New float32 array of shape (4, 2)
    """
    points = np.asarray(corners, dtype=np.float32).reshape(-1, 2)
    cx, cy = float(center[0]), float(center[1])

    slots: list = [None] * 4
    leftover = []
    for pt in points:
        x, y = float(pt[0]), float(pt[1])
        if x < cx:
            index = 1 if y < cy else 3
        else:
            index = 2 if y < cy else 0
        if slots[index] is None:
            slots[index] = pt
        else:
            leftover.append(pt)

    for i in range(len(slots)):
        if slots[i] is None and leftover:
            slots[i] = leftover.pop(0)

    return np.array([s for s in slots if s is not None], dtype=np.float32).reshape(-1, 2)


def euler_angles_from_rotation_matrix(R: np.ndarray) -> np.ndarray:
    """
    Decompose a rotation matrix into x, y, z angles (radians).

    Falls back to the gimbal lock form when sqrt(R00^2 + R10^2) is below
    SINGULAR_EPSILON.
    """
    sy = math.sqrt(R[0, 0] * R[0, 0] + R[1, 0] * R[1, 0])

    if sy > SINGULAR_EPSILON:
        x = math.atan2(R[2, 1], R[2, 2])
        y = math.atan2(-R[2, 0], sy)
        z = math.atan2(R[1, 0], R[0, 0])
    else:
        x = math.atan2(-R[1, 2], R[1, 1])
        y = math.atan2(-R[2, 0], sy)
        z = 0.0

    return np.array([x, y, z])


def invert_transform(R: np.ndarray, tvec: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Invert a rigid transform.

    Returns:
        (R^T, -R^T t)
    """
    R_inv = np.asarray(R, dtype=np.float64).T
    t_inv = -R_inv @ np.asarray(tvec, dtype=np.float64).reshape(3, 1)
    return R_inv, t_inv


def normalized_image_position(point, image_size: Tuple[int, int]) -> Tuple[float, float]:
    """
    Map a pixel position to (-1, 1) with +y up.

    Args:
        point: (x, y) in pixels
        image_size: (width, height)
    """
    half_w = image_size[0] / 2.0
    half_h = image_size[1] / 2.0
    return ((point[0] - half_w) / half_w, (half_h - point[1]) / half_h)


def bearing_and_distance(x: float, z: float) -> Tuple[float, float]:
    """
    Bearing (degrees, positive to the left) and planar distance to (x, z).
    """
    theta = -math.degrees(math.atan2(x, z))
    return theta, math.hypot(x, z)


def polygon_centroid(points: np.ndarray) -> Optional[Tuple[float, float]]:
    """Mean of polygon vertices, None for an empty polygon."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        return None
    c = pts.mean(axis=0)
    return (float(c[0]), float(c[1]))
