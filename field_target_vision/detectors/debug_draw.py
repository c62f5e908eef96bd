"""Debug canvas rendering for found targets."""

from typing import List

import cv2
import numpy as np

from field_target_vision.models import CameraModel, TargetModel
from .base import VisionStatus

MM_PER_INCH = 25.4
COLOR_SEED = 4343466

TEXT_ORIGIN = (10, 30)
TEXT_LINE_HEIGHT = 20
TEXT_BLOCK_HEIGHT = 60
AVERAGE_THETA_Y = 430


def readout_lines(target) -> List[str]:
    data = target.data
    return [
        f"X: {data.x / MM_PER_INCH:03.1f}",
        f"Y: {data.y / MM_PER_INCH:03.1f}",
        f"Z: {data.z / MM_PER_INCH:03.1f}",
        f"Theta: {data.theta:03.1f}",
        f"rDist: {target.robot_distance / MM_PER_INCH:03.1f}",
    ]


def draw_debug_image(
    image: np.ndarray,
    targets: list,
    target_model: TargetModel,
    camera_model: CameraModel
) -> np.ndarray:
    """
    Draw found targets onto a BGR image in place.

    For each found target: a marker on corner 1, the full target key points
    reprojected through the solver pose, and position readouts in inches.
    The average bearing over found targets goes at the bottom.

    Returns:
        The same image
    """
    rng = np.random.default_rng(COLOR_SEED)
    camera_matrix = np.array(camera_model.intrinsics())
    distortion = np.array(camera_model.distortion_coefficients())
    key_points = np.array(target_model.key_points(), dtype=np.float64)

    thetas = []
    for index, target in enumerate(targets):
        if target.data.status != VisionStatus.TARGET_FOUND or target.solver_rvec is None:
            continue

        thetas.append(target.data.theta)
        color = tuple(int(c) for c in rng.integers(0, 255, size=3))

        projected, _ = cv2.projectPoints(
            key_points, target.solver_rvec, target.solver_tvec, camera_matrix, distortion)

        corners = target.sections[0].corners
        if len(corners) > 1:
            corner = (int(round(corners[1][0])), int(round(corners[1][1])))
            cv2.circle(image, corner, 5, color, 1, cv2.LINE_AA)

        for pt in projected.reshape(-1, 2):
            if np.all(np.isfinite(pt)):
                cv2.circle(image, (int(round(pt[0])), int(round(pt[1]))), 1, color, cv2.FILLED, cv2.LINE_AA)

        for line, text in enumerate(readout_lines(target)):
            y = TEXT_ORIGIN[1] + index * TEXT_BLOCK_HEIGHT + line * TEXT_LINE_HEIGHT
            cv2.putText(image, text, (TEXT_ORIGIN[0], y), cv2.FONT_HERSHEY_PLAIN, 1.0, color)

    if thetas:
        average = sum(thetas) / len(thetas)
        cv2.putText(image, f"Average Theta: {average:03.1f}", (TEXT_ORIGIN[0], AVERAGE_THETA_Y),
                    cv2.FONT_HERSHEY_PLAIN, 1.0, (255, 255, 255))

    return image
