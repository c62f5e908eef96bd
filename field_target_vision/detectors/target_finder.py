"""
Target Finder
=============

Per-frame detection and pose pipeline for retroreflective field targets.

Stages:
    frame -> HSV threshold + closing -> external contours -> size filter
          -> convex hull + polygon approximation -> section scoring
          -> targets -> subpixel corners -> pose solve -> frame transform
          -> results sorted by image x

Usage:
    finder = TargetFinder(create_target_model("rapid_react"),
                          create_camera_model("ps3eye_zoom"),
                          config=config)
    result = finder.process(frame)
    for data in result.data:
        print(data.target_id, data.status, data.x, data.z)
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple

import cv2
import numpy as np

from field_target_vision.core.config import Config
from field_target_vision.models import CameraModel, TargetModel
from .base import FinderResult, VisionData, VisionStatus
from .debug_draw import draw_debug_image
from . import geometry

logger = logging.getLogger(__name__)

# Initial guess for the pose solver: 2.5 m out, tilted slightly down
INITIAL_RVEC = (-0.3, 0.0, 0.0)
INITIAL_TVEC = (0.0, 0.0, 2500.0)


@dataclass
class TargetSection:
    """
    One candidate quadrilateral.

    Attributes:
        corners: Corner points, float32 array of shape (4, 2)
        rect: Minimum area rectangle ((cx, cy), (w, h), angle), angle normalized
        shape_factor: 4*pi*A/P^2 of the polygon
        center: Mean of the raw corners
        area: Polygon area in pixels
    """
    corners: np.ndarray
    rect: tuple
    shape_factor: float
    center: Tuple[float, float]
    area: float


@dataclass
class Target:
    """
    One physical target candidate and its solved pose.

    rvec/tvec hold the reported pose (offsets applied, inverted in world
    coordinate mode). solver_rvec/solver_tvec hold the raw solver output
    in the camera frame.
    """
    sections: List[TargetSection] = field(default_factory=list)
    rvec: Optional[np.ndarray] = None
    tvec: Optional[np.ndarray] = None
    solver_rvec: Optional[np.ndarray] = None
    solver_tvec: Optional[np.ndarray] = None
    center: Tuple[float, float] = (0.0, 0.0)
    robot_distance: float = 0.0
    data: VisionData = field(default_factory=VisionData)


class CornerRefinement(NamedTuple):
    """Outcome of subpixel refinement; corners are unchanged when refined is False."""
    corners: np.ndarray
    refined: bool
    error: str = ""


def refine_corners(
    gray: np.ndarray,
    corners: np.ndarray,
    window: int = 5,
    max_iterations: int = 100,
    epsilon: float = 0.1
) -> CornerRefinement:
    """
    Refine corners to subpixel accuracy on a grayscale image.

    Never raises for OpenCV failures; the input corners are returned instead.
    """
    original = np.asarray(corners, dtype=np.float32).reshape(-1, 2)
    if len(original) == 0:
        return CornerRefinement(original, False, "no corners")

    criteria = (cv2.TERM_CRITERIA_MAX_ITER | cv2.TERM_CRITERIA_EPS, int(max_iterations), float(epsilon))
    work = original.reshape(-1, 1, 2).copy()

    try:
        refined = cv2.cornerSubPix(gray, work, (int(window), int(window)), (-1, -1), criteria)
    except cv2.error as e:
        return CornerRefinement(original, False, str(e))

    return CornerRefinement(np.asarray(refined, dtype=np.float32).reshape(-1, 2), True)


class TargetFinder:
    """
    Finds field targets in a color frame and solves their pose.

    Args:
        target_model: Target geometry
        camera_model: Camera intrinsics
        config: Tunable parameters (defaults if None)
        offset: Robot-to-camera (x, y, z) offset; read from config.processing if None
        name: Finder name used for logging and debug window titles
    """

    def __init__(
        self,
        target_model: TargetModel,
        camera_model: CameraModel,
        config: Optional[Config] = None,
        offset: Optional[Tuple[float, float, float]] = None,
        name: str = "Main"
    ):
        self.name = name
        self._target_model = target_model
        self._camera_model = camera_model
        self._config = config or Config()
        self._explicit_offset = offset is not None
        self._offset = self._resolve_offset(offset)
        self._logger = logging.getLogger(f"{__name__}.{name}")

        self._debug_images: List[Tuple[str, np.ndarray]] = []

        # Statistics
        self._frame_count = 0
        self._total_processing_time = 0.0
        self._last_result: Optional[FinderResult] = None

    def _resolve_offset(self, offset) -> np.ndarray:
        if offset is None:
            p = self._config.processing
            offset = (p.x_offset, p.y_offset, p.z_offset)
        return np.array(offset, dtype=np.float64).reshape(3, 1)

    @property
    def target_model(self) -> TargetModel:
        return self._target_model

    @property
    def camera_model(self) -> CameraModel:
        return self._camera_model

    @property
    def config(self) -> Config:
        return self._config

    @property
    def offset(self) -> np.ndarray:
        return self._offset

    @property
    def debug_images(self) -> List[Tuple[str, np.ndarray]]:
        return list(self._debug_images)

    @property
    def last_result(self) -> Optional[FinderResult]:
        return self._last_result

    @property
    def average_processing_time(self) -> float:
        """Get average processing time in seconds."""
        if self._frame_count == 0:
            return 0.0
        return self._total_processing_time / self._frame_count

    def update_config(self, config: Config) -> None:
        """Use a new parameter set from the next frame on."""
        self._config = config
        if not self._explicit_offset:
            self._offset = self._resolve_offset(None)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def process(self, frame: np.ndarray) -> FinderResult:
        """
        Run the full pipeline on one BGR frame.

        Args:
            frame: Input image as numpy array (BGR format)

        Returns:
            FinderResult; data is empty when nothing was found
        """
        start_time = time.time()
        height, width = frame.shape[:2]
        image_size = (width, height)
        debug = self._config.diagnostics.display_debug_images

        result = FinderResult(frame_size=image_size)

        hsv, gray = self.convert_image(frame)
        ranged = self.filter_on_color(hsv)
        contour_image = np.zeros((height, width), dtype=np.uint8)

        targets: List[Target] = []
        contours = self.find_contours(ranged)

        if contours:
            result.contours_found = True

            approx = self.approximate_contours(contours, contour_image if debug else None)
            sections = self.target_sections_from_contours(approx, image_size)
            targets = self.group_target_sections(sections)

            self.refine_target_corners(targets, gray)
            self.find_target_transforms(targets, image_size)
            targets = self.sort_targets(targets)

        result.targets = targets
        result.data = [t.data for t in targets]

        if debug:
            canvas = frame.copy()
            draw_debug_image(canvas, targets, self._target_model, self._camera_model)
            self._debug_images = [
                ("Raw", canvas),
                ("Contours", contour_image),
                ("Ranged", ranged),
            ]

        result.processing_time = time.time() - start_time
        self._frame_count += 1
        self._total_processing_time += result.processing_time
        self._last_result = result

        return result

    def convert_image(self, frame: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Convert a BGR frame to HSV and grayscale."""
        hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        return hsv, gray

    def filter_on_color(self, hsv: np.ndarray) -> np.ndarray:
        """Threshold HSV bounds and close gaps in the mask."""
        hsv_config = self._config.hsv_filter
        ranged = cv2.inRange(hsv, np.array(hsv_config.low, dtype=np.uint8),
                             np.array(hsv_config.high, dtype=np.uint8))

        iterations = int(hsv_config.morphology_iterations)
        if iterations > 0:
            ranged = cv2.morphologyEx(ranged, cv2.MORPH_CLOSE, None, iterations=iterations)

        return ranged

    def find_contours(self, ranged: np.ndarray) -> list:
        """
        Outer contours of the mask with at least contour_size_threshold points.

        Returns:
            List of contours, empty if none survive
        """
        contours, _ = cv2.findContours(ranged, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        threshold = self._config.processing.contour_size_threshold
        contours = [c for c in contours if len(c) >= threshold]

        if not contours:
            self._logger.debug("find_contours(): No contours found")

        return contours

    def approximate_contours(self, contours: list, canvas: Optional[np.ndarray] = None) -> list:
        """
        Convex hull then polygon approximation of each contour.

        Args:
            contours: Contours from find_contours
            canvas: Single channel image to draw filled polygons on, or None
        """
        accuracy = self._config.processing.contour_approximation_accuracy
        approx = []

        for i, contour in enumerate(contours):
            hull = cv2.convexHull(contour)
            polygon = cv2.approxPolyDP(hull, accuracy, True)
            self._logger.debug(f"Contour {i} approxPoly points: {len(polygon)}")
            approx.append(polygon)

        if canvas is not None and approx:
            cv2.drawContours(canvas, approx, -1, 255, cv2.FILLED, cv2.LINE_AA)

        return approx

    def target_sections_from_contours(self, contours: list, image_size: Tuple[int, int]) -> List[TargetSection]:
        """
        Score polygons and keep the ones that look like target sections.

        Args:
            contours: Approximated polygons
            image_size: (width, height) of the frame
        """
        p = self._config.processing
        if not contours:
            return []

        rects = [cv2.minAreaRect(c) for c in contours]
        rect_areas = [r[1][0] * r[1][1] for r in rects]
        bounds = geometry.area_bounds(rect_areas, p.area_stddev_factor)

        self._logger.debug(f"Contour area band: {bounds[0]:.1f} .. {bounds[1]:.1f}")

        sections = []
        for i, (contour, rect, rect_area) in enumerate(zip(contours, rects, rect_areas)):
            if len(contour) != 4:
                continue

            factor = geometry.shape_factor(contour)
            self._logger.debug(f"Contour {i} shape factor {factor:.3f}")

            if not (p.shape_factor_min < factor < p.shape_factor_max):
                continue

            if geometry.is_area_outlier(rect_area, bounds):
                self._logger.debug(f"Area outlier {rect_area:.1f}")
                continue

            if geometry.is_near_edge(rect[0], image_size, p.image_edge_threshold):
                continue

            corners = np.asarray(contour, dtype=np.float32).reshape(-1, 2)
            sections.append(TargetSection(
                corners=corners,
                rect=geometry.normalize_rect_angle(rect),
                shape_factor=factor,
                center=geometry.polygon_centroid(corners),
                area=float(cv2.contourArea(corners)),
            ))

        return sections

    def group_target_sections(self, sections: List[TargetSection]) -> List[Target]:
        """One target per section."""
        # TODO: assemble multi-section targets once a target model needs more than sub-target 0
        return [Target(sections=[section]) for section in sections]

    def refine_target_corners(self, targets: List[Target], gray: np.ndarray) -> None:
        """Subpixel corners in canonical order; target center from corners 0 and 1."""
        p = self._config.processing

        for target in targets:
            centers = []
            for section in target.sections:
                if len(section.corners) == 0:
                    continue

                refinement = refine_corners(
                    gray, section.corners,
                    window=p.corner_window,
                    max_iterations=p.max_corner_subpixel_iterations,
                    epsilon=p.corner_subpixel_threshold)

                if not refinement.refined:
                    self._logger.error(f"refine_target_corners() failed: {refinement.error}")

                section.corners = geometry.order_corners(refinement.corners, section.center)
                if len(section.corners) >= 2:
                    centers.append((section.corners[0] + section.corners[1]) / 2.0)

            if centers:
                c = np.mean(centers, axis=0)
                target.center = (float(c[0]), float(c[1]))

    def find_target_transforms(self, targets: List[Target], image_size: Tuple[int, int]) -> None:
        """Solve the pose of each target and fill in its VisionData."""
        for target in targets:
            target.data.image_x, target.data.image_y = geometry.normalized_image_position(
                target.center, image_size)
            self._solve_target(target)

    def _solve_target(self, target: Target) -> None:
        p = self._config.processing
        data = target.data

        if len(target.sections) != 1:
            self._logger.error(f"Incorrect number of target sections: {len(target.sections)}")
            return

        key_points = np.array(self._target_model.sub_target_key_points(0), dtype=np.float64)
        image_points = np.array(target.sections[0].corners, dtype=np.float64).reshape(-1, 2)

        if len(key_points) != 4 or len(image_points) != 4:
            self._logger.error(f"Need 4 key points and 4 image points, got {len(key_points)}, {len(image_points)}")
            data.status = VisionStatus.PROCESSING_ERROR
            return

        rvec = np.array(INITIAL_RVEC, dtype=np.float64).reshape(3, 1)
        tvec = np.array(INITIAL_TVEC, dtype=np.float64).reshape(3, 1)

        try:
            solved, rvec, tvec = cv2.solvePnP(
                key_points, image_points,
                np.array(self._camera_model.intrinsics()),
                np.array(self._camera_model.distortion_coefficients()),
                rvec=rvec, tvec=tvec, useExtrinsicGuess=True, flags=cv2.SOLVEPNP_AP3P)
        except cv2.error as e:
            self._logger.debug(f"Pose solver error: {e}")
            solved = False

        if not solved:
            self._logger.debug("Failed to find target transform")
            data.status = VisionStatus.PROCESSING_ERROR
            return

        target.solver_rvec = rvec.reshape(3, 1).copy()
        target.solver_tvec = tvec.reshape(3, 1).copy()

        # Offsets are applied while the solution is still camera-relative
        tvec = tvec.reshape(3, 1) - self._offset
        R, _ = cv2.Rodrigues(rvec)

        if p.use_world_coordinates:
            R, tvec = geometry.invert_transform(R, tvec)
            rvec, _ = cv2.Rodrigues(R)

        pitch, yaw, roll = (math.degrees(a) for a in geometry.euler_angles_from_rotation_matrix(R))

        data.status = VisionStatus.TARGET_FOUND
        data.x = float(tvec[0, 0]) + p.shooter_offset
        data.y = float(tvec[1, 0])
        data.z = float(tvec[2, 0])
        data.pitch = pitch
        data.yaw = yaw
        data.roll = roll
        data.theta, data.dist = geometry.bearing_and_distance(data.x, data.z)

        target.rvec = rvec.reshape(3, 1)
        target.tvec = tvec
        target.robot_distance = data.dist

        if data.z < p.min_target_depth:
            data.status = VisionStatus.NO_TARGET_FOUND
            self._logger.debug(f"Invalid z found: {data.z:.1f}")

    def sort_targets(self, targets: List[Target]) -> List[Target]:
        """Sort by image x and number the targets in that order."""
        ordered = sorted(targets, key=lambda t: t.data.image_x)
        for i, target in enumerate(ordered):
            target.data.target_id = i
        return ordered

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def show_debug_images(self) -> None:
        """Show the last debug images in OpenCV windows."""
        for image_name, image in self._debug_images:
            window_name = f"{self.name} {image_name}"
            cv2.namedWindow(window_name, cv2.WINDOW_KEEPRATIO)
            cv2.imshow(window_name, image)

    def get_stats(self) -> dict:
        """Get finder statistics."""
        return {
            'name': self.name,
            'target_model': self._target_model.name,
            'camera_model': self._camera_model.name,
            'frame_count': self._frame_count,
            'average_processing_time': self.average_processing_time,
        }
