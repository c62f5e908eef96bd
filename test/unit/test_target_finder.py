"""
Target Finder Tests
===================

Unit tests for the detection and pose pipeline on synthetic frames.
"""

import math
import os
import pytest
import cv2
import numpy as np

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from field_target_vision.core.config import Config
from field_target_vision.detectors import (
    TargetFinder,
    TargetSection,
    Target,
    VisionStatus,
    refine_corners,
    create_finder,
)
from field_target_vision.detectors.debug_draw import draw_debug_image, readout_lines
from field_target_vision.models import RapidReactTargetModel, TargetModel

# Three 60x24 strips across the top and one large outlier below
STRIPS = [
    (70, 108, 130, 132),
    (290, 108, 350, 132),
    (510, 108, 570, 132),
]
OUTLIER = (220, 310, 420, 390)


class ThreePointModel(TargetModel):
    """Model whose sub-target is missing a corner."""

    def __init__(self):
        super().__init__([(0, 0, 0), (1, 0, 0), (0, 1, 0)])

    @property
    def name(self):
        return "three_point"

    def sub_target_key_points(self, index):
        return self.key_points()


def projected_target(camera, tvec, rvec=(0.0, 0.0, 0.0)):
    """Target whose corners are the exact projection of the strip at a known pose."""
    points = np.array(RapidReactTargetModel().sub_target_key_points(0))
    image_points, _ = cv2.projectPoints(
        points,
        np.array(rvec, dtype=np.float64),
        np.array(tvec, dtype=np.float64),
        np.array(camera.intrinsics()),
        np.zeros(5))
    corners = image_points.reshape(-1, 2).astype(np.float32)
    center = corners.mean(axis=0)
    target = Target(sections=[TargetSection(
        corners=corners,
        rect=((float(center[0]), float(center[1])), (0.0, 0.0), 0.0),
        shape_factor=0.6,
        center=(float(center[0]), float(center[1])),
        area=0.0,
    )])
    target.center = (float((corners[0][0] + corners[1][0]) / 2), float((corners[0][1] + corners[1][1]) / 2))
    return target


@pytest.fixture
def finder(config, pinhole_camera):
    return TargetFinder(RapidReactTargetModel(), pinhole_camera, config=config)


class TestPipeline:
    """Test full frame processing."""

    def test_empty_frame(self, finder, make_frame):
        """Test a black frame yields nothing."""
        result = finder.process(make_frame([]))

        assert result.contours_found == False
        assert result.data == []
        assert result.frame_size == (640, 480)

    def test_strips_found_and_sorted(self, finder, make_frame):
        """Test three strips are found, the outlier dropped, ids follow image x."""
        result = finder.process(make_frame(STRIPS + [OUTLIER]))

        assert result.contours_found == True
        assert len(result.data) == 3
        assert [d.target_id for d in result.data] == [0, 1, 2]

        xs = [d.image_x for d in result.data]
        assert xs == sorted(xs)
        assert xs[0] < -0.5
        assert abs(xs[1]) < 0.05
        assert xs[2] > 0.5

        for d in result.data:
            assert d.image_y == pytest.approx(0.5, abs=0.02)

    def test_center_strip_pose(self, finder, make_frame):
        """Test the solved depth matches the strip's apparent size."""
        result = finder.process(make_frame(STRIPS + [OUTLIER]))

        center = result.data[1]
        # 127 mm over 60 px at f=782.6
        expected_z = 782.6 * 127.0 / 60.0

        assert center.status == VisionStatus.TARGET_FOUND
        assert center.z == pytest.approx(expected_z, rel=0.1)
        assert center.dist > 500.0
        assert len(result.found_targets) == 3

    def test_default_size_threshold_drops_ideal_rectangles(self, pinhole_camera, make_frame):
        """Test 4-point contours fall below the default point count threshold."""
        finder = TargetFinder(RapidReactTargetModel(), pinhole_camera, config=Config())

        result = finder.process(make_frame(STRIPS))

        assert result.contours_found == False
        assert result.data == []

    def test_shape_filter(self, finder, make_frame):
        """Test long thin bars fall outside the shape factor band."""
        result = finder.process(make_frame([(100, 100, 300, 110), (100, 300, 300, 310)]))

        assert result.contours_found == True
        assert result.data == []

    def test_edge_filter(self, finder, make_frame):
        """Test a strip centered near the border is dropped."""
        result = finder.process(make_frame([(0, 0, 15, 6)]))

        assert result.data == []

    def test_out_of_band_color(self, finder, make_frame):
        """Test red strips are not segmented."""
        result = finder.process(make_frame(STRIPS, color=(0, 0, 200)))

        assert result.contours_found == False

    def test_debug_images(self, config, pinhole_camera, make_frame):
        """Test debug canvases are kept when enabled."""
        config.diagnostics.display_debug_images = True
        finder = TargetFinder(RapidReactTargetModel(), pinhole_camera, config=config)

        finder.process(make_frame(STRIPS))

        names = [name for name, _ in finder.debug_images]
        assert names == ["Raw", "Contours", "Ranged"]
        _, contours = finder.debug_images[1]
        assert contours.shape == (480, 640)
        assert contours.max() == 255

    def test_no_debug_images_by_default(self, finder, make_frame):
        finder.process(make_frame(STRIPS))

        assert finder.debug_images == []

    def test_stats(self, finder, make_frame):
        finder.process(make_frame([]))
        finder.process(make_frame(STRIPS))

        stats = finder.get_stats()
        assert stats['frame_count'] == 2
        assert stats['target_model'] == "rapid_react"
        assert finder.last_result is not None


class TestSections:
    """Test polygon scoring."""

    def test_non_quadrilateral_rejected(self, finder):
        triangle = np.array([[[100, 100]], [[200, 100]], [[150, 180]]], dtype=np.int32)

        assert finder.target_sections_from_contours([triangle], (640, 480)) == []

    def test_section_fields(self, finder):
        strip = np.array([[[100, 100]], [[160, 100]], [[160, 124]], [[100, 124]]], dtype=np.int32)

        sections = finder.target_sections_from_contours([strip], (640, 480))

        assert len(sections) == 1
        section = sections[0]
        assert section.corners.shape == (4, 2)
        assert section.center == (130.0, 112.0)
        assert section.area == pytest.approx(1440.0)
        assert 0.4 < section.shape_factor < 0.8

    def test_one_target_per_section(self, finder):
        strip = np.array([[[100, 100]], [[160, 100]], [[160, 124]], [[100, 124]]], dtype=np.int32)
        sections = finder.target_sections_from_contours([strip, strip + 200], (640, 480))

        targets = finder.group_target_sections(sections)

        assert len(targets) == 2
        assert all(len(t.sections) == 1 for t in targets)


class TestCornerRefinement:
    """Test subpixel refinement."""

    def test_failure_returns_input(self):
        """Test a color image makes refinement fail without raising."""
        corners = np.array([[10, 10], [50, 10], [50, 30], [10, 30]], dtype=np.float32)
        color = np.zeros((64, 64, 3), dtype=np.uint8)

        refinement = refine_corners(color, corners)

        assert refinement.refined == False
        assert refinement.error
        np.testing.assert_array_equal(refinement.corners, corners)

    def test_refined_near_true_corners(self, make_frame):
        gray = cv2.cvtColor(make_frame([(100, 100, 160, 124)]), cv2.COLOR_BGR2GRAY)
        corners = np.array([[101, 101], [159, 101], [159, 123], [101, 123]], dtype=np.float32)

        refinement = refine_corners(gray, corners)

        assert refinement.refined == True
        assert refinement.corners.shape == (4, 2)
        assert np.all(np.abs(refinement.corners - corners) < 3.0)

    def test_failed_refinement_still_ordered(self, finder):
        """Test raw corners are put in canonical order when refinement fails."""
        corners = np.array([[10, 10], [50, 10], [50, 30], [10, 30]], dtype=np.float32)
        target = Target(sections=[TargetSection(corners, ((30, 20), (40, 20), 90.0), 0.6, (30.0, 20.0), 800.0)])

        finder.refine_target_corners([target], np.zeros((64, 64, 3), dtype=np.uint8))

        np.testing.assert_array_equal(target.sections[0].corners, [[50, 30], [10, 10], [50, 10], [10, 30]])
        assert target.center == (30.0, 20.0)


class TestPose:
    """Test pose solving and frame transforms on exact projections."""

    def test_camera_frame_pose(self, finder, pinhole_camera):
        target = projected_target(pinhole_camera, (-60.0, -25.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))
        data = target.data

        assert data.status == VisionStatus.TARGET_FOUND
        assert data.x == pytest.approx(-60.0 + 215.0, abs=1.0)
        assert data.y == pytest.approx(-25.0, abs=1.0)
        assert data.z == pytest.approx(2000.0, abs=1.0)
        assert data.pitch == pytest.approx(0.0, abs=0.1)
        assert data.yaw == pytest.approx(0.0, abs=0.1)
        assert data.roll == pytest.approx(0.0, abs=0.1)
        assert target.solver_tvec.ravel()[2] == pytest.approx(2000.0, abs=1.0)

    def test_bearing_and_distance(self, finder, pinhole_camera):
        target = projected_target(pinhole_camera, (300.0, 0.0, 1500.0))

        finder.find_target_transforms([target], (640, 480))
        data = target.data

        assert data.theta == pytest.approx(-math.degrees(math.atan2(data.x, data.z)))
        assert data.dist == pytest.approx(math.hypot(data.x, data.z))
        assert target.robot_distance == data.dist
        assert data.theta < 0

    def test_yaw(self, finder, pinhole_camera):
        """Test rotation about the vertical axis is reported as yaw."""
        target = projected_target(pinhole_camera, (-60.0, -25.0, 2000.0), rvec=(0.0, 0.3, 0.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.yaw == pytest.approx(math.degrees(0.3), abs=0.5)
        assert target.data.pitch == pytest.approx(0.0, abs=0.5)

    def test_too_close(self, finder, pinhole_camera):
        """Test depth below the floor downgrades to not found."""
        target = projected_target(pinhole_camera, (-60.0, -25.0, 400.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.status == VisionStatus.NO_TARGET_FOUND
        assert target.data.z == pytest.approx(400.0, abs=1.0)

    def test_just_beyond_floor(self, finder, pinhole_camera):
        target = projected_target(pinhole_camera, (-60.0, -25.0, 600.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.status == VisionStatus.TARGET_FOUND

    def test_config_offset(self, config, pinhole_camera):
        config.processing.z_offset = 100.0
        config.processing.x_offset = 50.0
        finder = TargetFinder(RapidReactTargetModel(), pinhole_camera, config=config)
        target = projected_target(pinhole_camera, (0.0, 0.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.z == pytest.approx(1900.0, abs=1.0)
        assert target.data.x == pytest.approx(-50.0 + 215.0, abs=1.0)

    def test_explicit_offset_survives_update(self, config, pinhole_camera):
        finder = TargetFinder(RapidReactTargetModel(), pinhole_camera, config=config, offset=(0, 0, 10))
        new_config = Config()
        new_config.processing.z_offset = 500.0

        finder.update_config(new_config)

        np.testing.assert_allclose(finder.offset.ravel(), [0, 0, 10])
        assert finder.config is new_config

    def test_config_offset_follows_update(self, finder):
        new_config = Config()
        new_config.processing.y_offset = 33.0

        finder.update_config(new_config)

        np.testing.assert_allclose(finder.offset.ravel(), [0, 33.0, 0])

    def test_world_coordinates(self, config, pinhole_camera):
        """Test inverted transform reports the camera in the target frame."""
        config.processing.use_world_coordinates = True
        finder = TargetFinder(RapidReactTargetModel(), pinhole_camera, config=config)
        target = projected_target(pinhole_camera, (-60.0, -25.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))
        data = target.data

        assert data.z == pytest.approx(-2000.0, abs=1.0)
        assert data.x == pytest.approx(60.0 + 215.0, abs=1.0)
        assert data.y == pytest.approx(25.0, abs=1.0)
        assert data.status == VisionStatus.NO_TARGET_FOUND

    def test_solver_failure(self, finder, pinhole_camera, monkeypatch):
        monkeypatch.setattr(cv2, 'solvePnP', lambda *args, **kwargs: (False, None, None))
        target = projected_target(pinhole_camera, (0.0, 0.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.status == VisionStatus.PROCESSING_ERROR
        assert target.solver_rvec is None

    def test_solver_exception(self, finder, pinhole_camera, monkeypatch):
        def fail(*args, **kwargs):
            raise cv2.error("solver failed")

        monkeypatch.setattr(cv2, 'solvePnP', fail)
        target = projected_target(pinhole_camera, (0.0, 0.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.status == VisionStatus.PROCESSING_ERROR

    def test_missing_key_points(self, config, pinhole_camera):
        finder = TargetFinder(ThreePointModel(), pinhole_camera, config=config)
        target = projected_target(pinhole_camera, (0.0, 0.0, 2000.0))

        finder.find_target_transforms([target], (640, 480))

        assert target.data.status == VisionStatus.PROCESSING_ERROR

    def test_image_position_set_on_failure(self, finder, pinhole_camera, monkeypatch):
        monkeypatch.setattr(cv2, 'solvePnP', lambda *args, **kwargs: (False, None, None))
        target = projected_target(pinhole_camera, (0.0, 0.0, 2000.0))
        cx, cy = target.center

        finder.find_target_transforms([target], (640, 480))

        assert target.data.image_x == pytest.approx((cx - 320) / 320)
        assert target.data.image_y == pytest.approx((240 - cy) / 240)


class TestSorting:
    """Test result ordering."""

    def test_ids_follow_image_x(self, finder):
        targets = [Target(), Target(), Target()]
        for t, x in zip(targets, (0.5, -0.7, 0.1)):
            t.data.image_x = x

        ordered = finder.sort_targets(targets)

        assert [t.data.image_x for t in ordered] == [-0.7, 0.1, 0.5]
        assert [t.data.target_id for t in ordered] == [0, 1, 2]


class TestDebugDraw:
    """Test debug canvas rendering."""

    def test_readout_in_inches(self):
        target = Target()
        target.data.x = 5 * 25.4
        target.data.y = -2 * 25.4
        target.data.z = 100 * 25.4
        target.data.theta = -3.26
        target.robot_distance = 100 * 25.4

        lines = readout_lines(target)

        assert lines == ["X: 5.0", "Y: -2.0", "Z: 100.0", "Theta: -3.3", "rDist: 100.0"]

    def test_nothing_drawn_without_found_targets(self, pinhole_camera):
        image = np.zeros((480, 640, 3), dtype=np.uint8)
        target = Target()
        target.data.status = VisionStatus.PROCESSING_ERROR

        draw_debug_image(image, [target], RapidReactTargetModel(), pinhole_camera)

        assert image.max() == 0

    def test_found_target_drawn(self, finder, pinhole_camera):
        target = projected_target(pinhole_camera, (-60.0, -25.0, 2000.0))
        finder.find_target_transforms([target], (640, 480))
        image = np.zeros((480, 640, 3), dtype=np.uint8)

        draw_debug_image(image, [target], RapidReactTargetModel(), pinhole_camera)

        assert image.max() > 0


class TestFinderFactory:
    """Test finder creation from config."""

    def test_default(self):
        finder = create_finder(Config())

        assert finder.name == "Main"
        assert finder.target_model.name == "rapid_react"
        assert finder.camera_model.name == "ps3eye_zoom"

    def test_named(self):
        config = Config()
        config.vision.target_model = "infinite_recharge"

        finder = create_finder(config, name="Side")

        assert finder.name == "Side"
        assert finder.target_model.name == "infinite_recharge"

    def test_unknown_model(self):
        config = Config()
        config.vision.camera_model = "kinect"

        with pytest.raises(ValueError):
            create_finder(config)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
