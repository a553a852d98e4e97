"""Tests for ray/plane triangulation and synthetic profiles."""

import math

import numpy as np
import pytest

from laser_pipe_profiler.core.calibration import PoseConfig
from laser_pipe_profiler.core.triangulation import (
    camera_rotation,
    generate_synthetic_profile,
    laser_plane,
    plane_residuals,
    triangulate,
)


class TestRig:
    """Rotation and plane conventions."""

    def test_default_laser_plane(self, default_pose):
        normal, point = laser_plane(default_pose)

        np.testing.assert_allclose(normal, [0.0, -math.cos(math.radians(30)), 0.5], atol=1e-12)
        np.testing.assert_allclose(point, [0.0, -500.0, 0.0])

    def test_positive_pitch_turns_axis_up(self):
        axis = camera_rotation(PoseConfig(cam_pitch=10)).apply([0.0, 0.0, 1.0])

        np.testing.assert_allclose(axis, [0.0, math.sin(math.radians(10)), math.cos(math.radians(10))], atol=1e-12)

    def test_identity_camera(self, default_pose):
        np.testing.assert_allclose(camera_rotation(default_pose).as_matrix(), np.eye(3), atol=1e-12)


class TestTriangulate:
    """Pixel to world intersection."""

    def test_principal_point(self, default_pose):
        points = triangulate([1024], [576], default_pose)

        assert points.shape == (1, 3)
        np.testing.assert_allclose(points[0], [0.0, 0.0, 500 * math.sqrt(3)], atol=1e-9)

    def test_points_lie_on_laser_plane(self, default_pose):
        columns = np.linspace(0, 2047, 50)
        rows = np.linspace(100, 500, 50)
        points = triangulate(columns, rows, default_pose)

        assert len(points) == 50
        np.testing.assert_allclose(plane_residuals(points, default_pose), 0.0, atol=1e-6)
        assert np.all(points[:, 2] > 0)

    def test_column_maps_to_cross_track_sign(self, default_pose):
        points = triangulate([100, 1024, 1900], [576, 576, 576], default_pose)

        assert points[0, 0] < 0 < points[2, 0]
        assert points[1, 0] == pytest.approx(0.0, abs=1e-9)

    def test_plane_behind_camera_gives_nothing(self):
        pose = PoseConfig(laser_pitch=90, laser_z=-100)
        points = triangulate(np.arange(0, 2048, 64), np.full(32, 576.0), pose)

        assert points.shape == (0, 3)

    def test_rays_meeting_plane_behind_camera_are_dropped(self, default_pose):
        # Rays pointing steeply up meet the plane behind the camera
        points = triangulate([1024, 1024], [576, -50000], default_pose)

        assert len(points) == 1

    def test_empty_input(self, default_pose):
        assert triangulate([], [], default_pose).shape == (0, 3)

    def test_length_mismatch(self, default_pose):
        with pytest.raises(ValueError):
            triangulate([1, 2, 3], [1, 2], default_pose)

    def test_image_height_fallback(self):
        pose = PoseConfig(image_height=None)
        np.testing.assert_allclose(triangulate([1024], [576], pose), triangulate([1024], [576], PoseConfig()))


class TestSyntheticProfile:
    """Generated pipe-on-seabed profiles."""

    def test_shape_and_plane(self, default_pose):
        points = generate_synthetic_profile(default_pose, num_points=256)

        assert points.shape == (256, 3)
        np.testing.assert_allclose(plane_residuals(points, default_pose), 0.0, atol=1e-6)

    def test_pipe_top_and_seabed(self, default_pose):
        points = generate_synthetic_profile(default_pose, diameter_mm=200, offset_x=50)

        assert points[:, 2].min() == pytest.approx(1300.0, abs=0.1)
        assert points[np.argmin(points[:, 2]), 0] == pytest.approx(50.0, abs=2.0)
        assert points[:, 2].max() <= 1501.0
        assert points[0, 0] == pytest.approx(50 - 600)
        assert points[-1, 0] == pytest.approx(50 + 600)

    def test_deterministic(self, default_pose):
        np.testing.assert_array_equal(
            generate_synthetic_profile(default_pose), generate_synthetic_profile(default_pose)
        )

    def test_vertical_plane_normal(self):
        pose = PoseConfig(laser_pitch=90)
        points = generate_synthetic_profile(pose, num_points=16)

        np.testing.assert_array_equal(points[:, 1], 0.0)

    @pytest.mark.parametrize("kwargs", [{"num_points": 1}, {"diameter_mm": 0}])
    def test_invalid_arguments(self, default_pose, kwargs):
        with pytest.raises(ValueError):
            generate_synthetic_profile(default_pose, **kwargs)
