"""Tests for profile triangulation and pipe tracking across a file."""

import numpy as np
import pytest

from laser_pipe_profiler.core.binfile import decode_bin_file
from laser_pipe_profiler.core.calibration import PoseConfig
from laser_pipe_profiler.core.pipeline import analyze_profile, analyze_synthetic, profile_to_points, track_pipe
from laser_pipe_profiler.core.triangulation import plane_residuals
from laser_pipe_profiler.core.types import LaserProfile


def _flat_profile(count, row=300.0, width=2):
    return LaserProfile(
        index=0,
        y_offset=np.full(count, row),
        intensity=np.full(count, 50, dtype=np.uint8),
        width=np.full(count, width, dtype=np.uint8),
        start_offset=12,
    )


class TestProfileToPoints:
    def test_only_valid_columns(self, default_pose):
        profile = _flat_profile(16)
        profile.width[::2] = 0
        points = profile_to_points(profile, default_pose.with_image_width(16))

        assert points.shape == (8, 3)
        np.testing.assert_allclose(plane_residuals(points, default_pose), 0.0, atol=1e-6)

    def test_too_few_samples(self, default_pose):
        profile = _flat_profile(16)
        profile.width[2:] = 0

        assert profile_to_points(profile, default_pose).shape == (0, 3)

    def test_interpolated_profile(self, default_pose):
        points = profile_to_points(_flat_profile(8), default_pose, interpolate_to=64)

        assert points.shape == (64, 3)
        np.testing.assert_allclose(plane_residuals(points, default_pose), 0.0, atol=1e-6)
        # Dense columns span an image 64 px wide centred on the optical axis
        assert points[:, 0].min() < 0 < points[:, 0].max()


class TestTrackPipe:
    def test_pipe_found_in_every_profile(self, pipe_profile_bytes):
        data = decode_bin_file(pipe_profile_bytes)
        analyses = track_pipe(data, PoseConfig(), 200.0, rng=np.random.default_rng(0), iterations=1000)

        assert [a.profile_index for a in analyses] == [0, 1, 2]
        assert [a.used_previous for a in analyses] == [False, True, True]
        for analysis in analyses:
            assert analysis.detection is not None
            assert analysis.detection.diameter == pytest.approx(200.0, abs=0.5)
            assert analysis.detection.cx == pytest.approx(0.0, abs=0.5)
            assert analysis.detection.cz == pytest.approx(1400.0, abs=0.5)

    def test_without_tracking(self, pipe_profile_bytes):
        data = decode_bin_file(pipe_profile_bytes)
        analyses = track_pipe(
            data, PoseConfig(), 200.0, rng=np.random.default_rng(1), iterations=1000, tracking=False
        )

        assert not any(a.used_previous for a in analyses)

    def test_profile_subset(self, pipe_profile_bytes):
        data = decode_bin_file(pipe_profile_bytes)
        analyses = track_pipe(
            data, PoseConfig(), 200.0, rng=np.random.default_rng(2), iterations=1000, profile_indices=[2, 0]
        )

        assert [a.profile_index for a in analyses] == [2, 0]

    def test_sensor_width_from_file(self, bin_builder):
        # A 4-column file triangulates as a 4 px wide image
        data = decode_bin_file(bin_builder([("", [(300 * 16, 10, 1)] * 4)]))
        analyses = track_pipe(data, PoseConfig(), 200.0, rng=np.random.default_rng(0))

        xs = analyses[0].points[:, 0]
        assert xs[2] == pytest.approx(0.0, abs=1e-9)
        assert xs[0] == pytest.approx(-2 * xs[3])

    def test_profile_index_out_of_range(self, pipe_profile_bytes):
        data = decode_bin_file(pipe_profile_bytes)
        with pytest.raises(IndexError):
            track_pipe(data, PoseConfig(), 200.0, profile_indices=[7])

    def test_negative_profile_index_rejected(self, pipe_profile_bytes):
        data = decode_bin_file(pipe_profile_bytes)
        with pytest.raises(IndexError, match="-1"):
            track_pipe(data, PoseConfig(), 200.0, profile_indices=[0, -1])


class TestAnalyzeProfile:
    def test_empty_profile(self, default_pose):
        analysis = analyze_profile(_flat_profile(32, width=0), default_pose, 200.0)

        assert analysis.detection is None
        assert analysis.points.shape == (0, 3)
        assert analysis.to_dict() == {
            "profile_index": 0,
            "point_count": 0,
            "used_previous": False,
            "detection": None,
        }


def test_analyze_synthetic(default_pose):
    analysis = analyze_synthetic(
        default_pose, diameter_mm=300.0, offset_x=-40.0, rng=np.random.default_rng(9), iterations=5000
    )

    assert analysis.profile_index == -1
    assert analysis.points.shape == (512, 3)
    assert analysis.detection.diameter == pytest.approx(300.0, abs=0.5)
    assert analysis.detection.cx == pytest.approx(-40.0, abs=0.5)
