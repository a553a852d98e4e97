"""Shared fixtures: .bin file builder and rendered pipe profiles."""

import math
import struct

import numpy as np
import pytest

from laser_pipe_profiler.core.calibration import PoseConfig


def build_bin_file(profiles, points_per_profile=None, file_format=2, version=1, header_size=12, reserved=(0, 0)):
    """Encode profiles as a .bin buffer.

    Args:
        profiles: List of (comment, points) where comment is str or bytes and
            points is a list of (y_raw, intensity, width)
        points_per_profile: Header P value (defaults to the first profile's length)
    """
    if points_per_profile is None:
        points_per_profile = len(profiles[0][1]) if profiles else 1

    out = bytearray(struct.pack(">5H", (file_format << 8) | version, header_size, points_per_profile, *reserved))
    out += b"\0" * max(0, header_size - len(out))

    for comment, points in profiles:
        payload = comment if isinstance(comment, bytes) else comment.encode("utf-8")
        out += struct.pack(">h", len(payload)) + payload
        for y_raw, intensity, width in points:
            out += struct.pack(">HBB", y_raw, intensity, width)

    return bytes(out)


def render_pipe_rows(pose, diameter_mm=200.0, seabed_z=1500.0):
    """Image rows at which the default rig sees a pipe resting on a flat seabed.

    Only valid for an unrotated camera at the origin and a laser at
    (0, laser_y, 0) pitched about X, which is what PoseConfig defaults to.
    """
    k = pose.pixel_size_um / 1000.0 / pose.focal_length_mm
    cx = pose.image_width / 2
    cy = (pose.image_height or 1152) / 2
    pitch = math.radians(pose.laser_pitch)
    radius = diameter_mm / 2
    centre_z = seabed_z - radius

    rows = np.empty(pose.image_width)
    on_pipe = np.zeros(pose.image_width, dtype=bool)
    for u in range(pose.image_width):
        a = (u - cx) * k
        # (z - cz)^2 + (a z)^2 = r^2, nearer root
        qa = 1 + a * a
        disc = centre_z**2 - qa * (centre_z**2 - radius**2)
        if disc >= 0:
            z = (centre_z - math.sqrt(disc)) / qa
            on_pipe[u] = True
        else:
            z = seabed_z
        # Laser plane: -cos(p) * (y - laser_y) + sin(p) * z = 0 with y = s * z
        s = math.tan(pitch) + pose.laser_y / z
        rows[u] = cy - s / k

    return rows, on_pipe


@pytest.fixture
def bin_builder():
    return build_bin_file


@pytest.fixture
def default_pose():
    return PoseConfig()


@pytest.fixture
def pipe_profile_bytes():
    """Three identical profiles of a 200 mm pipe seen by the default rig at 2048 columns.

    Columns farther than 400 px from the image centre are marked invalid.
    """
    pose = PoseConfig(image_width=2048)
    rows, _ = render_pipe_rows(pose)
    columns = np.arange(2048)
    width = np.where(np.abs(columns - 1024) <= 400, 3, 0)
    points = [(int(round(v * 16)), 120, int(w)) for v, w in zip(rows, width)]
    return build_bin_file([('{"frame": %d}' % i, points) for i in range(3)])
