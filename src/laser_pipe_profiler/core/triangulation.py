"""Camera ray / laser plane triangulation of profile pixels.

World frame:
    x  cross-track (left/right)
    y  elevation (up/down)
    z  depth, growing away from the camera

Rig conventions:
    - Euler angles are (pitch, yaw, roll) in degrees applied as intrinsic
      X-Y-Z rotations, with pitch negated so a positive pitch turns the
      local +Z axis towards world +Y.
    - The laser fan lies in its local XY plane emitting along +Z and is
      mounted rotated 90 degrees about X, so its plane normal in local
      coordinates is -Y.
"""

import logging

import numpy as np
from scipy.spatial.transform import Rotation

from .calibration import PoseConfig

logger = logging.getLogger(__name__)

EULER_ORDER = "XYZ"
PITCH_SIGN = -1.0
LASER_LOCAL_NORMAL = np.array([0.0, -1.0, 0.0])
DEFAULT_IMAGE_HEIGHT = 1152

SEABED_DEPTH_MM = 1500.0
SYNTHETIC_EXTENT_DIAMETERS = 3.0


def rig_rotation(pitch: float, yaw: float, roll: float) -> Rotation:
    """Orientation of a rig component from its panel angles in degrees."""
    return Rotation.from_euler(EULER_ORDER, [PITCH_SIGN * pitch, yaw, roll], degrees=True)


def camera_rotation(pose: PoseConfig) -> Rotation:
    return rig_rotation(pose.cam_pitch, pose.cam_yaw, pose.cam_roll)


def laser_plane(pose: PoseConfig) -> tuple[np.ndarray, np.ndarray]:
    """Return (unit normal, point on plane) of the laser sheet in world space."""
    normal = rig_rotation(pose.laser_pitch, pose.laser_yaw, pose.laser_roll).as_matrix() @ LASER_LOCAL_NORMAL
    normal /= np.linalg.norm(normal)
    return normal, np.array(pose.laser_position, dtype=float)


def plane_residuals(points: np.ndarray, pose: PoseConfig) -> np.ndarray:
    """Signed distance of each point to the laser plane (mm)."""
    normal, origin = laser_plane(pose)
    return (np.asarray(points, dtype=float).reshape(-1, 3) - origin) @ normal


def pixel_rays(columns: np.ndarray, rows: np.ndarray, pose: PoseConfig) -> np.ndarray:
    """Unit ray directions in camera space for pixel (column, row) pairs.

    Rows grow downwards in the image, so they map to decreasing local Y.
    """
    cx = pose.image_width / 2
    cy = (pose.image_height or DEFAULT_IMAGE_HEIGHT) / 2
    px_mm = pose.pixel_size_um / 1000.0

    dirs = np.column_stack(
        [
            (columns - cx) * px_mm / pose.focal_length_mm,
            (cy - rows) * px_mm / pose.focal_length_mm,
            np.ones(len(columns)),
        ]
    )
    return dirs / np.linalg.norm(dirs, axis=1, keepdims=True)


def triangulate(columns, rows, pose: PoseConfig) -> np.ndarray:
    """Intersect camera rays through profile pixels with the laser plane.

    Pixels whose ray is parallel to the plane, meets it behind the camera,
    or lands at a depth not beyond the camera are dropped, so the output is
    in input order but not index aligned with it.

    Args:
        columns: Pixel column (u) of each sample
        rows: Pixel row (v) of each sample, sub-pixel
        pose: Camera and laser geometry

    Returns:
        Array of shape (N, 3) with world x, y, z in mm
    """
    columns = np.asarray(columns, dtype=float).ravel()
    rows = np.asarray(rows, dtype=float).ravel()
    if columns.shape != rows.shape:
        raise ValueError(f"columns and rows differ in length: {len(columns)} vs {len(rows)}")
    if columns.size == 0:
        return np.empty((0, 3))

    origin = np.array(pose.camera_position, dtype=float)
    world_dirs = pixel_rays(columns, rows, pose) @ camera_rotation(pose).as_matrix().T
    normal, plane_point = laser_plane(pose)

    denom = world_dirs @ normal
    hit = np.abs(denom) > 1e-12
    t = np.full(len(denom), -1.0)
    t[hit] = ((plane_point - origin) @ normal) / denom[hit]
    hit &= t >= 0

    points = origin + t[hit, None] * world_dirs[hit]
    points = points[points[:, 2] > origin[2]]

    dropped = len(columns) - len(points)
    if dropped:
        logger.debug("Dropped %d of %d pixels without a hit in front of the camera", dropped, len(columns))
    return points


def generate_synthetic_profile(
    pose: PoseConfig, diameter_mm: float = 200.0, offset_x: float = 0.0, num_points: int = 512
) -> np.ndarray:
    """Closed-form profile of a pipe lying on a flat seabed.

    The seabed sits 1500 mm beyond the camera, the pipe touches it and the
    laser sees the upper half of its cross-section. Seabed samples get a
    small deterministic sinusoidal texture. Each point's y is solved from
    the laser plane so the cloud is consistent with ``triangulate``.

    Args:
        pose: Camera and laser geometry
        diameter_mm: Pipe outer diameter
        offset_x: Cross-track position of the pipe centre
        num_points: Number of samples across the profile

    Returns:
        Array of shape (num_points, 3)
    """
    if diameter_mm <= 0:
        raise ValueError(f"diameter_mm must be positive, got {diameter_mm}")
    if num_points < 2:
        raise ValueError(f"num_points must be at least 2, got {num_points}")

    radius = diameter_mm / 2
    seabed_z = pose.cam_z + SEABED_DEPTH_MM
    centre_z = seabed_z - radius

    extent = diameter_mm * SYNTHETIC_EXTENT_DIAMETERS
    x = np.linspace(offset_x - extent, offset_x + extent, num_points)
    dx = x - offset_x

    on_pipe = np.abs(dx) <= radius
    texture = np.sin(x * 0.05) * 0.5 + np.sin(x * 0.13) * 0.3
    z = np.where(
        on_pipe,
        centre_z - np.sqrt(np.clip(radius * radius - dx * dx, 0.0, None)),
        seabed_z + texture,
    )

    normal, plane_point = laser_plane(pose)
    if abs(normal[1]) < 1e-6:
        y = np.zeros_like(x)
    else:
        y = plane_point[1] - (normal[0] * (x - plane_point[0]) + normal[2] * (z - plane_point[2])) / normal[1]

    return np.column_stack([x, y, z])
