"""Robust pipe cross-section detection in triangulated profiles.

Profiles are fitted in the x/z plane (cross-track vs. depth). The pipe is
expected to bulge towards the camera, so a valid circle has its centre
deeper than the visible arc.
"""

import logging

import numpy as np

from .metrics import calculate_deviation_metrics
from .types import CircleFit, PipeDetection

logger = logging.getLogger(__name__)

MIN_POINTS = 15
MIN_INLIERS = 15
MIN_TRACKING_CANDIDATES = 20
DEFAULT_ITERATIONS = 100
DEFAULT_TOLERANCE_MM = 8.0
RADIUS_TOLERANCE_FRACTION = 0.25
TRACKING_WINDOW_RADII = 1.5
COLLINEAR_EPS = 1e-6
SINGULAR_EPS = 1e-12


def circle_from_three_points(p1, p2, p3) -> tuple[float, float, float] | None:
    """Circle through three (x, z) points from intersecting perpendicular bisectors.

    Returns:
        Tuple (cx, cz, radius), or None for (near) collinear points
    """
    x1, z1 = float(p1[0]), float(p1[1])
    x2, z2 = float(p2[0]), float(p2[1])
    x3, z3 = float(p3[0]), float(p3[1])

    b, c = x2 - x1, z2 - z1
    d, e = x3 - x1, z3 - z1
    f = x2 * x2 - x1 * x1 + z2 * z2 - z1 * z1
    g = x3 * x3 - x1 * x1 + z3 * z3 - z1 * z1
    det = 2 * (b * e - c * d)

    if abs(det) < COLLINEAR_EPS:
        return None

    cx = (e * f - c * g) / det
    cz = (b * g - d * f) / det
    return cx, cz, float(np.hypot(x1 - cx, z1 - cz))


def fit_circle(points: np.ndarray) -> CircleFit | None:
    """Algebraic least-squares (Kasa) circle fit.

    Minimises sum((x^2 + z^2 + D*x + E*z + F)^2) by solving the 3x3 normal
    equations with Cramer's rule. Coordinates are centred on their mean
    first, which leaves the fitted circle unchanged.

    Args:
        points: Array of (x, z) points, or (x, y, z) points of which x and z
            are used

    Returns:
        CircleFit, or None for fewer than 3 points, a singular system or a
        non-positive squared radius
    """
    pts = _cross_section(points)
    n = len(pts)
    if n < 3:
        return None

    mean_x, mean_z = pts.mean(axis=0)
    u = pts[:, 0] - mean_x
    w = pts[:, 1] - mean_z
    uu, ww = u * u, w * w

    A = np.array(
        [
            [uu.sum(), (u * w).sum(), u.sum()],
            [(u * w).sum(), ww.sum(), w.sum()],
            [u.sum(), w.sum(), n],
        ]
    )
    b = -np.array([(uu * u + u * ww).sum(), (uu * w + ww * w).sum(), (uu + ww).sum()])

    det_a = np.linalg.det(A)
    if abs(det_a) < SINGULAR_EPS:
        return None

    solution = []
    for col in range(3):
        replaced = A.copy()
        replaced[:, col] = b
        solution.append(np.linalg.det(replaced) / det_a)
    D, E, F = solution

    r_squared = (D * D + E * E) / 4 - F
    if r_squared <= 0:
        return None

    cx = mean_x - D / 2
    cz = mean_z - E / 2
    radius = float(np.sqrt(r_squared))
    rms = calculate_deviation_metrics(pts, cx, cz, radius)["rms"]
    return CircleFit(float(cx), float(cz), radius, rms)


def detect_pipe(
    points: np.ndarray,
    expected_diameter: float,
    previous_result: PipeDetection | None = None,
    tolerance: float = DEFAULT_TOLERANCE_MM,
    rng: np.random.Generator | None = None,
    iterations: int = DEFAULT_ITERATIONS,
) -> PipeDetection | None:
    """Detect a pipe of roughly known diameter in a profile point cloud.

    Random triples of points propose circles; proposals with a plausible
    radius and a centre behind the sampled arc are scored by how many points
    lie within ``tolerance`` of them. The best proposal's supporting points
    are refitted with ``fit_circle``.

    Args:
        points: Array of shape (N, 3) with x, y, z in mm, in profile order
        expected_diameter: Nominal pipe diameter in mm
        previous_result: Detection from the previous profile; when given,
            sampling is restricted to points near its centre
        tolerance: Inlier distance from the circle in mm
        rng: Random source, e.g. ``np.random.default_rng(seed)`` for
            reproducible results
        iterations: Number of sampled triples

    Returns:
        PipeDetection, or None when the cloud is too small or nothing
        circle-like of the expected size is found
    """
    if expected_diameter <= 0:
        raise ValueError(f"expected_diameter must be positive, got {expected_diameter}")

    cloud = _as_cloud(points)
    if len(cloud) < MIN_POINTS:
        return None

    if rng is None:
        rng = np.random.default_rng()

    expected_radius = expected_diameter / 2
    radius_tolerance = expected_radius * RADIUS_TOLERANCE_FRACTION
    x = cloud[:, 0]
    z = cloud[:, 2]

    candidates = _search_indices(x, expected_radius, previous_result)
    cand_x = x[candidates]
    cand_z = z[candidates]

    best_mask = None
    best_count = 0

    for _ in range(iterations):
        i1, i2, i3 = candidates[rng.integers(0, len(candidates), size=3)]
        if i1 == i2 or i2 == i3 or i1 == i3:
            continue

        circle = circle_from_three_points((x[i1], z[i1]), (x[i2], z[i2]), (x[i3], z[i3]))
        if circle is None:
            continue
        cx, cz, radius = circle

        if abs(radius - expected_radius) > radius_tolerance:
            continue
        if not cz > max(z[i1], z[i2], z[i3]):
            continue

        mask = np.abs(np.hypot(cand_x - cx, cand_z - cz) - radius) < tolerance
        count = int(np.count_nonzero(mask))
        if count > best_count:
            best_count = count
            best_mask = mask

    if best_mask is None or best_count < MIN_INLIERS:
        logger.debug("No pipe: best hypothesis had %d inliers", best_count)
        return None

    inliers = candidates[best_mask]
    refined = fit_circle(np.column_stack([x[inliers], z[inliers]]))
    if refined is None:
        logger.debug("No pipe: refinement over %d inliers failed", len(inliers))
        return None

    return PipeDetection(
        cx=refined.cx,
        cz=refined.cz,
        radius=refined.radius,
        rms=refined.rms,
        diameter=2 * refined.radius,
        inlier_start=int(inliers.min()),
        inlier_end=int(inliers.max()),
        inlier_count=len(inliers),
    )


def _search_indices(x: np.ndarray, expected_radius: float, previous_result: PipeDetection | None) -> np.ndarray:
    """Point indices to sample from, narrowed around a previous detection."""
    if previous_result is not None:
        prev_cx = previous_result.cx
        half_window = expected_radius * TRACKING_WINDOW_RADII
        near = np.flatnonzero((x >= prev_cx - half_window) & (x <= prev_cx + half_window))
        if len(near) >= MIN_TRACKING_CANDIDATES:
            return near
    return np.arange(len(x))


def _as_cloud(points) -> np.ndarray:
    cloud = np.asarray(points, dtype=float)
    if cloud.size == 0:
        return np.empty((0, 3))
    if cloud.ndim != 2 or cloud.shape[1] != 3:
        raise ValueError(f"Expected points of shape (N, 3), got {cloud.shape}")
    return cloud


def _cross_section(points) -> np.ndarray:
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        return np.empty((0, 2))
    if pts.ndim != 2 or pts.shape[1] not in (2, 3):
        raise ValueError(f"Expected points of shape (N, 2) or (N, 3), got {pts.shape}")
    if pts.shape[1] == 3:
        pts = pts[:, [0, 2]]
    return pts
