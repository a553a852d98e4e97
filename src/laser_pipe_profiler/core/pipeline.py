"""Profile-to-detection pipeline and pipe tracking across a file."""

import logging
from dataclasses import dataclass

import numpy as np

from .binfile import extract_pixel_coords
from .calibration import PoseConfig
from .detection import DEFAULT_ITERATIONS, DEFAULT_TOLERANCE_MM, detect_pipe
from .interpolation import interpolate_profile
from .triangulation import generate_synthetic_profile, triangulate
from .types import BinFileData, LaserProfile, PipeDetection

logger = logging.getLogger(__name__)

MIN_PIXEL_SAMPLES = 3
SYNTHETIC_PROFILE_INDEX = -1


@dataclass(eq=False)
class ProfileAnalysis:
    """Triangulated points and pipe fit for one profile."""

    profile_index: int
    points: np.ndarray
    detection: PipeDetection | None
    used_previous: bool = False

    def to_dict(self) -> dict:
        return {
            "profile_index": self.profile_index,
            "point_count": int(len(self.points)),
            "used_previous": self.used_previous,
            "detection": self.detection.to_dict() if self.detection else None,
        }


def profile_to_points(profile: LaserProfile, pose: PoseConfig, interpolate_to: int | None = None) -> np.ndarray:
    """Triangulate the valid samples of a profile.

    Args:
        profile: Decoded profile
        pose: Camera and laser geometry
        interpolate_to: If given, densify the profile to this many columns
            before triangulating; the dense columns span an image of that
            width

    Returns:
        Array of shape (N, 3); empty when fewer than 3 samples are usable
    """
    if interpolate_to:
        dense = interpolate_profile(profile, interpolate_to, len(profile))
        columns = np.array([p.column for p in dense if p.valid], dtype=float)
        rows = np.array([p.y_offset for p in dense if p.valid], dtype=float)
        pose = pose.with_image_width(interpolate_to)
    else:
        columns, rows = extract_pixel_coords(profile)

    if len(columns) < MIN_PIXEL_SAMPLES:
        return np.empty((0, 3))

    return triangulate(columns, rows, pose)


def analyze_profile(
    profile: LaserProfile,
    pose: PoseConfig,
    expected_diameter: float,
    previous_result: PipeDetection | None = None,
    tolerance: float = DEFAULT_TOLERANCE_MM,
    rng: np.random.Generator | None = None,
    iterations: int = DEFAULT_ITERATIONS,
    interpolate_to: int | None = None,
) -> ProfileAnalysis:
    """Triangulate one profile and look for the pipe in it."""
    points = profile_to_points(profile, pose, interpolate_to)
    detection = detect_pipe(
        points,
        expected_diameter,
        previous_result=previous_result,
        tolerance=tolerance,
        rng=rng,
        iterations=iterations,
    )
    return ProfileAnalysis(profile.index, points, detection, previous_result is not None)


def track_pipe(
    data: BinFileData,
    pose: PoseConfig,
    expected_diameter: float,
    tolerance: float = DEFAULT_TOLERANCE_MM,
    rng: np.random.Generator | None = None,
    iterations: int = DEFAULT_ITERATIONS,
    interpolate_to: int | None = None,
    tracking: bool = True,
    match_sensor_width: bool = True,
    profile_indices=None,
) -> list[ProfileAnalysis]:
    """Detect the pipe in successive profiles of a file.

    The last successful detection is passed on to the next profile so the
    search stays near the pipe found so far.

    Args:
        data: Decoded file
        pose: Camera and laser geometry
        expected_diameter: Nominal pipe diameter in mm
        tolerance: Inlier distance in mm
        rng: Random source shared by all profiles
        iterations: Sampled triples per profile
        interpolate_to: Densify profiles to this many columns first
        tracking: Feed detections forward between profiles
        match_sensor_width: Use the file's points per profile as image width
        profile_indices: Subset of profile indices to analyze, in order

    Returns:
        List of ProfileAnalysis in processing order

    Raises:
        IndexError: If a profile index is negative or past the last profile
    """
    if match_sensor_width:
        pose = pose.with_image_width(data.header.points_per_profile)
    if rng is None:
        rng = np.random.default_rng()

    profiles = data.profiles
    if profile_indices is not None:
        for i in profile_indices:
            if not 0 <= i < data.profile_count:
                raise IndexError(f"Profile index {i} out of range (file has {data.profile_count} profiles)")
        profiles = [data.profiles[i] for i in profile_indices]

    analyses = []
    previous = None
    for profile in profiles:
        analysis = analyze_profile(
            profile,
            pose,
            expected_diameter,
            previous_result=previous if tracking else None,
            tolerance=tolerance,
            rng=rng,
            iterations=iterations,
            interpolate_to=interpolate_to,
        )
        analyses.append(analysis)
        if analysis.detection is not None:
            previous = analysis.detection

    detected = sum(1 for a in analyses if a.detection is not None)
    logger.info("Pipe found in %d of %d profiles", detected, len(analyses))
    return analyses


def analyze_synthetic(
    pose: PoseConfig,
    diameter_mm: float = 200.0,
    offset_x: float = 0.0,
    num_points: int = 512,
    expected_diameter: float | None = None,
    tolerance: float = DEFAULT_TOLERANCE_MM,
    rng: np.random.Generator | None = None,
    iterations: int = DEFAULT_ITERATIONS,
) -> ProfileAnalysis:
    """Run detection on a generated pipe-on-seabed profile (demo mode)."""
    points = generate_synthetic_profile(pose, diameter_mm, offset_x, num_points)
    detection = detect_pipe(
        points,
        expected_diameter or diameter_mm,
        tolerance=tolerance,
        rng=rng,
        iterations=iterations,
    )
    return ProfileAnalysis(SYNTHETIC_PROFILE_INDEX, points, detection)
