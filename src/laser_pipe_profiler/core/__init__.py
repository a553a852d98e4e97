"""Core decoding, geometry and fitting modules."""

from .binfile import (
    CommentDecodeWarning,
    DecodeWarning,
    FormatError,
    TruncationWarning,
    VersionMismatchWarning,
    decode_bin_file,
    decode_header,
    describe_file,
    extract_pixel_coords,
)
from .calibration import PoseConfig, load_pose_config, parse_vector_string, save_pose_config
from .detection import circle_from_three_points, detect_pipe, fit_circle
from .interpolation import create_realistic_profile, interpolate_profile
from .metrics import calculate_deviation_metrics, detection_statistics, summarize_detections
from .pipeline import ProfileAnalysis, analyze_profile, analyze_synthetic, profile_to_points, track_pipe
from .triangulation import generate_synthetic_profile, laser_plane, plane_residuals, triangulate
from .types import (
    BinFileData,
    CircleFit,
    DecodeDiagnostic,
    FileHeader,
    LaserProfile,
    PipeDetection,
    ProfilePoint,
)

__all__ = [
    # Decoding
    "decode_bin_file",
    "decode_header",
    "describe_file",
    "extract_pixel_coords",
    "FormatError",
    "DecodeWarning",
    "TruncationWarning",
    "CommentDecodeWarning",
    "VersionMismatchWarning",
    # Interpolation
    "interpolate_profile",
    "create_realistic_profile",
    # Pose
    "PoseConfig",
    "load_pose_config",
    "save_pose_config",
    "parse_vector_string",
    # Triangulation
    "triangulate",
    "generate_synthetic_profile",
    "laser_plane",
    "plane_residuals",
    # Detection
    "circle_from_three_points",
    "fit_circle",
    "detect_pipe",
    # Metrics
    "calculate_deviation_metrics",
    "summarize_detections",
    "detection_statistics",
    # Pipeline
    "ProfileAnalysis",
    "profile_to_points",
    "analyze_profile",
    "track_pipe",
    "analyze_synthetic",
    # Types
    "FileHeader",
    "ProfilePoint",
    "LaserProfile",
    "BinFileData",
    "DecodeDiagnostic",
    "CircleFit",
    "PipeDetection",
]
