"""Laser Pipe Profiler

Decodes triangulation-laser profile files, reconstructs each profile in 3D
world coordinates and tracks a pipe cross-section through the profiles.
Provides both a CLI tool and a Python API for programmatic use.
"""

__version__ = "0.1.0"
__author__ = "Laser Pipe Profiler Team"

# Import main API functions for convenience
from .core.binfile import FormatError, decode_bin_file, extract_pixel_coords
from .core.calibration import PoseConfig, load_pose_config, save_pose_config
from .core.detection import detect_pipe, fit_circle
from .core.interpolation import create_realistic_profile, interpolate_profile
from .core.pipeline import analyze_profile, track_pipe
from .core.triangulation import generate_synthetic_profile, triangulate

__all__ = [
    "decode_bin_file",
    "extract_pixel_coords",
    "FormatError",
    "interpolate_profile",
    "create_realistic_profile",
    "PoseConfig",
    "load_pose_config",
    "save_pose_config",
    "triangulate",
    "generate_synthetic_profile",
    "detect_pipe",
    "fit_circle",
    "analyze_profile",
    "track_pipe",
]
