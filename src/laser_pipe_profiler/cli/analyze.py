"""CLI for detecting pipes in laser profile files."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from glob import glob

import numpy as np

from ..core.binfile import FormatError, describe_file
from ..core.calibration import PoseConfig, load_pose_config, parse_vector_string, save_pose_config
from ..core.detection import DEFAULT_ITERATIONS, DEFAULT_TOLERANCE_MM
from ..core.metrics import detection_statistics, summarize_detections
from ..core.pipeline import analyze_synthetic, track_pipe
from ..utils.file_io import read_bin_file, results_to_json, validate_bin_file


def create_argument_parser() -> argparse.ArgumentParser:
    """Create argument parser for the analyze command."""
    parser = argparse.ArgumentParser(
        description="Triangulate laser profiles and track a pipe of known diameter.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Track a 200 mm pipe through every profile of a file
  laser-pipe-analyze survey.bin --diameter-mm 200

  # Use a saved rig pose and look at a single profile
  laser-pipe-analyze survey.bin --pose-from rig.json --profile 42 --json

  # Densify sparse profiles to 2048 columns before triangulating
  laser-pipe-analyze sparse.bin --interpolate 2048

  # Demo mode without a file
  laser-pipe-analyze --synthetic --diameter-mm 300 --seed 1
        """,
    )

    # Input
    parser.add_argument("files", nargs="*", help="Path(s) to laser .bin files. Supports wildcards.")
    parser.add_argument(
        "--synthetic",
        action="store_true",
        help="Analyze a generated pipe-on-seabed profile instead of files",
    )
    parser.add_argument(
        "--synthetic-offset-mm",
        type=float,
        default=0.0,
        help="Cross-track offset of the synthetic pipe (default: 0)",
    )

    # Pose
    pose_group = parser.add_argument_group("Pose")
    pose_group.add_argument("--pose-from", help="Load camera/laser pose from a JSON file")
    pose_group.add_argument("--camera-pos", help="Camera position as 'x,y,z' in mm")
    pose_group.add_argument("--camera-rot", help="Camera rotation as 'pitch,roll,yaw' in degrees")
    pose_group.add_argument("--laser-pos", help="Laser position as 'x,y,z' in mm")
    pose_group.add_argument("--laser-rot", help="Laser rotation as 'pitch,roll,yaw' in degrees")
    pose_group.add_argument("--focal-length-mm", type=float, help="Lens focal length in mm")
    pose_group.add_argument("--pixel-size-um", type=float, help="Sensor pixel pitch in micrometres")
    pose_group.add_argument("--image-height", type=int, help="Sensor height in pixels")
    pose_group.add_argument("--save-pose", help="Save the resulting pose to a JSON file for reuse")

    # Detection
    detect_group = parser.add_argument_group("Detection")
    detect_group.add_argument(
        "--diameter-mm",
        type=float,
        default=200.0,
        help="Expected pipe diameter in mm (default: 200)",
    )
    detect_group.add_argument(
        "--tolerance-mm",
        type=float,
        default=DEFAULT_TOLERANCE_MM,
        help=f"Inlier distance from the fitted circle in mm (default: {DEFAULT_TOLERANCE_MM:g})",
    )
    detect_group.add_argument(
        "--iterations",
        type=int,
        default=DEFAULT_ITERATIONS,
        help=f"Sampled point triples per profile (default: {DEFAULT_ITERATIONS})",
    )
    detect_group.add_argument("--seed", type=int, help="Random seed for reproducible detections")
    detect_group.add_argument(
        "--no-tracking",
        action="store_true",
        help="Do not narrow the search around the previous profile's pipe",
    )

    # Profiles
    profile_group = parser.add_argument_group("Profiles")
    profile_group.add_argument("--profile", type=int, action="append", help="Only analyze this profile index (repeatable)")
    profile_group.add_argument("--interpolate", type=int, help="Densify profiles to this many columns first")

    # Output
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("--info", action="store_true", help="Print file header information only")
    output_group.add_argument("--json", action="store_true", help="Print per-profile results as JSON")
    output_group.add_argument("--quiet", action="store_true", help="Only print the final summary")
    output_group.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return parser


def validate_arguments(args) -> None:
    """Validate command line arguments."""
    if not args.files and not args.synthetic:
        raise SystemExit("Error: No input files specified (use --synthetic for demo mode)")
    if args.diameter_mm <= 0:
        raise SystemExit("Error: --diameter-mm must be positive")
    if args.tolerance_mm <= 0:
        raise SystemExit("Error: --tolerance-mm must be positive")
    if args.iterations <= 0:
        raise SystemExit("Error: --iterations must be positive")
    if args.interpolate is not None and args.interpolate <= 0:
        raise SystemExit("Error: --interpolate must be positive")


def build_pose(args) -> PoseConfig:
    """Assemble the pose from a JSON file and command line overrides."""
    pose = load_pose_config(args.pose_from) if args.pose_from else PoseConfig()
    overrides = {}

    for option, keys in (
        ("camera_pos", ("cam_x", "cam_y", "cam_z")),
        ("camera_rot", ("cam_pitch", "cam_roll", "cam_yaw")),
        ("laser_pos", ("laser_x", "laser_y", "laser_z")),
        ("laser_rot", ("laser_pitch", "laser_roll", "laser_yaw")),
    ):
        vector = parse_vector_string(getattr(args, option))
        if vector:
            overrides.update(zip(keys, vector))

    if args.focal_length_mm is not None:
        overrides["focal_length_mm"] = args.focal_length_mm
    if args.pixel_size_um is not None:
        overrides["pixel_size_um"] = args.pixel_size_um
    if args.image_height is not None:
        overrides["image_height"] = args.image_height

    return replace(pose, **overrides) if overrides else pose


def expand_file_patterns(patterns: list[str], quiet: bool = False) -> list[str]:
    """Expand wildcard patterns into file paths."""
    paths = []
    for pattern in patterns:
        if "*" in pattern or "?" in pattern:
            matches = sorted(glob(pattern))
            if matches:
                paths.extend(matches)
            elif not quiet:
                print(f"Warning: No files match pattern '{pattern}'")
        else:
            paths.append(pattern)
    return paths


def analyze_single_file(file_path: str, pose: PoseConfig, args, rng: np.random.Generator) -> dict:
    """Decode one file and track the pipe through its profiles."""
    if not args.quiet:
        print(f"Analyzing: {file_path}")

    try:
        data = read_bin_file(file_path)
    except (OSError, FormatError) as e:
        if not args.quiet:
            print(f"Error reading {file_path}: {e}")
        return {"file": file_path, "error": str(e)}

    info = describe_file(data)
    if args.info:
        return {"file": file_path, "info": info}

    try:
        analyses = track_pipe(
            data,
            pose,
            args.diameter_mm,
            tolerance=args.tolerance_mm,
            rng=rng,
            iterations=args.iterations,
            interpolate_to=args.interpolate,
            tracking=not args.no_tracking,
            profile_indices=args.profile,
        )
    except IndexError as e:
        if not args.quiet:
            print(f"Error analyzing {file_path}: {e}")
        return {"file": file_path, "error": str(e)}

    frame = summarize_detections(analyses)
    return {
        "file": file_path,
        "info": info,
        "statistics": detection_statistics(frame),
        "profiles": [a.to_dict() for a in analyses],
    }


def print_summary(result: dict) -> None:
    """Print a human readable summary for one analyzed file."""
    print(f"\n{result['file']}")
    if result.get("error"):
        print(f"  Error: {result['error']}")
        return

    info = result["info"]
    print(f"  Profiles: {info['profile_count']} x {info['points_per_profile']} points")
    for diagnostic in info["diagnostics"]:
        print(f"  Warning: {diagnostic}")

    stats = result.get("statistics")
    if not stats:
        return

    print(f"  Detections: {stats['detections']}/{stats['profiles']} ({stats['detection_rate']:.0%})")
    if stats["detections"]:
        print(f"  Mean diameter: {stats['mean_diameter_mm']:.2f} ± {stats['std_diameter_mm']:.2f} mm")
        print(f"  Range: {stats['min_diameter_mm']:.2f} - {stats['max_diameter_mm']:.2f} mm")
        print(f"  Mean RMS: {stats['mean_rms_mm']:.3f} mm")


def main():
    """Main entry point for the analyze command."""
    parser = create_argument_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    validate_arguments(args)

    # Machine-readable modes keep stdout a single JSON document
    if args.json or args.info or args.synthetic:
        args.quiet = True

    try:
        pose = build_pose(args)
    except (OSError, ValueError) as e:
        print(f"Error: Invalid pose configuration: {e}")
        sys.exit(1)

    if args.save_pose:
        saved = save_pose_config(args.save_pose, pose)
        if not args.quiet:
            print(f"Saved pose to: {saved}")

    rng = np.random.default_rng(args.seed)

    if args.synthetic:
        analysis = analyze_synthetic(
            pose,
            args.diameter_mm,
            args.synthetic_offset_mm,
            expected_diameter=args.diameter_mm,
            tolerance=args.tolerance_mm,
            rng=rng,
            iterations=args.iterations,
        )
        print(results_to_json(analysis.to_dict()))
        sys.exit(0 if analysis.detection else 1)

    file_paths = expand_file_patterns(args.files, args.quiet)
    if not file_paths:
        print("Error: No valid .bin files specified")
        sys.exit(1)

    missing = [p for p in file_paths if not validate_bin_file(p)]
    if missing:
        print("Error: The following files were not found or are not .bin files:")
        for path in missing:
            print(f"  {path}")
        sys.exit(1)

    results = [analyze_single_file(path, pose, args, rng) for path in file_paths]

    if args.json or args.info:
        print(results_to_json(results if len(results) > 1 else results[0]))
    else:
        for result in results:
            print_summary(result)

    if any(r.get("error") for r in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
