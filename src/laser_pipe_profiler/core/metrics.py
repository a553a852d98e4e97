"""Fit quality metrics and per-file detection summaries."""

from collections.abc import Iterable
from typing import Any

import numpy as np
import pandas as pd

SUMMARY_COLUMNS = [
    "profile_index",
    "point_count",
    "detected",
    "cx_mm",
    "cz_mm",
    "diameter_mm",
    "rms_mm",
    "inlier_count",
    "inlier_start",
    "inlier_end",
    "used_previous",
]


def calculate_deviation_metrics(points: np.ndarray, center_x: float, center_z: float, radius: float) -> dict[str, float]:
    """Calculate radial deviation metrics of cross-section points.

    Args:
        points: Array of (x, z) points
        center_x: Circle center x-coordinate
        center_z: Circle center z-coordinate
        radius: Circle radius

    Returns:
        Dictionary with rms, max, std and range of the signed radial
        deviations (all in input units)
    """
    points = np.asarray(points, dtype=float)
    radii = np.hypot(points[:, 0] - center_x, points[:, 1] - center_z)
    deviations = radii - radius

    return {
        "rms": float(np.sqrt(np.mean(deviations**2))),
        "max_abs": float(np.max(np.abs(deviations))),
        "std": float(np.std(deviations)),
        "range": float(np.max(deviations) - np.min(deviations)),
    }


def summarize_detections(analyses: Iterable) -> pd.DataFrame:
    """Tabulate profile analyses, one row per profile.

    Args:
        analyses: Iterable of ProfileAnalysis

    Returns:
        DataFrame with SUMMARY_COLUMNS; fit columns are NaN where no pipe
        was detected
    """
    rows = []
    for analysis in analyses:
        det = analysis.detection
        rows.append(
            {
                "profile_index": analysis.profile_index,
                "point_count": len(analysis.points),
                "detected": det is not None,
                "cx_mm": det.cx if det else np.nan,
                "cz_mm": det.cz if det else np.nan,
                "diameter_mm": det.diameter if det else np.nan,
                "rms_mm": det.rms if det else np.nan,
                "inlier_count": det.inlier_count if det else 0,
                "inlier_start": det.inlier_start if det else -1,
                "inlier_end": det.inlier_end if det else -1,
                "used_previous": analysis.used_previous,
            }
        )

    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def detection_statistics(frame: pd.DataFrame) -> dict[str, Any]:
    """Aggregate statistics over a summary frame.

    Args:
        frame: Output of summarize_detections

    Returns:
        Dictionary with profile/detection counts and diameter statistics
    """
    detected = frame[frame["detected"].astype(bool)]
    stats = {
        "profiles": int(len(frame)),
        "detections": int(len(detected)),
        "detection_rate": float(len(detected) / len(frame)) if len(frame) else 0.0,
    }

    if not detected.empty:
        diameters = detected["diameter_mm"]
        stats.update(
            {
                "mean_diameter_mm": float(diameters.mean()),
                "std_diameter_mm": float(diameters.std(ddof=0)),
                "min_diameter_mm": float(diameters.min()),
                "max_diameter_mm": float(diameters.max()),
                "mean_rms_mm": float(detected["rms_mm"].mean()),
                "centre_drift_mm": float(detected["cx_mm"].max() - detected["cx_mm"].min()),
            }
        )

    return stats
