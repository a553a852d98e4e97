"""Dense reconstruction of sparse laser profiles.

Some processed files carry only a handful of real samples (e.g. 8 columns)
out of a much wider sensor (e.g. 2048 columns). These helpers rebuild a
per-column profile for downstream geometry and display.
"""

from collections.abc import Iterable

import numpy as np

from .types import LaserProfile, ProfilePoint


def _valid_sorted(points: LaserProfile | Iterable[ProfilePoint], image_width: int | None = None) -> list[ProfilePoint]:
    if isinstance(points, LaserProfile):
        points = points.points
    valid = [p for p in points if p.valid]
    if image_width is not None:
        valid = [p for p in valid if 0 <= p.column < image_width]
    return sorted(valid, key=lambda p: p.column)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(np.asarray(values, dtype=float) + 0.5).astype(int)


def _scaled_columns(columns: np.ndarray, target_resolution: int) -> np.ndarray:
    """Map source columns so the largest one lands on ``target_resolution``."""
    max_column = columns.max()
    scale = target_resolution / max_column if max_column > 0 else 1.0
    return _round_half_up(columns * scale)


def interpolate_profile(
    points: LaserProfile | Iterable[ProfilePoint],
    target_resolution: int = 2048,
    image_width: int = 2048,
) -> list[ProfilePoint]:
    """Interpolate sparse profile samples to a dense per-column profile.

    Valid samples are rescaled onto ``target_resolution`` columns. Gaps
    between neighbouring samples are filled with a cubic Hermite curve for
    ``y_offset`` and linear ramps for intensity and width. Columns outside
    the sampled range repeat the nearest sample.

    Args:
        points: Profile or iterable of ProfilePoint
        target_resolution: Number of output columns
        image_width: Sensor width; samples at or beyond it are ignored

    Returns:
        List of ``target_resolution`` ProfilePoint, or an empty list when no
        valid sample exists
    """
    if target_resolution <= 0:
        raise ValueError(f"target_resolution must be positive, got {target_resolution}")

    valid = _valid_sorted(points, image_width)
    if not valid:
        return []

    columns = _scaled_columns(np.array([p.column for p in valid]), target_resolution)
    y = np.array([p.y_offset for p in valid], dtype=float)
    intensity = np.array([p.intensity for p in valid], dtype=float)
    width = np.array([p.width for p in valid], dtype=float)
    count = len(valid)

    dense: list[ProfilePoint | None] = [None] * target_resolution

    for k, p in enumerate(valid):
        col = int(columns[k])
        if 0 <= col < target_resolution:
            dense[col] = ProfilePoint(col, p.y_offset, p.intensity, p.width, p.valid)

    for i in range(count - 1):
        start, end = int(columns[i]), int(columns[i + 1])
        fill = np.arange(max(start + 1, 0), min(end, target_resolution))
        if fill.size == 0:
            continue

        t = (fill - start) / (end - start)
        t2 = t * t
        t3 = t2 * t
        h00 = 2 * t3 - 3 * t2 + 1
        h10 = t3 - 2 * t2 + t
        h01 = -2 * t3 + 3 * t2
        h11 = t3 - t2

        # Tangents from neighbouring samples, flat at the outer ends
        m1 = (y[i + 1] - y[i - 1]) / 2 if i > 0 else 0.0
        m2 = (y[i + 2] - y[i]) / 2 if i < count - 2 else 0.0

        y_fill = h00 * y[i] + h10 * m1 + h01 * y[i + 1] + h11 * m2
        i_fill = np.clip(_round_half_up(intensity[i] + t * (intensity[i + 1] - intensity[i])), 0, 255)
        w_fill = np.clip(_round_half_up(width[i] + t * (width[i + 1] - width[i])), 0, 255)

        for col, yy, ii, ww in zip(fill, y_fill, i_fill, w_fill):
            dense[int(col)] = ProfilePoint(int(col), float(yy), int(ii), int(ww), bool(ww > 0))

    _hold_edges(dense, valid[0], int(columns[0]), valid[-1], int(columns[-1]))
    return dense


def _hold_edges(
    dense: list[ProfilePoint | None], first: ProfilePoint, first_col: int, last: ProfilePoint, last_col: int
) -> None:
    """Fill columns outside the sampled range with the nearest sample."""
    for col in range(min(first_col, len(dense))):
        if dense[col] is None:
            dense[col] = ProfilePoint(col, first.y_offset, first.intensity, first.width, first.valid)

    for col in range(max(last_col + 1, 0), len(dense)):
        if dense[col] is None:
            dense[col] = ProfilePoint(col, last.y_offset, last.intensity, last.width, last.valid)


def create_realistic_profile(
    points: LaserProfile | Iterable[ProfilePoint], target_resolution: int = 2048
) -> list[ProfilePoint]:
    """Gaussian-weighted reconstruction of a dense profile.

    Every output column is the kernel-weighted mean of all valid samples,
    with ``sigma = target_resolution / (4 * sample_count)`` so the kernel
    widens as samples get sparser.

    Args:
        points: Profile or iterable of ProfilePoint
        target_resolution: Number of output columns

    Returns:
        List of ``target_resolution`` ProfilePoint, or an empty list when no
        valid sample exists
    """
    if target_resolution <= 0:
        raise ValueError(f"target_resolution must be positive, got {target_resolution}")

    valid = _valid_sorted(points)
    if not valid:
        return []

    source_cols = _scaled_columns(np.array([p.column for p in valid]), target_resolution)
    y = np.array([p.y_offset for p in valid], dtype=float)
    intensity = np.array([p.intensity for p in valid], dtype=float)
    width = np.array([p.width for p in valid], dtype=float)

    sigma = target_resolution / (len(valid) * 4)
    cols = np.arange(target_resolution)

    dist2 = (cols[:, None] - source_cols[None, :]).astype(float) ** 2
    # Relative to the nearest sample; the normalized mean is unchanged
    dist2 -= dist2.min(axis=1, keepdims=True)
    weights = np.exp(-dist2 / (2 * sigma * sigma))
    weights /= weights.sum(axis=1, keepdims=True)

    y_dense = weights @ y
    w_mean = weights @ width
    i_dense = _round_half_up(weights @ intensity)
    w_dense = _round_half_up(w_mean)

    return [
        ProfilePoint(int(c), float(yy), int(ii), int(ww), bool(wm > 0))
        for c, yy, ii, ww, wm in zip(cols, y_dense, i_dense, w_dense, w_mean)
    ]
