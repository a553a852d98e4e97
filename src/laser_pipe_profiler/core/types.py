"""Shared data structures for decoded profiles and fit results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, NamedTuple

import numpy as np


class FileHeader(NamedTuple):
    """Fixed header at the start of a laser .bin file."""

    format: int
    version: int
    header_size: int
    points_per_profile: int
    reserved0: int
    reserved1: int


class ProfilePoint(NamedTuple):
    """Single column sample of a laser profile."""

    column: int
    y_offset: float
    intensity: int
    width: int
    valid: bool


@dataclass(frozen=True)
class DecodeDiagnostic:
    """Non-fatal problem found while decoding a file."""

    kind: type
    message: str
    profile_index: int | None = None
    offset: int | None = None

    def __str__(self) -> str:
        where = f"profile {self.profile_index}" if self.profile_index is not None else "header"
        return f"{self.kind.__name__} ({where}): {self.message}"


@dataclass(eq=False)
class LaserProfile:
    """One scan line of the file, stored column-wise.

    ``y_offset``, ``intensity`` and ``width`` always hold exactly
    ``points_per_profile`` entries; column ``i`` is array position ``i``.
    """

    index: int
    y_offset: np.ndarray
    intensity: np.ndarray
    width: np.ndarray
    start_offset: int
    comment: dict[str, Any] | None = None
    raw_comment: str = ""

    def __len__(self) -> int:
        return len(self.y_offset)

    @property
    def columns(self) -> np.ndarray:
        return np.arange(len(self.y_offset))

    @property
    def valid(self) -> np.ndarray:
        return self.width > 0

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid))

    @property
    def points(self) -> list[ProfilePoint]:
        return [
            ProfilePoint(col, float(y), int(i), int(w), bool(w > 0))
            for col, (y, i, w) in enumerate(zip(self.y_offset, self.intensity, self.width))
        ]


@dataclass(eq=False)
class BinFileData:
    """Decoded contents of a .bin file, profiles in file (scan) order."""

    header: FileHeader
    profiles: list[LaserProfile] = field(default_factory=list)
    diagnostics: list[DecodeDiagnostic] = field(default_factory=list)

    @property
    def profile_count(self) -> int:
        return len(self.profiles)

    def diagnostics_of(self, kind: type) -> list[DecodeDiagnostic]:
        return [d for d in self.diagnostics if issubclass(d.kind, kind)]


class CircleFit(NamedTuple):
    """Circle in the x/z cross-section plane."""

    cx: float
    cz: float
    radius: float
    rms: float


@dataclass(frozen=True)
class PipeDetection:
    """Refined pipe fit plus the span of source points that support it."""

    cx: float
    cz: float
    radius: float
    rms: float
    diameter: float
    inlier_start: int
    inlier_end: int
    inlier_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
