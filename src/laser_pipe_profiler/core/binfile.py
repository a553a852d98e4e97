"""Decoder for the laser profile .bin format.

File layout (all multi-byte fields big-endian):

    header (header_size bytes, at least 12):
        u16  format << 8 | version
        u16  header_size
        u16  points_per_profile (P)
        u16  reserved0
        u16  reserved1
    repeated until end of file:
        i16  comment length C
        C    bytes of UTF-8 text, usually JSON, NUL padded
        P x  (u16 y_offset in 12.4 fixed point, u8 intensity, u8 width)

A width of 0 marks a column without a laser return.
"""

import json
import logging
import struct
from typing import Any

import numpy as np

from .types import BinFileData, DecodeDiagnostic, FileHeader, LaserProfile

logger = logging.getLogger(__name__)

SUPPORTED_FORMAT = 2
EXPECTED_VERSION = 1
MIN_HEADER_SIZE = 12
MAX_PROFILES = 10000
FIXED_POINT_SCALE = 16.0

_HEADER_STRUCT = struct.Struct(">5H")
_COMMENT_LENGTH_STRUCT = struct.Struct(">h")
POINT_DTYPE = np.dtype([("y_raw", ">u2"), ("intensity", "u1"), ("width", "u1")])


class FormatError(ValueError):
    """Raised when a buffer is not a decodable laser .bin file."""


class DecodeWarning(UserWarning):
    """Base category for recoverable decoding problems."""


class TruncationWarning(DecodeWarning):
    """File ended (or hit the profile cap) part way through a profile."""


class CommentDecodeWarning(DecodeWarning):
    """Profile comment was not valid UTF-8 or not a JSON object."""


class VersionMismatchWarning(DecodeWarning):
    """Header version differs from the one this decoder was written for."""


def decode_header(data: bytes) -> FileHeader:
    """Parse and validate the fixed file header.

    Args:
        data: Raw file contents

    Returns:
        Decoded FileHeader

    Raises:
        FormatError: If the buffer is too short, the format tag is not
            supported or the profile length is zero
    """
    if len(data) < MIN_HEADER_SIZE:
        raise FormatError(
            f"File too small: {len(data)} bytes, need at least {MIN_HEADER_SIZE} for the header."
        )

    format_and_version, header_size, points_per_profile, reserved0, reserved1 = _HEADER_STRUCT.unpack_from(data, 0)
    file_format = (format_and_version >> 8) & 0xFF
    version = format_and_version & 0xFF

    if file_format != SUPPORTED_FORMAT:
        raise FormatError(f"Invalid format: {file_format} (expected {SUPPORTED_FORMAT}).")
    if points_per_profile == 0:
        raise FormatError("Points per profile is 0, file cannot contain profile data.")

    return FileHeader(file_format, version, header_size, points_per_profile, reserved0, reserved1)


def decode_bin_file(data: bytes) -> BinFileData:
    """Decode a laser .bin buffer into its header and profiles.

    Decoding is best effort once the header is valid: a truncated profile
    ends decoding and every complete profile before it is returned. Problems
    are collected in ``BinFileData.diagnostics`` rather than raised.

    Args:
        data: Raw file contents (bytes, bytearray or memoryview)

    Returns:
        BinFileData with profiles in file order

    Raises:
        FormatError: If the header is invalid
    """
    data = bytes(data)
    header = decode_header(data)
    result = BinFileData(header=header)

    if header.version != EXPECTED_VERSION:
        _record(
            result,
            VersionMismatchWarning,
            f"Unexpected version: {header.version} (expected {EXPECTED_VERSION}).",
        )

    logger.debug(
        "Header: format=%d, version=%d, header_size=%d, points_per_profile=%d",
        header.format,
        header.version,
        header.header_size,
        header.points_per_profile,
    )

    total = len(data)
    profile_bytes = header.points_per_profile * POINT_DTYPE.itemsize
    offset = header.header_size

    while offset < total:
        index = len(result.profiles)
        if index >= MAX_PROFILES:
            _record(
                result,
                TruncationWarning,
                f"Stopped at the {MAX_PROFILES} profile limit with {total - offset} bytes unread",
                index,
                offset,
            )
            break

        start = offset

        if offset + _COMMENT_LENGTH_STRUCT.size > total:
            _record(result, TruncationWarning, "Truncated at comment length", index, offset)
            break
        (comment_length,) = _COMMENT_LENGTH_STRUCT.unpack_from(data, offset)
        offset += _COMMENT_LENGTH_STRUCT.size

        raw_comment = ""
        comment = None
        if comment_length > 0:
            if offset + comment_length > total:
                _record(
                    result,
                    TruncationWarning,
                    f"Comment extends beyond file ({comment_length} bytes at offset {offset})",
                    index,
                    offset,
                )
                break
            raw_comment, comment = _decode_comment(result, data[offset : offset + comment_length], index, offset)
            offset += comment_length

        if offset + profile_bytes > total:
            _record(
                result,
                TruncationWarning,
                f"Truncated profile data (needs {profile_bytes} bytes, has {total - offset})",
                index,
                offset,
            )
            break

        records = np.frombuffer(data, dtype=POINT_DTYPE, count=header.points_per_profile, offset=offset)
        offset += profile_bytes

        result.profiles.append(
            LaserProfile(
                index=index,
                y_offset=records["y_raw"].astype(np.float64) / FIXED_POINT_SCALE,
                intensity=records["intensity"].copy(),
                width=records["width"].copy(),
                start_offset=start,
                comment=comment,
                raw_comment=raw_comment,
            )
        )

    logger.debug("Decoded %d profiles (%d diagnostics)", result.profile_count, len(result.diagnostics))
    return result


def _decode_comment(
    result: BinFileData, payload: bytes, index: int, offset: int
) -> tuple[str, dict[str, Any] | None]:
    """Decode a comment block into (raw text, parsed JSON object or None)."""
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        _record(result, CommentDecodeWarning, f"Invalid UTF-8 in comment: {e.reason}", index, offset)
        text = payload.decode("utf-8", errors="replace")

    text = text.rstrip("\0")
    if not text:
        return text, None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        _record(result, CommentDecodeWarning, f"Failed to parse comment as JSON: {e.msg}", index, offset)
        return text, None

    if not isinstance(parsed, dict):
        _record(
            result,
            CommentDecodeWarning,
            f"Comment JSON is a {type(parsed).__name__}, expected an object",
            index,
            offset,
        )
        return text, None

    return text, parsed


def _record(
    result: BinFileData,
    kind: type,
    message: str,
    profile_index: int | None = None,
    offset: int | None = None,
) -> None:
    diagnostic = DecodeDiagnostic(kind, message, profile_index, offset)
    result.diagnostics.append(diagnostic)
    logger.warning("%s", diagnostic)


def extract_pixel_coords(profile: LaserProfile) -> tuple[np.ndarray, np.ndarray]:
    """Return (columns, rows) of the valid samples of a profile.

    Columns come out in ascending order because column order is the array
    order of the profile.
    """
    valid = profile.valid
    return profile.columns[valid], np.asarray(profile.y_offset, dtype=float)[valid]


def describe_file(data: BinFileData) -> dict[str, Any]:
    """Summarize a decoded file for display.

    Args:
        data: Decoded file

    Returns:
        Dictionary with header fields, profile counts and diagnostics
    """
    header = data.header
    valid_counts = [p.valid_count for p in data.profiles]
    first_comment = next((p.comment for p in data.profiles if p.comment is not None), None)

    return {
        "format": header.format,
        "version": header.version,
        "header_size": header.header_size,
        "points_per_profile": header.points_per_profile,
        "profile_count": data.profile_count,
        "mean_valid_points": float(np.mean(valid_counts)) if valid_counts else 0.0,
        "empty_profiles": sum(1 for c in valid_counts if c == 0),
        "first_comment": first_comment,
        "diagnostics": [str(d) for d in data.diagnostics],
    }
