"""File I/O utilities for loading laser files and formatting results."""

import json
import logging
import os
from pathlib import Path
from typing import Any

import numpy as np

from laser_pipe_profiler.core.binfile import decode_bin_file
from laser_pipe_profiler.core.types import BinFileData

logger = logging.getLogger(__name__)

BIN_EXTENSIONS = {".bin"}


def read_bin_file(file_path: str) -> BinFileData:
    """Read and decode a laser .bin file.

    Args:
        file_path: Path to .bin file

    Returns:
        Decoded BinFileData

    Raises:
        FileNotFoundError: If file doesn't exist
        FormatError: If the file header is invalid
    """
    data = Path(file_path).read_bytes()
    logger.debug("Read %d bytes from %s", len(data), file_path)
    return decode_bin_file(data)


def validate_bin_file(file_path: str) -> bool:
    """Validate that file exists and has a .bin extension.

    Args:
        file_path: Path to laser file

    Returns:
        True if file is valid, False otherwise
    """
    if not os.path.isfile(file_path):
        return False

    return Path(file_path).suffix.lower() in BIN_EXTENSIONS


def get_bin_files(directory: str, recursive: bool = False) -> list[str]:
    """Get list of .bin files in directory.

    Args:
        directory: Directory to search
        recursive: Whether to search subdirectories

    Returns:
        Sorted list of file paths
    """
    search_dir = Path(directory)

    if not search_dir.exists():
        return []

    found = search_dir.rglob("*") if recursive else search_dir.glob("*")
    return sorted(str(f) for f in found if f.is_file() and f.suffix.lower() in BIN_EXTENSIONS)


def results_to_json(results: Any, indent: int = 2) -> str:
    """Serialize analysis results, converting numpy values on the way."""
    return json.dumps(results, indent=indent, default=_json_serializer)


def _json_serializer(obj):
    """Custom JSON serializer for numpy types and other non-serializable objects."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif hasattr(obj, "to_dict"):
        return obj.to_dict()
    else:
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
