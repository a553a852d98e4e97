"""Utility modules for file I/O."""

from .file_io import (
    get_bin_files,
    read_bin_file,
    results_to_json,
    validate_bin_file,
)

__all__ = [
    "read_bin_file",
    "validate_bin_file",
    "get_bin_files",
    "results_to_json",
]
