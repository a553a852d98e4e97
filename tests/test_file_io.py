"""Tests for file helpers and JSON output."""

import json

import numpy as np
import pytest

from laser_pipe_profiler.core.binfile import FormatError
from laser_pipe_profiler.core.types import PipeDetection
from laser_pipe_profiler.utils.file_io import get_bin_files, read_bin_file, results_to_json, validate_bin_file


def test_read_bin_file(tmp_path, bin_builder):
    path = tmp_path / "scan.bin"
    path.write_bytes(bin_builder([("", [(16, 1, 1)])]))

    assert read_bin_file(str(path)).profile_count == 1


def test_read_invalid_file(tmp_path):
    path = tmp_path / "scan.bin"
    path.write_bytes(b"\x00")

    with pytest.raises(FormatError):
        read_bin_file(str(path))


def test_validate_bin_file(tmp_path):
    good = tmp_path / "a.BIN"
    good.write_bytes(b"")
    other = tmp_path / "a.txt"
    other.write_bytes(b"")

    assert validate_bin_file(str(good))
    assert not validate_bin_file(str(other))
    assert not validate_bin_file(str(tmp_path / "missing.bin"))


def test_get_bin_files(tmp_path):
    (tmp_path / "b.bin").write_bytes(b"")
    (tmp_path / "a.bin").write_bytes(b"")
    (tmp_path / "notes.txt").write_bytes(b"")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "c.bin").write_bytes(b"")

    flat = get_bin_files(str(tmp_path))
    assert [p.rsplit("/", 1)[-1] for p in flat] == ["a.bin", "b.bin"]
    assert len(get_bin_files(str(tmp_path), recursive=True)) == 3
    assert get_bin_files(str(tmp_path / "nowhere")) == []


def test_results_to_json_converts_numpy():
    detection = PipeDetection(1.0, 2.0, 3.0, 0.1, 6.0, 0, 9, 10)
    payload = {
        "count": np.int64(4),
        "rate": np.float32(0.5),
        "ok": np.bool_(True),
        "points": np.arange(3),
        "detection": detection,
    }
    decoded = json.loads(results_to_json(payload))

    assert decoded["count"] == 4
    assert decoded["rate"] == 0.5
    assert decoded["ok"] is True
    assert decoded["points"] == [0, 1, 2]
    assert decoded["detection"]["diameter"] == 6.0


def test_results_to_json_rejects_unknown():
    with pytest.raises(TypeError):
        results_to_json({"bad": object()})
