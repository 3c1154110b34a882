"""Tests for the session replay script."""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path

import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "run_attendance.py"


@pytest.fixture
def run_attendance():
    """Load the script as a module."""
    module_spec = importlib.util.spec_from_file_location("run_attendance", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def session_file(tmp_path):
    """Session with one student and one matching capture."""
    path = tmp_path / "session.json"
    path.write_text(
        json.dumps(
            {
                "students": [{"name": "Asha", "roll_number": "R1", "descriptor": [1, 0, 0]}],
                "captures": [{"descriptor": [1, 0, 0], "subject": "Math"}],
            }
        )
    )
    return path


def run(module, monkeypatch, *args):
    monkeypatch.delenv("THRESH", raising=False)
    monkeypatch.setattr(sys, "argv", ["run_attendance.py", *args])
    return module.main()


def test_replay_and_export(run_attendance, session_file, tmp_path, monkeypatch):
    """Test a full replay writing an export file."""
    export = tmp_path / "out" / "export.json"

    code = run(
        run_attendance, monkeypatch,
        "--session", str(session_file), "--threshold", "0.5", "--export", str(export),
    )

    assert code == 0
    assert json.loads(export.read_text())["totalRecords"] == 1


@pytest.mark.parametrize("threshold", ["1.0", "1.5", "-2"])
def test_out_of_range_threshold(run_attendance, session_file, monkeypatch, capsys, threshold):
    """Test that a bad --threshold exits with status 1 instead of a traceback."""
    code = run(run_attendance, monkeypatch, "--session", str(session_file), "--threshold", threshold)

    assert code == 1
    assert "THRESH must be in" in capsys.readouterr().out


def test_missing_session(run_attendance, tmp_path, monkeypatch):
    """Test that a missing session file exits with status 1."""
    assert run(run_attendance, monkeypatch, "--session", str(tmp_path / "none.json")) == 1
