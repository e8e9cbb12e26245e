"""Shared test fixtures."""

from __future__ import annotations

import pytest

from cachesweep.core.safety import SafetyPolicy
from helpers import write_file


@pytest.fixture
def fake_home(tmp_path):
    """Create a fake macOS-style home directory with a bit of everything."""
    home = tmp_path / "home"
    lib = home / "Library"

    # System caches
    write_file(lib / "Caches" / "com.example.app" / "cache.db", 2048)
    write_file(lib / "Caches" / "com.example.app" / "sub" / "blob", 1024)
    write_file(lib / "Caches" / "empty.bin", 0)
    # Browser caches live under the shared cache root too
    write_file(lib / "Caches" / "Google" / "Chrome" / "Default" / "Cache" / "data_1", 4096)

    # Application support
    write_file(lib / "Application Support" / "Zoom" / "cache" / "a.bin", 300)
    write_file(lib / "Application Support" / "Adobe" / "Lightroom" / "previews.db", 700)
    write_file(lib / "Containers" / "com.apple.Notes" / "Data" / "blob", 500)

    # Logs
    write_file(lib / "Logs" / "Zoom" / "zoom.log", 100)
    write_file(lib / "Logs" / "Zoom" / "readme.txt", 50)
    write_file(lib / "Logs" / "DiagnosticReports" / "app.crash", 200)

    # Downloads
    write_file(home / "Downloads" / "old.zip", 1000, age_days=60)
    write_file(home / "Downloads" / "new.zip", 1000)

    return home


@pytest.fixture
def fake_tmp(tmp_path):
    """A private temporary directory with one scratch file."""
    tmp = tmp_path / "tmp"
    write_file(tmp / "scratch.tmp", 10)
    return tmp


@pytest.fixture
def policy():
    return SafetyPolicy()
