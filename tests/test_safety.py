"""Tests for the deletion safety policy."""

from __future__ import annotations

import fcntl
import os
import stat

import pytest

from cachesweep.core.safety import SafetyPolicy
from cachesweep.models.scan_result import ScanItem
from helpers import write_file


class TestCriticalPaths:
    @pytest.mark.parametrize(
        "path",
        [
            "/System/Library/x.tmp",
            "/System/Library/Caches/foo",
            "/usr/lib/libfoo.so",
            "/bin/sh",
            "/Applications/Safari.app/Contents/Info.plist",
            "/Library/LaunchDaemons/com.example.plist",
            "/private/var/db/receipts",
            "/System",
        ],
    )
    def test_rejected(self, policy, path):
        assert policy.is_deletable(path) is False
        assert policy.rejection_reason(path) == "critical system path"

    def test_matches_whole_components_only(self, policy):
        # "/usrlocal" is not under "/usr"; it is rejected later only because it does not exist
        assert policy.rejection_reason("/usrlocal/thing") == "file is in use"

    def test_dot_segments_are_normalized(self, policy):
        assert policy.rejection_reason("/tmp/../System/Library/x") == "critical system path"


class TestProtectedUserData:
    @pytest.mark.parametrize(
        "rel",
        [
            "Documents/report.txt",
            "Desktop/screenshot.png",
            "Music/song.mp3",
            "Library/Keychains/login.keychain-db",
            "Library/Application Support/MobileSync/Backup/abc",
            "Library/Preferences/com.apple.finder.plist",
        ],
    )
    def test_rejected(self, tmp_path, policy, rel):
        path = write_file(tmp_path / rel, 10)
        assert policy.rejection_reason(path) == "protected user data"

    def test_other_preferences_allowed(self, tmp_path, policy):
        path = write_file(tmp_path / "Library" / "Preferences" / "org.example.app.plist", 10)
        assert policy.is_deletable(path) is True

    def test_segment_name_must_match_exactly(self, tmp_path, policy):
        path = write_file(tmp_path / "MyDocumentsBackup" / "cache.bin", 10)
        assert policy.is_deletable(path) is True


class TestProtectedApplicationData:
    @pytest.mark.parametrize(
        "rel",
        [
            "Library/Application Support/Google/Chrome/Default/History",
            "Library/Application Support/Slack/Cache/data",
            "Library/Containers/net.whatsapp.WhatsApp/Data/db",
            "Library/Mail/V10/mailbox",
            "Library/Application Support/1Password/data.sqlite",
            ".config/app/settings.ini",
        ],
    )
    def test_rejected(self, tmp_path, policy, rel):
        path = write_file(tmp_path / rel, 10)
        assert policy.rejection_reason(path) == "protected application data"

    def test_browser_caches_are_not_protected(self, tmp_path, policy):
        path = write_file(tmp_path / "Library" / "Caches" / "Google" / "Chrome" / "Default" / "data_1", 10)
        assert policy.is_deletable(path) is True

    def test_extra_protected_paths(self, tmp_path):
        policy = SafetyPolicy(extra_protected=["Library/Application Support/MyNotes"])
        path = write_file(tmp_path / "Library" / "Application Support" / "MyNotes" / "db", 10)
        assert policy.rejection_reason(path) == "protected application data"


class TestFileChecks:
    @pytest.mark.parametrize("name", ["libfoo.dylib", "Thing.APP", "installer.pkg", "Helper.plugin", "x.kext"])
    def test_critical_extensions(self, tmp_path, policy, name):
        path = write_file(tmp_path / name, 10)
        assert policy.rejection_reason(path) == "critical file type"

    def test_plain_file_is_deletable(self, tmp_path, policy):
        path = write_file(tmp_path / "cache.bin", 10)
        assert policy.is_deletable(path) is True
        assert policy.rejection_reason(path) is None

    def test_missing_file_is_not_deletable(self, tmp_path, policy):
        assert policy.is_deletable(tmp_path / "nope") is False

    def test_locked_file_is_in_use(self, tmp_path, policy):
        path = write_file(tmp_path / "busy.db", 10)
        with open(path, "rb+") as holder:
            fcntl.flock(holder.fileno(), fcntl.LOCK_EX)
            assert policy.rejection_reason(path) == "file is in use"
        assert policy.is_deletable(path) is True

    def test_setuid_file_rejected(self, tmp_path, policy):
        path = write_file(tmp_path / "helper", 10)
        os.chmod(path, 0o644 | stat.S_ISUID)
        assert policy.rejection_reason(path) == "set-id permission bit"

    def test_critical_path_wins_regardless_of_extension(self, policy):
        assert policy.rejection_reason("/System/Library/Foo.dylib") == "critical system path"


class TestDryRun:
    def test_defaults_to_dry_run(self):
        policy = SafetyPolicy()
        assert policy.dry_run is True
        assert policy.is_dry_run() is True

    def test_set_dry_run(self, policy):
        policy.set_dry_run(False)
        assert policy.is_dry_run() is False

    def test_live_restores_dry_run(self, policy):
        with policy.live():
            assert policy.dry_run is False
        assert policy.dry_run is True

    def test_live_restores_dry_run_on_error(self, policy):
        with pytest.raises(RuntimeError):
            with policy.live():
                raise RuntimeError("boom")
        assert policy.dry_run is True


def test_filter_deletable(tmp_path, policy):
    from datetime import datetime, timezone

    now = datetime.now(timezone.utc)
    ok = ScanItem(path=write_file(tmp_path / "ok.bin", 10), size_bytes=10, modified=now)
    bad = ScanItem(path=write_file(tmp_path / "lib.dylib", 10), size_bytes=10, modified=now)
    assert policy.filter_deletable([ok, bad]) == [ok]
