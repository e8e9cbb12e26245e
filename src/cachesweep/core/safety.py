"""Deny-list safety policy gating every deletion."""

from __future__ import annotations

import fcntl
import logging
import os
import stat
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, TypeVar

from cachesweep.models.scan_result import ScanItem
from cachesweep.utils import contains_segments, path_parts

log = logging.getLogger(__name__)

T = TypeVar("T", bound=ScanItem)

# Absolute roots that are never touched, matched on whole path components.
CRITICAL_PATHS: tuple[str, ...] = (
    "/System",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/private/etc",
    "/var/db",
    "/private/var/db",
    "/Library/Apple",
    "/Applications",
    "/Library/LaunchDaemons",
    "/Library/LaunchAgents",
    "/Library/Preferences",
    "/Library/Frameworks",
    "/Library/Extensions",
)

# Segment sequences matched anywhere in a path. A trailing ``*`` turns the
# last segment into a prefix match.
PROTECTED_USER_PATHS: tuple[str, ...] = (
    "Documents",
    "Desktop",
    "Pictures",
    "Movies",
    "Music",
    "Library/Application Support/MobileSync",
    "Library/Keychains",
    "Library/Preferences/com.apple.*",
)

PROTECTED_APPLICATION_PATHS: tuple[str, ...] = (
    # Browser profiles
    "Library/Application Support/Google/Chrome",
    "Library/Application Support/Google/Chrome Canary",
    "Library/Application Support/Chromium",
    "Library/Application Support/BraveSoftware/Brave-Browser",
    "Library/Application Support/Microsoft Edge",
    "Library/Application Support/Firefox",
    "Library/Application Support/Arc",
    "Library/Safari",
    # Messaging
    "Library/Application Support/Telegram",
    "Library/Application Support/Telegram Desktop",
    "Library/Group Containers/group.WhatsApp",
    "Library/Containers/WhatsApp",
    "Library/Containers/net.whatsapp.WhatsApp",
    "Library/Application Support/WhatsApp",
    "Library/Application Support/Signal",
    "Library/Application Support/Slack",
    "Library/Application Support/Discord",
    # Mail
    "Library/Mail",
    "Library/Application Support/Microsoft/Outlook",
    "Library/Application Support/Thunderbird",
    # Cloud sync
    "Library/CloudStorage",
    "Library/Application Support/Dropbox",
    "Library/Application Support/Google Drive",
    "Library/Application Support/OneDrive",
    # Developer tools
    "Library/Application Support/Code",
    "Library/Application Support/JetBrains",
    ".config",
    # Password managers
    "Library/Application Support/1Password",
    "Library/Application Support/Bitwarden",
    "Library/Application Support/LastPass",
    # Notes
    "Library/Application Support/Notion",
    "Library/Application Support/Obsidian",
    "Library/Application Support/Evernote",
)

CRITICAL_EXTENSIONS: frozenset[str] = frozenset(
    {"dylib", "framework", "kext", "bundle", "prefpane", "plugin", "app", "pkg"}
)

_SETID_BITS = stat.S_ISUID | stat.S_ISGID


def _compile(entries: Iterable[str]) -> list[tuple[tuple[str, ...], bool]]:
    compiled = []
    for entry in entries:
        wildcard = entry.endswith("*")
        parts = path_parts(entry.rstrip("*"))
        if parts:
            compiled.append((parts, wildcard))
    return compiled


def _matches(parts: tuple[str, ...], needle: tuple[str, ...], wildcard: bool) -> bool:
    if not wildcard:
        return contains_segments(parts, needle)
    head, last = needle[:-1], needle[-1]
    n = len(needle)
    for i in range(len(parts) - n + 1):
        if parts[i : i + n - 1] == head and parts[i + n - 1].startswith(last):
            return True
    return False


class SafetyPolicy:
    """Decides whether a path may ever be deleted.

    A conservative deny-list: a path is deletable only when no rule
    rejects it. The policy also carries the dry-run flag, which defaults
    to on; use :meth:`live` to switch real deletion on for the duration
    of one operation.
    """

    def __init__(self, *, dry_run: bool = True, extra_protected: Iterable[str] = ()) -> None:
        self._dry_run = dry_run
        self._critical = [path_parts(p) for p in CRITICAL_PATHS]
        self._protected_user = _compile(PROTECTED_USER_PATHS)
        self._protected_apps = _compile((*PROTECTED_APPLICATION_PATHS, *extra_protected))

    # -- dry-run flag --

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def set_dry_run(self, enabled: bool) -> None:
        self._dry_run = enabled

    def is_dry_run(self) -> bool:
        return self._dry_run

    @contextmanager
    def live(self) -> Iterator[SafetyPolicy]:
        """Disable dry-run for the enclosed block, restoring it on every exit path."""
        log.info("Real deletion enabled")
        self._dry_run = False
        try:
            yield self
        finally:
            self._dry_run = True
            log.info("Dry-run restored")

    # -- the gate --

    def is_deletable(self, path: Path | str) -> bool:
        """Return True when *path* passes every safety rule."""
        reason = self.rejection_reason(path)
        if reason is not None:
            log.debug("Refusing %s: %s", path, reason)
            return False
        return True

    def rejection_reason(self, path: Path | str) -> str | None:
        """Return why *path* must not be deleted, or None when it is safe."""
        normalized = os.path.normpath(os.path.abspath(path))
        parts = path_parts(normalized)

        for critical in self._critical:
            if parts[: len(critical)] == critical:
                return "critical system path"

        for needle, wildcard in self._protected_user:
            if _matches(parts, needle, wildcard):
                return "protected user data"

        for needle, wildcard in self._protected_apps:
            if _matches(parts, needle, wildcard):
                return "protected application data"

        suffix = Path(normalized).suffix
        if suffix and suffix[1:].lower() in CRITICAL_EXTENSIONS:
            return "critical file type"

        if _is_in_use(normalized):
            return "file is in use"

        if _has_setid_bit(normalized):
            return "set-id permission bit"

        return None

    def filter_deletable(self, items: Iterable[T]) -> list[T]:
        """Return the items whose paths pass the gate."""
        return [item for item in items if self.is_deletable(item.path)]


def _is_in_use(path: str) -> bool:
    """Best-effort check: can we take an exclusive, non-blocking lock?

    Files that cannot be opened for writing count as in use too.
    """
    try:
        fd = os.open(path, os.O_RDWR | os.O_NONBLOCK)
    except OSError:
        return True
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        return True
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    finally:
        os.close(fd)


def _has_setid_bit(path: str) -> bool:
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return True
    return bool(mode & _SETID_BITS)
