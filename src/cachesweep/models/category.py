"""Cleanup categories."""

from __future__ import annotations

from enum import Enum


class Category(Enum):
    """Logical class of disposable data.

    The value is the slug used on the command line and over D-Bus.
    """

    SYSTEM_CACHES = "system-caches"
    APPLICATION_CACHES = "application-caches"
    LOGS = "logs"
    TEMPORARY_FILES = "temporary-files"
    OLD_DOWNLOADS = "old-downloads"
    BROWSER_DATA = "browser-data"

    @property
    def label(self) -> str:
        """Human-readable name, e.g. 'Logs & Crash Reports'."""
        return _LABELS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def is_cache(self) -> bool:
        return self in (Category.SYSTEM_CACHES, Category.APPLICATION_CACHES, Category.BROWSER_DATA)

    @classmethod
    def parse(cls, text: str) -> Category:
        """Accept either the slug ('old-downloads') or the member name ('OLD_DOWNLOADS')."""
        key = text.strip()
        try:
            return cls(key.lower())
        except ValueError:
            pass
        try:
            return cls[key.upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown category: {text!r}") from None


_LABELS = {
    Category.SYSTEM_CACHES: "System Caches",
    Category.APPLICATION_CACHES: "Application Caches",
    Category.LOGS: "Logs & Crash Reports",
    Category.TEMPORARY_FILES: "Temporary Files",
    Category.OLD_DOWNLOADS: "Old Downloads",
    Category.BROWSER_DATA: "Browser Data",
}

_DESCRIPTIONS = {
    Category.SYSTEM_CACHES: "System generated cache files that can be safely removed.",
    Category.APPLICATION_CACHES: "Caches created by applications to speed up loading.",
    Category.LOGS: "System and application log files and crash reports.",
    Category.TEMPORARY_FILES: "Temporary files that are no longer needed.",
    Category.OLD_DOWNLOADS: "Downloads folder items older than 30 days.",
    Category.BROWSER_DATA: "Cache files from web browsers like Chrome, Safari, and Firefox.",
}
