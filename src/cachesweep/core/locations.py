"""Root directories searched for each cleanup category."""

from __future__ import annotations

import tempfile
from pathlib import Path

from cachesweep.models.category import Category

# Per-browser cache directories under ~/Library/Caches. The walker uses the
# same names to keep these files out of a plain system-cache scan.
BROWSER_CACHE_DIRS: tuple[str, ...] = (
    "Google/Chrome",
    "com.apple.Safari",
    "Mozilla/Firefox",
    "Microsoft Edge",
    "BraveSoftware",
    "com.operasoftware.Opera",
    "com.operasoftware.OperaGX",
)


def roots_for(category: Category, home: Path | None = None, temp_dir: Path | None = None) -> list[Path]:
    """Return the ordered directories to walk for *category*.

    Args:
        category: Category to resolve.
        home: User home directory. Defaults to ``Path.home()``.
        temp_dir: Per-user temporary directory. Defaults to
            ``tempfile.gettempdir()``.

    Roots that do not exist are still returned; the walker skips them.
    """
    home = Path(home) if home is not None else Path.home()
    library = home / "Library"

    match category:
        case Category.SYSTEM_CACHES:
            return [
                library / "Caches",
                library / "Application Support" / "CachedData",
                library / "Safari" / "LocalStorage",
                library / "Safari" / "Databases",
            ]
        case Category.APPLICATION_CACHES:
            return [
                library / "Application Support",
                library / "Containers",
            ]
        case Category.LOGS:
            return [
                library / "Logs",
                library / "Application Support" / "CrashReporter",
            ]
        case Category.TEMPORARY_FILES:
            tmp = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
            return [
                tmp,
                library / "Caches" / "TemporaryItems",
            ]
        case Category.OLD_DOWNLOADS:
            return [home / "Downloads"]
        case Category.BROWSER_DATA:
            return [library / "Caches" / name for name in BROWSER_CACHE_DIRS]
    raise ValueError(f"Unknown category: {category!r}")
