"""Deletion primitives used by the cleaner.

Each primitive takes a path and either returns normally or raises
(usually ``OSError``). Anything that honours this contract (a privileged helper,
a test stub) can be handed to :class:`~cachesweep.core.cleaner.Cleaner`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from send2trash import send2trash

log = logging.getLogger(__name__)

DeleteFunc = Callable[[Path], None]


def move_to_trash(path: Path) -> None:
    """Move *path* to the user's trash so a mistaken delete can be undone."""
    send2trash(str(path))
    log.debug("Trashed %s", path)


def remove_permanently(path: Path) -> None:
    """Unlink *path* without going through the trash."""
    path.unlink()
    log.debug("Removed %s", path)


def delete_func(use_trash: bool) -> DeleteFunc:
    """Pick the primitive matching the ``clean.use_trash`` setting."""
    return move_to_trash if use_trash else remove_permanently
