"""Directory copy/move/delete helpers that report failures as FileOperationError."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from smol_manager.exceptions import FileOperationError

logger = logging.getLogger(__name__)


def delete_tree(path: Path) -> None:
    """Remove *path* (file or folder) if it exists."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
    except OSError as exc:
        logger.error("Failed to delete %s: %s", path, exc)
        raise FileOperationError(str(exc), step="delete", path=path) from exc


def replace_tree(source: Path, destination: Path) -> None:
    """Copy folder *source* to *destination*, replacing whatever was there.

    Removing the old destination first means a retried or repeated copy ends
    with exactly the source's content.
    """
    delete_tree(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, destination)
    except (OSError, shutil.Error) as exc:
        logger.error("Failed to copy %s to %s: %s", source, destination, exc)
        raise FileOperationError(str(exc), step="copy", path=source) from exc


def move_tree(source: Path, destination: Path) -> None:
    """Move *source* to *destination*; *destination* must not exist."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
    except (OSError, shutil.Error) as exc:
        logger.error("Failed to move %s to %s: %s", source, destination, exc)
        raise FileOperationError(str(exc), step="move", path=source) from exc


def is_same_path(a: Path, b: Path) -> bool:
    try:
        return a.exists() and b.exists() and a.samefile(b)
    except OSError:
        return False
