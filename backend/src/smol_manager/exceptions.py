"""Error taxonomy shared by the archive engine, loader, staging, and version checker.

Every error names the step that failed and, where there is one, the path
involved, so a log line or an API response is enough to locate the problem.
"""

from __future__ import annotations

from pathlib import Path


class SmolError(Exception):
    def __init__(self, message: str, *, step: str = "", path: str | Path | None = None) -> None:
        self.step = step
        self.path = Path(path) if path is not None else None
        detail = message
        if step:
            detail = f"[{step}] {detail}"
        if self.path is not None:
            detail = f"{detail} ({self.path})"
        super().__init__(detail)


class ValidationError(SmolError):
    """Bad input; nothing was changed on disk."""


class NotFoundError(SmolError):
    """A required mod_info.json (in a folder or archive) or a mod/variant was not found."""


class ModInfoParseError(SmolError):
    """A manifest or version checker file could not be parsed."""


class FileOperationError(SmolError):
    """A move, copy, delete, or extraction failed."""


class NetworkError(SmolError):
    """A remote version file could not be fetched or parsed."""
