"""Read (and optionally edit) the game's ``enabled_mods.json``.

The game owns this file: ``{"enabledMods": ["lw_lazylib", ...]}``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from smol_manager.exceptions import FileOperationError
from smol_manager.models.mod import ModId
from smol_manager.services.mod_info_loader import load_relaxed_json
from smol_manager.utils.locks import IOLocks, LockRegion, io_locks

logger = logging.getLogger(__name__)


class EnabledMods(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled_mods: list[ModId] = Field(default_factory=list, alias="enabledMods")


class GameEnabledMods:
    def __init__(self, path: Path, *, locks: IOLocks = io_locks) -> None:
        self.path = path
        self._locks = locks

    def get_enabled_mods(self) -> EnabledMods | None:
        """Return the enabled list, or None when the file is missing or unreadable."""
        with self._locks.read(LockRegion.CONFIG):
            return self._read()

    def _read(self) -> EnabledMods | None:
        if not self.path.is_file():
            logger.warning("Enabled mods file not found: %s", self.path)
            return None
        try:
            return EnabledMods.model_validate(load_relaxed_json(self.path.read_bytes()))
        except (OSError, ValueError, PydanticValidationError) as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return None

    def set_enabled(self, mod_id: ModId, enabled: bool) -> None:
        """Add or remove *mod_id*, creating the file when it does not exist."""
        with self._locks.write(LockRegion.CONFIG):
            current = self._read() or EnabledMods()
            ids = [i for i in current.enabled_mods if i != mod_id]
            if enabled:
                ids.append(mod_id)
            if ids == current.enabled_mods:
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(
                    json.dumps({"enabledMods": ids}, indent=2), encoding="utf-8"
                )
            except OSError as exc:
                logger.error("Failed to write %s: %s", self.path, exc)
                raise FileOperationError(str(exc), step="write-enabled-mods", path=self.path) from exc
            logger.info("%s '%s' in %s", "Enabled" if enabled else "Disabled", mod_id, self.path.name)
