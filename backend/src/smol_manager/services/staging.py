"""Move mod variants between the archive store, staging, and the mods folder.

States of a variant (see :meth:`Mod.state_of`):

* archived: only a compressed copy in the archive folder;
* staged: an extracted copy in staging, nothing in the mods folder;
* enabled / disabled: a copy in the mods folder, with the mod listed or not
  listed in ``enabled_mods.json``.

Every transition runs under the mod-files write lock and decides what to
do from what is on disk at that moment, not from the (possibly stale)
snapshot it was handed.  Transitions are idempotent.  They do not trigger a
reload themselves; :class:`smol_manager.services.mod_manager.ModManager`
does that.
"""

from __future__ import annotations

import logging
from pathlib import Path

from smol_manager.constants import DEFAULT_MOD_INFO_SEARCH_DEPTH
from smol_manager.exceptions import NotFoundError, ValidationError
from smol_manager.models.mod import (
    Mod,
    ModId,
    ModVariant,
    SmolId,
    create_smol_id,
    generate_variant_folder_name,
)
from smol_manager.services.archive_service import install_from_unknown_source
from smol_manager.services.enabled_mods import GameEnabledMods
from smol_manager.services.mod_info_loader import DataFiles, read_mod_data_files_from_folder_of_mods
from smol_manager.utils.fs import delete_tree, replace_tree
from smol_manager.utils.locks import MOD_FILES, IOLocks, LockRegion, io_locks

logger = logging.getLogger(__name__)


class Staging:
    def __init__(
        self,
        *,
        mods_path: Path,
        staging_path: Path,
        enabled_mods: GameEnabledMods,
        locks: IOLocks = io_locks,
        search_depth: int = DEFAULT_MOD_INFO_SEARCH_DEPTH,
        write_enabled_mods_list: bool = False,
    ) -> None:
        self.mods_path = mods_path
        self.staging_path = staging_path
        self._enabled_mods = enabled_mods
        self._locks = locks
        self._search_depth = search_depth
        self._write_enabled_mods_list = write_enabled_mods_list
        if write_enabled_mods_list:
            self._regions: tuple[LockRegion, ...] = (LockRegion.CONFIG, *MOD_FILES)
        else:
            self._regions = MOD_FILES

    def _copies_on_disk(self, folder: Path, mod_id: ModId) -> dict[SmolId, list[tuple[Path, DataFiles]]]:
        """Copies of *mod_id* directly inside *folder*, keyed by smol id.

        One variant can sit in several folders (e.g. a hand-installed copy
        next to one this manager created), so each key maps to every folder.
        """
        copies: dict[SmolId, list[tuple[Path, DataFiles]]] = {}
        for mod_folder, data in read_mod_data_files_from_folder_of_mods(folder):
            if data.mod_info.id != mod_id:
                continue
            copies.setdefault(_smol_id_of(data), []).append((mod_folder, data))
        return copies

    def stage(self, variant: ModVariant) -> Path:
        """Make sure *variant* has a copy in staging and return that folder."""
        with self._locks.write(*self._regions):
            staged = self._copies_on_disk(self.staging_path, variant.mod_id).get(variant.smol_id)
            if staged:
                logger.debug("%s is already staged at %s", variant.smol_id, staged[0][0])
                return staged[0][0]

            self.staging_path.mkdir(parents=True, exist_ok=True)
            if variant.archive_info is not None and variant.archive_info.path.is_file():
                folder = install_from_unknown_source(
                    variant.archive_info.path,
                    self.staging_path,
                    search_depth=self._search_depth,
                    locks=self._locks,
                )
                logger.info("Staged %s from archive %s", variant.smol_id, variant.archive_info.path.name)
                return folder

            in_mods = self._copies_on_disk(self.mods_path, variant.mod_id).get(variant.smol_id)
            if in_mods:
                folder = self.staging_path / variant.generate_variant_folder_name()
                replace_tree(in_mods[0][0], folder)
                logger.info("Staged %s from the mods folder", variant.smol_id)
                return folder

            raise NotFoundError(
                f"No archive or mods folder copy of {variant.smol_id} to stage",
                step="stage",
                path=self.staging_path,
            )

    def enable(self, variant: ModVariant) -> Path:
        """Put *variant* in the mods folder as the only variant of its mod there."""
        with self._locks.write(*self._regions):
            in_mods = self._copies_on_disk(self.mods_path, variant.mod_id)
            current = in_mods.pop(variant.smol_id, [])
            for copies in in_mods.values():
                for folder, data in copies:
                    self._disable_copy(folder, data)

            if current:
                logger.debug("%s is already in the mods folder", variant.smol_id)
                target = current[0][0]
                # Duplicate folders of the same variant.
                for folder, data in current[1:]:
                    self._disable_copy(folder, data)
            else:
                staged = self.stage(variant)
                target = self.mods_path / variant.generate_variant_folder_name()
                replace_tree(staged, target)
                logger.info("Enabled %s", variant.smol_id)

            if self._write_enabled_mods_list:
                self._enabled_mods.set_enabled(variant.mod_id, True)
            return target

    def disable(self, variant: ModVariant) -> None:
        """Remove every copy of *variant* from the mods folder, keeping (or creating) a staging copy."""
        with self._locks.write(*self._regions):
            in_mods = self._copies_on_disk(self.mods_path, variant.mod_id)
            current = in_mods.pop(variant.smol_id, [])
            if not current:
                logger.debug("%s is not in the mods folder, nothing to disable", variant.smol_id)
                return
            for folder, data in current:
                self._disable_copy(folder, data)
            if self._write_enabled_mods_list and not in_mods:
                self._enabled_mods.set_enabled(variant.mod_id, False)

    def unstage(self, mod: Mod) -> None:
        """Disable every variant of *mod*, then delete its staging copies.

        Refuses (before touching anything) when a staged or enabled variant
        has no archive copy, since deleting it would lose the mod.
        """
        with self._locks.write(*self._regions):
            in_mods = self._copies_on_disk(self.mods_path, mod.id)
            on_disk = set(in_mods) | set(self._copies_on_disk(self.staging_path, mod.id))
            archived = {v.smol_id for v in mod.variants if v.archive_info and v.archive_info.path.is_file()}
            unarchived = sorted(on_disk - archived)
            if unarchived:
                raise ValidationError(
                    f"Cannot unstage {mod.id}: no archive copy of {', '.join(unarchived)}",
                    step="unstage",
                    path=self.staging_path,
                )

            for copies in in_mods.values():
                for folder, data in copies:
                    self._disable_copy(folder, data)
            if self._write_enabled_mods_list:
                self._enabled_mods.set_enabled(mod.id, False)

            # Disabling may have just created staging copies.
            staged = self._copies_on_disk(self.staging_path, mod.id)
            for copies in staged.values():
                for folder, _data in copies:
                    delete_tree(folder)
            logger.info("Unstaged %s (%d variants)", mod.id, len(staged))

    def change_active_variant(self, mod: Mod, variant: ModVariant | None) -> bool:
        """Make *variant* the only variant of *mod* in the mods folder (or none, for None).

        Returns False when the mods folder already matched and nothing was changed.
        """
        if variant is not None and variant.mod_id != mod.id:
            raise ValidationError(
                f"Variant and mod were different! {mod.id}, {variant.smol_id}",
                step="change-active-variant",
            )

        with self._locks.write(*self._regions):
            in_mods = self._copies_on_disk(self.mods_path, mod.id)
            if (
                variant is not None
                and set(in_mods) == {variant.smol_id}
                and len(in_mods[variant.smol_id]) == 1
            ):
                logger.info("%s is already the active variant, nothing to do", variant.smol_id)
                if self._write_enabled_mods_list and not mod.is_enabled_in_game:
                    self._enabled_mods.set_enabled(mod.id, True)
                return False
            if variant is None and not in_mods:
                logger.info("No variants of %s active, nothing to do", mod.id)
                return False

            for smol_id, copies in in_mods.items():
                if variant is None or smol_id != variant.smol_id:
                    for folder, data in copies:
                        self._disable_copy(folder, data)

            if variant is not None:
                # Also drops duplicate folders of the target.
                self.enable(variant)
            elif self._write_enabled_mods_list:
                self._enabled_mods.set_enabled(mod.id, False)
            return True

    def _disable_copy(self, folder: Path, data: DataFiles) -> None:
        """Move one mods-folder copy out to staging (caller holds the write lock)."""
        smol_id = _smol_id_of(data)
        if not self._copies_on_disk(self.staging_path, data.mod_info.id).get(smol_id):
            replace_tree(folder, self.staging_path / generate_variant_folder_name(data.mod_info))
        delete_tree(folder)
        logger.info("Disabled %s (%s)", smol_id, folder.name)


def _smol_id_of(data: DataFiles) -> SmolId:
    return create_smol_id(data.mod_info.id, data.mod_info.version)
