"""Scan the mods, staging, and archive folders and publish the mod list.

Each reload builds a fresh :class:`ModListUpdate` from disk, diffs it
against the previous one by smol id, and publishes it through
:attr:`ModLoader.mods`.  Only one reload runs at a time; a reload requested
while another is running returns the current list instead of starting a
second pass.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Collection, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from smol_manager.archive.handler import is_archive
from smol_manager.exceptions import SmolError
from smol_manager.models.mod import (
    ArchiveInfo,
    Mod,
    ModId,
    ModList,
    ModListUpdate,
    ModsFolderInfo,
    ModVariant,
    SmolId,
    StagingInfo,
)
from smol_manager.services.archive_service import read_data_files_in_archive
from smol_manager.services.enabled_mods import GameEnabledMods
from smol_manager.services.mod_info_loader import read_mod_data_files_from_folder_of_mods
from smol_manager.utils.locks import MOD_FILES, IOLocks, io_locks
from smol_manager.utils.observable import Observable

logger = logging.getLogger(__name__)


def merge_variants(variants: Iterable[ModVariant], enabled_mod_ids: Collection[ModId]) -> list[Mod]:
    """Group variants into mods, merging copies of the same variant.

    When two copies share a smol id the one seen first keeps its fields and
    only gains the location markers and version checker info it lacks.
    Variants come out sorted by version, mods sorted by id.
    """
    by_mod: dict[ModId, dict[SmolId, ModVariant]] = {}
    for variant in variants:
        merged = by_mod.setdefault(variant.mod_id, {})
        existing = merged.get(variant.smol_id)
        merged[variant.smol_id] = existing.merged_with(variant) if existing else variant

    return [
        Mod(
            id=mod_id,
            is_enabled_in_game=mod_id in enabled_mod_ids,
            variants=tuple(
                sorted(merged.values(), key=lambda v: v.mod_info.version.sort_key())
            ),
        )
        for mod_id, merged in sorted(by_mod.items())
    ]


def diff_variants(
    previous: Iterable[ModVariant], current: Iterable[ModVariant]
) -> tuple[tuple[ModVariant, ...], tuple[ModVariant, ...]]:
    """Return ``(added, removed)`` between two variant collections, by smol id."""
    previous_by_id = {v.smol_id: v for v in previous}
    current_by_id = {v.smol_id: v for v in current}
    added = tuple(v for sid, v in current_by_id.items() if sid not in previous_by_id)
    removed = tuple(v for sid, v in previous_by_id.items() if sid not in current_by_id)
    return added, removed


class ModLoader:
    def __init__(
        self,
        *,
        mods_path: Path,
        staging_path: Path,
        archives_path: Path,
        enabled_mods: GameEnabledMods,
        locks: IOLocks = io_locks,
        parse_workers: int = 8,
    ) -> None:
        self.mods_path = mods_path
        self.staging_path = staging_path
        self.archives_path = archives_path
        self._enabled_mods = enabled_mods
        self._locks = locks
        self._parse_workers = parse_workers
        self._reload_lock = threading.Lock()

        self.mods: Observable[ModListUpdate | None] = Observable(None)
        self.is_loading: Observable[bool] = Observable(False)

    def current_mods(self) -> ModList:
        update = self.mods.value
        return update.mods if update else ModList()

    def reload(self, mod_ids: Iterable[ModId] | None = None) -> ModListUpdate | None:
        """Re-read mods from disk and publish the result.

        With *mod_ids*, only those mods are re-read and patched into the
        current list.  Returns None (keeping the previous list) on failure.
        """
        if not self._reload_lock.acquire(blocking=False):
            logger.info("Mod reload requested, but declined; already reloading")
            return self.mods.value

        try:
            self.is_loading.set(True)
            wanted = set(mod_ids) if mod_ids is not None else None
            logger.info("Refreshing mod info files: %s", sorted(wanted) if wanted is not None else "all")
            started = time.perf_counter()
            try:
                update = self._reload(wanted)
            except Exception:
                logger.exception("Mod reload failed")
                return None
            if update is not None:
                logger.info(
                    "Loaded %d mods in %.0fms (%d added, %d removed)",
                    len(update.mods),
                    (time.perf_counter() - started) * 1000,
                    len(update.added),
                    len(update.removed),
                )
            return update
        finally:
            self.is_loading.set(False)
            self._reload_lock.release()

    def _reload(self, wanted: set[ModId] | None) -> ModListUpdate | None:
        enabled = self._enabled_mods.get_enabled_mods()
        if enabled is None:
            logger.warning("Couldn't get enabled mods, cannot load mods")
            return None
        if not self.mods_path.is_dir():
            logger.warning("Mods folder %s not found, cannot load mods", self.mods_path)
            return None

        with self._locks.read(*MOD_FILES):
            variants = [*self._scan_mods_folder(), *self._scan_staging(), *self._scan_archives()]

        if wanted is not None:
            variants = [v for v in variants if v.mod_id in wanted]

        result = merge_variants(variants, set(enabled.enabled_mods))
        for mod in result:
            in_mods_folder = mod.variants_in_mods_folder
            if len(in_mods_folder) > 1:
                logger.warning(
                    "%s has multiple enabled variants in the mods folder: %s",
                    mod.id,
                    ", ".join(str(v.mods_folder_info.folder) for v in in_mods_folder if v.mods_folder_info),
                )

        previous = self.mods.value
        previous_variants = previous.mods.variants if previous else []

        if wanted is None:
            mod_list = ModList(tuple(result))
        else:
            patched = {m.id: m for m in (previous.mods if previous else ())}
            for mod_id in wanted:
                patched.pop(mod_id, None)
            patched.update((m.id, m) for m in result)
            mod_list = ModList(tuple(patched[k] for k in sorted(patched)))

        added, removed = diff_variants(previous_variants, mod_list.variants)
        update = ModListUpdate(mods=mod_list, added=added, removed=removed)
        self.mods.set(update)
        return update

    def _scan_mods_folder(self) -> list[ModVariant]:
        return [
            ModVariant(
                mod_info=data.mod_info,
                version_checker_info=data.version_checker_info,
                mods_folder_info=ModsFolderInfo(folder=folder),
            )
            for folder, data in read_mod_data_files_from_folder_of_mods(
                self.mods_path, max_workers=self._parse_workers
            )
        ]

    def _scan_staging(self) -> list[ModVariant]:
        return [
            ModVariant(
                mod_info=data.mod_info,
                version_checker_info=data.version_checker_info,
                staging_info=StagingInfo(folder=folder),
            )
            for folder, data in read_mod_data_files_from_folder_of_mods(
                self.staging_path, max_workers=self._parse_workers
            )
        ]

    def _scan_archives(self) -> list[ModVariant]:
        if not self.archives_path.is_dir():
            return []
        archives = sorted(p for p in self.archives_path.iterdir() if p.is_file() and is_archive(p))
        if not archives:
            return []

        def _probe(path: Path) -> ModVariant | None:
            try:
                data = read_data_files_in_archive(path)
            except SmolError as exc:
                logger.warning("Skipping archive: %s", exc)
                return None
            if data is None:
                logger.debug("No mod_info.json in archive %s", path)
                return None
            return ModVariant(
                mod_info=data.mod_info,
                version_checker_info=data.version_checker_info,
                archive_info=ArchiveInfo(path=path),
            )

        with ThreadPoolExecutor(max_workers=max(1, self._parse_workers)) as pool:
            return [v for v in pool.map(_probe, archives) if v is not None]
