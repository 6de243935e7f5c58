"""Entry point for front-ends: one object owning the loader, staging, and caches.

Every state transition fires a reload of the affected mod when it finishes,
whether it succeeded or not, so the published mod list always matches what
is on disk.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from smol_manager.config import Settings
from smol_manager.exceptions import NotFoundError, ValidationError
from smol_manager.models.mod import Mod, ModId, ModList, ModListUpdate, ModVariant, SmolId, VersionCheckerInfo
from smol_manager.services.archive_service import install_from_unknown_source
from smol_manager.services.cache_store import VramCheckerCache
from smol_manager.services.enabled_mods import GameEnabledMods
from smol_manager.services.mod_loader import ModLoader
from smol_manager.services.staging import Staging
from smol_manager.services.version_checker import VersionChecker
from smol_manager.utils.locks import IOLocks, io_locks
from smol_manager.utils.observable import Observable, ReloadTrigger

logger = logging.getLogger(__name__)


class ModManager:
    def __init__(
        self,
        *,
        loader: ModLoader,
        staging: Staging,
        version_checker: VersionChecker,
        vram_cache: VramCheckerCache,
        search_depth: int,
        locks: IOLocks = io_locks,
    ) -> None:
        self.loader = loader
        self.staging = staging
        self.version_checker = version_checker
        self.vram_cache = vram_cache
        self.locks = locks
        self._search_depth = search_depth
        self.reload_trigger = ReloadTrigger()
        self.reload_trigger.connect(self._on_reload_requested)

    @classmethod
    def from_settings(cls, settings: Settings, *, locks: IOLocks = io_locks) -> ModManager:
        enabled_mods = GameEnabledMods(settings.enabled_mods_path, locks=locks)
        for folder in (settings.staging_path, settings.archives_path):
            folder.mkdir(parents=True, exist_ok=True)
        return cls(
            loader=ModLoader(
                mods_path=settings.mods_path,
                staging_path=settings.staging_path,
                archives_path=settings.archives_path,
                enabled_mods=enabled_mods,
                locks=locks,
                parse_workers=settings.parse_workers,
            ),
            staging=Staging(
                mods_path=settings.mods_path,
                staging_path=settings.staging_path,
                enabled_mods=enabled_mods,
                locks=locks,
                search_depth=settings.mod_info_search_depth,
                write_enabled_mods_list=settings.write_enabled_mods_list,
            ),
            version_checker=VersionChecker(
                settings.version_checker_cache_path,
                interval_seconds=settings.version_check_interval_seconds,
                max_concurrent=settings.version_check_concurrency,
                timeout=settings.version_check_timeout,
                locks=locks,
            ),
            vram_cache=VramCheckerCache(settings.vram_checker_cache_path, locks=locks),
            search_depth=settings.mod_info_search_depth,
            locks=locks,
        )

    # Observable state

    @property
    def mods(self) -> Observable[ModListUpdate | None]:
        return self.loader.mods

    @property
    def is_loading(self) -> Observable[bool]:
        return self.loader.is_loading

    def current_mods(self) -> ModList:
        return self.loader.current_mods()

    def find_mod(self, mod_id: ModId) -> Mod:
        mod = self.current_mods().get(mod_id)
        if mod is None:
            raise NotFoundError(f"Unknown mod '{mod_id}'", step="find-mod")
        return mod

    def find_variant(self, smol_id: SmolId) -> tuple[Mod, ModVariant]:
        for mod in self.current_mods():
            variant = mod.variant(smol_id)
            if variant is not None:
                return mod, variant
        raise NotFoundError(f"Unknown variant '{smol_id}'", step="find-variant")

    # Loading

    def reload(self, mod_ids: Iterable[ModId] | None = None) -> ModListUpdate | None:
        return self.loader.reload(mod_ids)

    def _on_reload_requested(self, reason: str, mod_ids: Collection[ModId] | None) -> None:
        logger.debug("Reloading after %s", reason)
        self.loader.reload(mod_ids)

    @contextmanager
    def _then_reload(self, reason: str, mod_ids: Collection[ModId] | None) -> Iterator[None]:
        try:
            yield
        finally:
            self.reload_trigger.fire(reason, mod_ids)

    # Transitions

    def stage(self, variant: ModVariant) -> Path:
        with self._then_reload("stage", [variant.mod_id]):
            return self.staging.stage(variant)

    def unstage(self, mod: Mod) -> None:
        with self._then_reload("unstage", [mod.id]):
            self.staging.unstage(mod)

    def enable(self, variant: ModVariant) -> Path:
        with self._then_reload("enable", [variant.mod_id]):
            return self.staging.enable(variant)

    def disable(self, variant: ModVariant) -> None:
        with self._then_reload("disable", [variant.mod_id]):
            self.staging.disable(variant)

    def change_active_variant(self, mod: Mod, variant: ModVariant | None) -> bool:
        # A mismatched variant is rejected before anything happens, so no reload.
        if variant is not None and variant.mod_id != mod.id:
            raise ValidationError(
                f"Variant and mod were different! {mod.id}, {variant.smol_id}",
                step="change-active-variant",
            )
        with self._then_reload("change-active-variant", [mod.id]):
            return self.staging.change_active_variant(mod, variant)

    def install_from_unknown_source(self, input_path: Path, destination_folder: Path | None = None) -> Path:
        """Install into *destination_folder* (the mods folder by default), then reload."""
        destination = destination_folder or self.staging.mods_path
        with self._then_reload("install", None):
            return install_from_unknown_source(
                input_path,
                destination,
                search_depth=self._search_depth,
                locks=self.locks,
            )

    # Versions

    async def look_up_versions(self, force_lookup: bool = False) -> dict[ModId, VersionCheckerInfo]:
        return await self.version_checker.look_up_versions(self.current_mods(), force_lookup)

    def get_online_version(self, mod_id: ModId) -> VersionCheckerInfo | None:
        return self.version_checker.get_online_version(mod_id)
