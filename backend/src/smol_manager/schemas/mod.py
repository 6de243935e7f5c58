from __future__ import annotations

from pydantic import BaseModel

from smol_manager.models.mod import Mod, ModListUpdate, ModState, ModVariant, VersionCheckerInfo


class VersionCheckerInfoOut(BaseModel):
    mod_version: str | None = None
    master_version_file: str | None = None
    mod_thread_id: str | None = None
    mod_name: str | None = None
    mod_nexus_id: str | None = None

    @classmethod
    def from_info(cls, info: VersionCheckerInfo) -> VersionCheckerInfoOut:
        return cls(
            mod_version=str(info.mod_version) if info.mod_version is not None else None,
            master_version_file=info.master_version_file,
            mod_thread_id=info.mod_thread_id,
            mod_name=info.mod_name,
            mod_nexus_id=info.mod_nexus_id,
        )


class DependencyOut(BaseModel):
    id: str
    name: str | None = None
    version: str | None = None


class ModVariantOut(BaseModel):
    smol_id: str
    mod_id: str
    name: str
    version: str
    author: str = ""
    game_version: str = ""
    description: str = ""
    utility: bool = False
    total_conversion: bool = False
    dependencies: list[DependencyOut] = []
    state: ModState
    mods_folder: str | None = None
    staging_folder: str | None = None
    archive_path: str | None = None
    version_checker: VersionCheckerInfoOut | None = None

    @classmethod
    def from_variant(cls, mod: Mod, variant: ModVariant) -> ModVariantOut:
        info = variant.mod_info
        return cls(
            smol_id=variant.smol_id,
            mod_id=variant.mod_id,
            name=info.name,
            version=str(info.version),
            author=info.author,
            game_version=info.game_version,
            description=info.description,
            utility=info.utility,
            total_conversion=info.total_conversion,
            dependencies=[DependencyOut(id=d.id, name=d.name, version=d.version) for d in info.dependencies],
            state=mod.state_of(variant),
            mods_folder=str(variant.mods_folder_info.folder) if variant.mods_folder_info else None,
            staging_folder=str(variant.staging_info.folder) if variant.staging_info else None,
            archive_path=str(variant.archive_info.path) if variant.archive_info else None,
            version_checker=(
                VersionCheckerInfoOut.from_info(variant.version_checker_info)
                if variant.version_checker_info
                else None
            ),
        )


class ModOut(BaseModel):
    id: str
    is_enabled_in_game: bool
    active_variant: str | None = None
    variants: list[ModVariantOut] = []

    @classmethod
    def from_mod(cls, mod: Mod) -> ModOut:
        active = mod.find_first_enabled
        return cls(
            id=mod.id,
            is_enabled_in_game=mod.is_enabled_in_game,
            active_variant=active.smol_id if active else None,
            variants=[ModVariantOut.from_variant(mod, v) for v in mod.variants],
        )


class ModListOut(BaseModel):
    mods: list[ModOut] = []
    added: list[str] = []
    removed: list[str] = []

    @classmethod
    def from_update(cls, update: ModListUpdate | None) -> ModListOut:
        if update is None:
            return cls()
        return cls(
            mods=[ModOut.from_mod(m) for m in update.mods],
            added=[v.smol_id for v in update.added],
            removed=[v.smol_id for v in update.removed],
        )


class ActiveVariantRequest(BaseModel):
    smol_id: str | None = None


class TransitionResult(BaseModel):
    mod_id: str
    smol_id: str | None = None
    changed: bool = True
    folder: str | None = None
