from smol_manager.models.mod import (
    ArchiveInfo,
    Dependency,
    Mod,
    ModId,
    ModInfo,
    ModList,
    ModListUpdate,
    ModsFolderInfo,
    ModState,
    ModVariant,
    SmolId,
    StagingInfo,
    VersionCheckerInfo,
    create_smol_id,
    generate_variant_folder_name,
)
from smol_manager.models.version import Version

__all__ = [
    "ArchiveInfo",
    "Dependency",
    "Mod",
    "ModId",
    "ModInfo",
    "ModList",
    "ModListUpdate",
    "ModState",
    "ModVariant",
    "ModsFolderInfo",
    "SmolId",
    "StagingInfo",
    "Version",
    "VersionCheckerInfo",
    "create_smol_id",
    "generate_variant_folder_name",
]
