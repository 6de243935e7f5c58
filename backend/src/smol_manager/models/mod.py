"""Mods, their variants, and where each variant lives on disk.

A :class:`Mod` groups every :class:`ModVariant` that shares a mod id.  Both
are frozen snapshots rebuilt on every reload; a variant refers to its mod by
id only, and :meth:`ModVariant.mod` resolves that id against a snapshot.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from smol_manager.models.version import Version

SmolId = str
ModId = str

_SMOL_ID_FILTER = re.compile(r"[^0-9a-zA-Z.\-_]")
_FOLDER_NAME_FILTER = re.compile(r"[^0-9a-zA-Z.\-_ ]")


def _string_hash(value: str) -> int:
    """31-multiplier polynomial hash over UTF-16 code units, as a signed 32-bit int."""
    h = 0
    data = value.encode("utf-16-be")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def _objects_hash(*values: str) -> int:
    h = 1
    for v in values:
        h = (31 * h + _string_hash(v)) & 0xFFFFFFFF
    return h - (1 << 32) if h & 0x80000000 else h


def create_smol_id(mod_id: str, version: Version | str) -> SmolId:
    """Composite key of mod id and version.

    The trailing hash is stable across processes (Python's own ``hash`` is
    salted per run, so it is not used).
    """
    version_str = str(version)
    return "-".join(
        (
            _SMOL_ID_FILTER.sub("", mod_id)[:6],
            _SMOL_ID_FILTER.sub("", version_str)[:9],
            str(abs(_objects_hash(mod_id, version_str))),
        )
    )


@dataclass(frozen=True, slots=True)
class Dependency:
    id: str
    name: str | None = None
    version: str | None = None


@dataclass(frozen=True, slots=True)
class ModInfo:
    id: str
    name: str
    version: Version
    author: str = ""
    game_version: str = ""
    description: str = ""
    dependencies: tuple[Dependency, ...] = ()
    jars: tuple[str, ...] = ()
    mod_plugin: str = ""
    utility: bool = False
    total_conversion: bool = False


@dataclass(frozen=True, slots=True)
class VersionCheckerInfo:
    mod_version: Version | None = None
    master_version_file: str | None = None
    mod_thread_id: str | None = None
    mod_name: str | None = None
    mod_nexus_id: str | None = None


@dataclass(frozen=True, slots=True)
class ModsFolderInfo:
    folder: Path


@dataclass(frozen=True, slots=True)
class StagingInfo:
    folder: Path


@dataclass(frozen=True, slots=True)
class ArchiveInfo:
    path: Path


class ModState(StrEnum):
    ARCHIVED = "archived"
    STAGED = "staged"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass(frozen=True, slots=True)
class ModVariant:
    mod_info: ModInfo
    version_checker_info: VersionCheckerInfo | None = None
    mods_folder_info: ModsFolderInfo | None = None
    staging_info: StagingInfo | None = None
    archive_info: ArchiveInfo | None = None

    def __post_init__(self) -> None:
        if self.mods_folder_info is None and self.staging_info is None and self.archive_info is None:
            raise ValueError(f"Variant {self.smol_id} does not exist in any location")

    @property
    def smol_id(self) -> SmolId:
        return create_smol_id(self.mod_info.id, self.mod_info.version)

    @property
    def mod_id(self) -> ModId:
        return self.mod_info.id

    @property
    def exists(self) -> bool:
        return (
            (self.mods_folder_info is not None and self.mods_folder_info.folder.exists())
            or (self.staging_info is not None and self.staging_info.folder.exists())
            or (self.archive_info is not None and self.archive_info.path.exists())
        )

    def mod(self, mods: ModList | Iterable[Mod]) -> Mod | None:
        """Look up the owning mod in a snapshot."""
        for candidate in mods:
            if candidate.id == self.mod_id:
                return candidate
        return None

    def generate_variant_folder_name(self) -> str:
        return generate_variant_folder_name(self.mod_info)

    def merged_with(self, other: ModVariant) -> ModVariant:
        """Fill fields missing here from *other* (same smol_id); present fields win."""
        return ModVariant(
            mod_info=self.mod_info,
            version_checker_info=self.version_checker_info or other.version_checker_info,
            mods_folder_info=self.mods_folder_info or other.mods_folder_info,
            staging_info=self.staging_info or other.staging_info,
            archive_info=self.archive_info or other.archive_info,
        )


def generate_variant_folder_name(mod_info: ModInfo) -> str:
    name = _FOLDER_NAME_FILTER.sub("", mod_info.name).strip()
    return f"{name}_{create_smol_id(mod_info.id, mod_info.version)}"


@dataclass(frozen=True, slots=True)
class Mod:
    id: ModId
    is_enabled_in_game: bool
    variants: tuple[ModVariant, ...] = ()

    def is_enabled(self, variant: ModVariant) -> bool:
        """In enabled_mods.json and physically present in the mods folder."""
        return self.is_enabled_in_game and variant.mods_folder_info is not None

    def state_of(self, variant: ModVariant) -> ModState:
        if variant.mods_folder_info is not None:
            return ModState.ENABLED if self.is_enabled_in_game else ModState.DISABLED
        if variant.staging_info is not None:
            return ModState.STAGED
        return ModState.ARCHIVED

    @property
    def enabled_variants(self) -> list[ModVariant]:
        return [v for v in self.variants if self.is_enabled(v)]

    @property
    def variants_in_mods_folder(self) -> list[ModVariant]:
        return [v for v in self.variants if v.mods_folder_info is not None]

    @property
    def find_first_enabled(self) -> ModVariant | None:
        return next((v for v in self.variants if self.is_enabled(v)), None)

    @property
    def find_first_disabled(self) -> ModVariant | None:
        return next((v for v in self.variants if not self.is_enabled(v)), None)

    @property
    def find_highest_version(self) -> ModVariant | None:
        if not self.variants:
            return None
        return max(self.variants, key=lambda v: v.mod_info.version.sort_key())

    @property
    def find_first_enabled_or_highest_version(self) -> ModVariant | None:
        return self.find_first_enabled or self.find_highest_version

    @property
    def has_enabled_variant(self) -> bool:
        return self.find_first_enabled is not None

    def variant(self, smol_id: SmolId) -> ModVariant | None:
        return next((v for v in self.variants if v.smol_id == smol_id), None)


@dataclass(frozen=True, slots=True)
class ModList:
    """Immutable snapshot of every known mod, iterable and indexable by id."""

    mods: tuple[Mod, ...] = ()
    _by_id: dict[ModId, Mod] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {m.id: m for m in self.mods})

    def __iter__(self) -> Iterator[Mod]:
        return iter(self.mods)

    def __len__(self) -> int:
        return len(self.mods)

    def get(self, mod_id: ModId) -> Mod | None:
        return self._by_id.get(mod_id)

    @property
    def variants(self) -> list[ModVariant]:
        return [v for m in self.mods for v in m.variants]

    def find_variant(self, smol_id: SmolId) -> ModVariant | None:
        return next((v for v in self.variants if v.smol_id == smol_id), None)


@dataclass(frozen=True, slots=True)
class ModListUpdate:
    mods: ModList
    added: tuple[ModVariant, ...] = ()
    removed: tuple[ModVariant, ...] = ()
