from pathlib import Path

import pytest

from smol_manager.models import (
    ArchiveInfo,
    Mod,
    ModInfo,
    ModList,
    ModsFolderInfo,
    ModState,
    ModVariant,
    StagingInfo,
    Version,
    VersionCheckerInfo,
    create_smol_id,
    generate_variant_folder_name,
)


def _info(mod_id: str = "lw_lazylib", version: str = "2.8b", name: str = "LazyLib") -> ModInfo:
    return ModInfo(id=mod_id, name=name, version=Version.parse(version))


def _variant(version: str = "2.8b", **locations) -> ModVariant:
    if not locations:
        locations = {"staging_info": StagingInfo(folder=Path("/staging/x"))}
    return ModVariant(mod_info=_info(version=version), **locations)


class TestSmolId:
    def test_deterministic(self):
        assert create_smol_id("lw_lazylib", "2.8b") == create_smol_id("lw_lazylib", "2.8b")

    def test_known_value(self):
        # 31 * (31 * 1 + 97) + 49: the code units of "a" and "1".
        assert create_smol_id("a", "1") == "a-1-4017"

    def test_sanitizes_and_truncates(self):
        smol_id = create_smol_id("my mod!id", "1.0.0 (beta)")
        prefix_id, prefix_version, digest = smol_id.split("-", 2)
        assert prefix_id == "mymodi"
        assert prefix_version == "1.0.0beta"
        assert digest.isdigit()

    def test_different_versions_differ(self):
        assert create_smol_id("mod", "1.0") != create_smol_id("mod", "1.1")

    def test_version_object_and_string_agree(self):
        assert create_smol_id("mod", Version.parse("1.0.0")) == create_smol_id("mod", "1.0.0")


class TestModVariant:
    def test_requires_a_location(self):
        with pytest.raises(ValueError, match="does not exist"):
            ModVariant(mod_info=_info())

    def test_folder_name_contains_smol_id(self):
        variant = _variant()
        assert variant.generate_variant_folder_name() == f"LazyLib_{variant.smol_id}"

    def test_folder_name_strips_unsafe_characters(self):
        info = ModInfo(id="m", name='Bad:/Name*?"', version=Version.parse("1"))
        assert generate_variant_folder_name(info).startswith("BadName_")

    def test_merged_with_backfills_missing_fields(self):
        staged = _variant(staging_info=StagingInfo(folder=Path("/s")))
        archived = ModVariant(
            mod_info=_info(),
            archive_info=ArchiveInfo(path=Path("/a.zip")),
            staging_info=StagingInfo(folder=Path("/other")),
            version_checker_info=VersionCheckerInfo(mod_version=Version.parse("1")),
        )
        merged = staged.merged_with(archived)
        assert merged.staging_info == StagingInfo(folder=Path("/s"))
        assert merged.archive_info == ArchiveInfo(path=Path("/a.zip"))
        assert merged.version_checker_info is not None

    def test_mod_lookup_by_id(self):
        variant = _variant()
        mods = ModList((Mod(id="lw_lazylib", is_enabled_in_game=True, variants=(variant,)),))
        assert variant.mod(mods) is mods.get("lw_lazylib")
        assert variant.mod(ModList()) is None


class TestMod:
    def _mod(self, enabled_in_game: bool) -> Mod:
        return Mod(
            id="lw_lazylib",
            is_enabled_in_game=enabled_in_game,
            variants=(
                _variant("1.0", archive_info=ArchiveInfo(path=Path("/a.zip"))),
                _variant("2.0", staging_info=StagingInfo(folder=Path("/s"))),
                _variant("3.0", mods_folder_info=ModsFolderInfo(folder=Path("/m"))),
            ),
        )

    def test_states(self):
        mod = self._mod(enabled_in_game=True)
        assert [mod.state_of(v) for v in mod.variants] == [
            ModState.ARCHIVED,
            ModState.STAGED,
            ModState.ENABLED,
        ]

    def test_mods_folder_copy_of_disabled_mod_is_disabled(self):
        mod = self._mod(enabled_in_game=False)
        assert mod.state_of(mod.variants[2]) == ModState.DISABLED
        assert mod.enabled_variants == []
        assert not mod.has_enabled_variant

    def test_enabled_requires_both_conditions(self):
        mod = self._mod(enabled_in_game=True)
        assert mod.enabled_variants == [mod.variants[2]]
        assert mod.find_first_enabled is mod.variants[2]
        assert mod.find_first_disabled is mod.variants[0]

    def test_highest_version(self):
        mod = self._mod(enabled_in_game=False)
        assert str(mod.find_highest_version.mod_info.version) == "3.0"
        assert mod.find_first_enabled_or_highest_version is mod.variants[2]

    def test_variant_lookup(self):
        mod = self._mod(enabled_in_game=True)
        target = mod.variants[1]
        assert mod.variant(target.smol_id) is target
        assert mod.variant("missing") is None


class TestModList:
    def test_get_and_find_variant(self):
        variant = _variant()
        mods = ModList((Mod(id="lw_lazylib", is_enabled_in_game=False, variants=(variant,)),))
        assert len(mods) == 1
        assert mods.get("nope") is None
        assert mods.find_variant(variant.smol_id) is variant
        assert [m.id for m in mods] == ["lw_lazylib"]
