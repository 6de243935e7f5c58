import pytest

from smol_manager.exceptions import ModInfoParseError
from smol_manager.services.mod_info_loader import (
    deserialize_mod_info_file,
    deserialize_version_checker_file,
    find_mod_info_file_in_folder,
    find_version_checker_file,
    read_mod_data_files,
    read_mod_data_files_from_folder_of_mods,
    strip_hash_comments,
)

LEGACY_MANIFEST = """
{
    # the game accepts hash comments
    "id": "lw_lazylib",
    "name": "LazyLib",
    "author": "LazyWizard",
    "version": "2.8b", // trailing comments too
    "gameVersion": "0.95.1a-RC6",
    "description": "Library # not a comment",
    "utility": true,
    "jars": ["jars/LazyLib.jar"],
    "modPlugin": "org.lazywizard.lazylib.LazyLibPlugin",
    "dependencies": [{"id": "shaderLib", "name": "GraphicsLib", "version": 1.5},],
}
"""

CURRENT_MANIFEST = """
{
    id: "magiclib",
    name: "MagicLib",
    version: {major: 1, minor: 4, patch: "6"},
    /* block comment */
    totalConversion: false,
}
"""


class TestStripHashComments:
    def test_strips_line_comment(self):
        assert strip_hash_comments('{"a": 1} # note').strip() == '{"a": 1}'

    def test_keeps_hash_inside_string(self):
        text = '{"url": "http://x/#anchor"}'
        assert strip_hash_comments(text) == text

    def test_keeps_other_comment_styles(self):
        text = "{ // don't # touch\n}"
        assert strip_hash_comments(text) == text


class TestDeserializeModInfo:
    def test_legacy_layout(self):
        info = deserialize_mod_info_file(LEGACY_MANIFEST)
        assert info.id == "lw_lazylib"
        assert str(info.version) == "2.8b"
        assert info.game_version == "0.95.1a-RC6"
        assert info.description == "Library # not a comment"
        assert info.utility is True
        assert info.jars == ("jars/LazyLib.jar",)
        assert info.dependencies[0].id == "shaderLib"
        assert info.dependencies[0].version == "1.5"

    def test_current_layout(self):
        info = deserialize_mod_info_file(CURRENT_MANIFEST)
        assert info.id == "magiclib"
        assert str(info.version) == "1.4.6"
        assert info.version.patch == "6"
        assert info.total_conversion is False

    def test_accepts_bytes_with_bom(self):
        info = deserialize_mod_info_file("\ufeff".encode() + b'{"id": "x", "version": "1"}')
        assert info.id == "x"
        assert info.name == "x"

    def test_missing_id_raises(self):
        with pytest.raises(ModInfoParseError):
            deserialize_mod_info_file('{"name": "no id", "version": "1"}')

    def test_garbage_raises(self):
        with pytest.raises(ModInfoParseError):
            deserialize_mod_info_file("this is not json")

    def test_non_object_raises(self):
        with pytest.raises(ModInfoParseError, match="not an object"):
            deserialize_mod_info_file("[1, 2, 3]")


class TestDeserializeVersionChecker:
    def test_object_version(self):
        info = deserialize_version_checker_file(
            '{"masterVersionFile": "https://example.com/x.version",'
            ' "modThreadId": 12345, "modVersion": {"major": 1, "minor": 2, "patch": 3}}'
        )
        assert info.master_version_file == "https://example.com/x.version"
        assert info.mod_thread_id == "12345"
        assert str(info.mod_version) == "1.2.3"

    def test_missing_version(self):
        info = deserialize_version_checker_file('{"modName": "Thing"}')
        assert info.mod_version is None
        assert info.mod_name == "Thing"


class TestFolderHelpers:
    def test_find_mod_info_respects_depth(self, tmp_path):
        deep = tmp_path / "a" / "b" / "c"
        deep.mkdir(parents=True)
        (deep / "mod_info.json").write_text('{"id": "x", "version": "1"}')
        assert find_mod_info_file_in_folder(tmp_path, 4) == deep / "mod_info.json"
        assert find_mod_info_file_in_folder(tmp_path, 3) is None

    def test_find_mod_info_prefers_shallowest(self, tmp_path):
        (tmp_path / "inner").mkdir()
        (tmp_path / "mod_info.json").write_text("{}")
        (tmp_path / "inner" / "mod_info.json").write_text("{}")
        assert find_mod_info_file_in_folder(tmp_path, 6) == tmp_path / "mod_info.json"

    def test_version_file_from_csv(self, tmp_path, make_mod, version_file_json):
        folder = make_mod(tmp_path, "Mod", "m")
        csv_dir = folder / "data" / "config" / "version"
        csv_dir.mkdir(parents=True)
        (folder / "custom").mkdir()
        (folder / "custom" / "real.version").write_text(version_file_json("2.0"))
        (csv_dir / "version_files.csv").write_text("version file\ncustom/real.version\n")
        assert find_version_checker_file(folder) == folder / "custom" / "real.version"

    def test_version_file_fallback_search(self, tmp_path, make_mod, version_file_json):
        folder = make_mod(tmp_path, "Mod", "m", version_file=version_file_json("1.0"))
        assert find_version_checker_file(folder) == folder / "m.version"

    def test_read_mod_data_files(self, tmp_path, make_mod, version_file_json):
        folder = make_mod(tmp_path, "Mod", "m", "1.0", version_file=version_file_json("1.0"))
        data = read_mod_data_files(folder)
        assert data.mod_info.id == "m"
        assert str(data.version_checker_info.mod_version) == "1.0"

    def test_broken_version_file_is_ignored(self, tmp_path, make_mod):
        folder = make_mod(tmp_path, "Mod", "m", version_file="{{{ not json")
        data = read_mod_data_files(folder)
        assert data.version_checker_info is None

    def test_folder_of_mods_skips_broken(self, tmp_path, make_mod):
        make_mod(tmp_path, "Good", "good")
        broken = tmp_path / "Broken"
        broken.mkdir()
        (broken / "mod_info.json").write_text("{ nope")
        (tmp_path / "NoManifest").mkdir()

        results = read_mod_data_files_from_folder_of_mods(tmp_path, max_workers=2)

        assert [(folder.name, data.mod_info.id) for folder, data in results] == [("Good", "good")]

    def test_folder_of_mods_missing_folder(self, tmp_path):
        assert read_mod_data_files_from_folder_of_mods(tmp_path / "missing") == []

    def test_folder_of_mods_skips_hidden_folders(self, tmp_path, make_mod):
        make_mod(tmp_path, "Alpha", "alpha")
        make_mod(tmp_path, ".Alpha-0f3c2a", "alpha")

        results = read_mod_data_files_from_folder_of_mods(tmp_path, max_workers=2)

        assert [folder.name for folder, _data in results] == ["Alpha"]
