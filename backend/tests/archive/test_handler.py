import zipfile

import py7zr
import pytest

from smol_manager.archive.handler import (
    ArchiveEntry,
    SevenZipHandler,
    ZipHandler,
    extract_all,
    extract_entries,
    is_archive,
    list_entries,
    open_archive,
)
from smol_manager.exceptions import ValidationError


def _make_zip(path, files: dict[str, bytes]) -> None:
    """Create a zip archive with the given filename -> content mapping."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)


def _make_7z(path, src_dir, files: dict[str, bytes]) -> None:
    """Create a 7z archive from files written under *src_dir*."""
    with py7zr.SevenZipFile(path, "w") as archive:
        for name, content in files.items():
            source = src_dir / name
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_bytes(content)
            archive.write(source, arcname=name)


class TestZipHandler:
    def test_list_entries_returns_files(self, tmp_path):
        zip_path = tmp_path / "test.zip"
        _make_zip(zip_path, {"file1.txt": b"hello", "file2.txt": b"world"})

        with ZipHandler(zip_path) as handler:
            entries = handler.list_entries()

        assert {e.filename for e in entries} == {"file1.txt", "file2.txt"}
        assert [e.index for e in entries] == [0, 1]
        assert all(isinstance(e, ArchiveEntry) for e in entries)

    def test_list_entries_correct_sizes(self, tmp_path):
        zip_path = tmp_path / "test.zip"
        _make_zip(zip_path, {"bigfile.bin": b"x" * 100})

        with ZipHandler(zip_path) as handler:
            entries = handler.list_entries()

        assert len(entries) == 1
        assert entries[0].size == 100

    def test_list_entries_marks_directories(self, tmp_path):
        zip_path = tmp_path / "dirs.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.mkdir("subdir")
            zf.writestr("subdir/nested.txt", b"nested content")

        with ZipHandler(zip_path) as handler:
            entries = handler.list_entries()

        assert any(e.is_dir for e in entries)
        assert any(not e.is_dir for e in entries)

    def test_read_entries_by_index(self, tmp_path):
        zip_path = tmp_path / "batch.zip"
        _make_zip(zip_path, {"a.txt": b"aaa", "b.txt": b"bbb", "c.txt": b"ccc"})

        with ZipHandler(zip_path) as handler:
            result = handler.read_entries([0, 2])

        assert result == {0: b"aaa", 2: b"ccc"}

    def test_read_entries_skips_directories(self, tmp_path):
        zip_path = tmp_path / "dirs.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.mkdir("subdir")
            zf.writestr("subdir/file.txt", b"content")

        with ZipHandler(zip_path) as handler:
            entries = handler.list_entries()
            result = handler.read_entries(e.index for e in entries)

        assert list(result.values()) == [b"content"]

    def test_extract_all_overwrites(self, tmp_path):
        zip_path = tmp_path / "mod.zip"
        _make_zip(zip_path, {"Mod/a.txt": b"new"})
        dest = tmp_path / "out"
        (dest / "Mod").mkdir(parents=True)
        (dest / "Mod" / "a.txt").write_bytes(b"old")

        with ZipHandler(zip_path) as handler:
            handler.extract_all(dest)

        assert (dest / "Mod" / "a.txt").read_bytes() == b"new"

    def test_extract_all_rejects_path_traversal(self, tmp_path):
        zip_path = tmp_path / "evil.zip"
        _make_zip(zip_path, {"../escaped.txt": b"gotcha"})

        with ZipHandler(zip_path) as handler, pytest.raises(ValidationError, match="escapes"):
            handler.extract_all(tmp_path / "out")

        assert not (tmp_path / "escaped.txt").exists()


class TestSevenZipHandler:
    def test_list_and_read(self, tmp_path):
        archive = tmp_path / "mod.7z"
        _make_7z(archive, tmp_path / "src", {"Mod/mod_info.json": b'{"id": "x"}', "Mod/readme.txt": b"hi"})

        with SevenZipHandler(archive) as handler:
            entries = {e.filename: e for e in handler.list_entries()}
            index = entries["Mod/mod_info.json"].index
            result = handler.read_entries([index])

        assert result == {index: b'{"id": "x"}'}

    def test_extract_all(self, tmp_path):
        archive = tmp_path / "mod.7z"
        _make_7z(archive, tmp_path / "src", {"Mod/readme.txt": b"hi"})

        with SevenZipHandler(archive) as handler:
            handler.extract_all(tmp_path / "out")

        assert (tmp_path / "out" / "Mod" / "readme.txt").read_bytes() == b"hi"


class TestOpenArchive:
    def test_selects_zip_handler_for_zip(self, tmp_path):
        zip_path = tmp_path / "mod.zip"
        _make_zip(zip_path, {"readme.txt": b"readme"})

        handler = open_archive(zip_path)
        try:
            assert isinstance(handler, ZipHandler)
        finally:
            handler.close()

    def test_open_archive_uppercase_extension(self, tmp_path):
        zip_path = tmp_path / "mod.ZIP"
        _make_zip(zip_path, {"readme.txt": b"readme"})

        with open_archive(zip_path) as handler:
            assert isinstance(handler, ZipHandler)

    def test_unsupported_extension_raises_validation_error(self, tmp_path):
        bad_path = tmp_path / "mod.exe"
        bad_path.write_bytes(b"not an archive")

        with pytest.raises(ValidationError, match="Unsupported archive format"):
            open_archive(bad_path)

    def test_corrupt_zip_raises(self, tmp_path):
        bad_zip = tmp_path / "corrupt.zip"
        bad_zip.write_bytes(b"this is not a zip file at all")

        with pytest.raises(zipfile.BadZipFile):
            open_archive(bad_zip)

    def test_is_archive(self, tmp_path):
        assert is_archive(tmp_path / "a.zip")
        assert is_archive(tmp_path / "a.7Z")
        assert is_archive(tmp_path / "a.rar")
        assert not is_archive(tmp_path / "a.tar.gz")


class TestModuleFunctions:
    def test_list_entries_is_restartable(self, tmp_path):
        zip_path = tmp_path / "mod.zip"
        _make_zip(zip_path, {"a.txt": b"a", "b.txt": b"b"})

        first = [e.filename for e in list_entries(zip_path)]
        second = [e.filename for e in list_entries(zip_path)]

        assert first == second == ["a.txt", "b.txt"]

    def test_list_entries_is_lazy(self, tmp_path):
        # Nothing is opened until iteration starts.
        entries = list_entries(tmp_path / "missing.zip")
        with pytest.raises(FileNotFoundError):
            next(entries)

    def test_extract_entries(self, tmp_path):
        zip_path = tmp_path / "mod.zip"
        _make_zip(zip_path, {"a.txt": b"a", "b.txt": b"b"})
        assert extract_entries(zip_path, [1]) == {1: b"b"}

    def test_extract_all_returns_destination(self, tmp_path):
        zip_path = tmp_path / "mod.zip"
        _make_zip(zip_path, {"dir/a.txt": b"a"})

        dest = extract_all(zip_path, tmp_path / "new" / "folder")

        assert dest == tmp_path / "new" / "folder"
        assert (dest / "dir" / "a.txt").read_bytes() == b"a"
