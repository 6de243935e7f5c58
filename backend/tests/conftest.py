import json
import zipfile
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from smol_manager.config import Settings, settings
from smol_manager.main import app
from smol_manager.services.mod_manager import ModManager
from smol_manager.utils.locks import IOLocks


def _make_zip(path: Path, files: dict[str, bytes | str]) -> Path:
    """Create a zip archive at *path* containing the given files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def _mod_info_json(
    mod_id: str,
    version: str | dict = "1.0.0",
    name: str | None = None,
    **extra: object,
) -> str:
    return json.dumps({"id": mod_id, "name": name or mod_id.title(), "version": version, **extra})


def _version_file_json(version: str | dict, url: str | None = None) -> str:
    data: dict[str, object] = {"modVersion": version, "modName": "x"}
    if url:
        data["masterVersionFile"] = url
    return json.dumps(data)


def _write_mod(
    parent: Path,
    folder_name: str,
    mod_id: str,
    version: str | dict = "1.0.0",
    *,
    version_file: str | None = None,
    **extra: object,
) -> Path:
    """Create ``parent/folder_name`` holding a mod_info.json (and optionally a .version file)."""
    folder = parent / folder_name
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "mod_info.json").write_text(_mod_info_json(mod_id, version, **extra), encoding="utf-8")
    (folder / "data.txt").write_text(f"{mod_id} {version}", encoding="utf-8")
    if version_file is not None:
        (folder / f"{mod_id}.version").write_text(version_file, encoding="utf-8")
    return folder


@dataclass
class GameDirs:
    root: Path
    mods: Path
    staging: Path
    archives: Path
    data: Path

    @property
    def enabled_mods(self) -> Path:
        return self.mods / "enabled_mods.json"

    def set_enabled(self, *mod_ids: str) -> None:
        self.enabled_mods.write_text(json.dumps({"enabledMods": list(mod_ids)}), encoding="utf-8")


@pytest.fixture
def game_dirs(tmp_path) -> GameDirs:
    dirs = GameDirs(
        root=tmp_path,
        mods=tmp_path / "game" / "mods",
        staging=tmp_path / "data" / "staging",
        archives=tmp_path / "data" / "archives",
        data=tmp_path / "data",
    )
    for folder in (dirs.mods, dirs.staging, dirs.archives):
        folder.mkdir(parents=True)
    dirs.set_enabled()
    return dirs


@pytest.fixture
def locks() -> IOLocks:
    return IOLocks()


@pytest.fixture
def smol_settings(game_dirs) -> Settings:
    return Settings(
        data_dir=game_dirs.data,
        game_path=game_dirs.root / "game",
        staging_path=game_dirs.staging,
        archives_path=game_dirs.archives,
        parse_workers=2,
    )


@pytest.fixture
def manager(smol_settings, locks) -> ModManager:
    return ModManager.from_settings(smol_settings, locks=locks)


@pytest.fixture
def client(game_dirs, smol_settings, monkeypatch):
    for field in (
        "data_dir",
        "game_path",
        "mods_path",
        "staging_path",
        "archives_path",
        "version_checker_cache_path",
        "vram_checker_cache_path",
    ):
        monkeypatch.setattr(settings, field, getattr(smol_settings, field))
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture
def make_mod():
    return _write_mod


@pytest.fixture
def make_zip():
    return _make_zip


@pytest.fixture
def mod_info_json():
    return _mod_info_json


@pytest.fixture
def version_file_json():
    return _version_file_json
