import os
import sys
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    if env := os.environ.get("SMOL_DATA_DIR"):
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "smol"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SMOL_",
        extra="ignore",
    )

    data_dir: Path = Path("")
    game_path: Path = Path("")
    mods_path: Path = Path("")
    staging_path: Path = Path("")
    archives_path: Path = Path("")
    version_checker_cache_path: Path = Path("")
    vram_checker_cache_path: Path = Path("")

    version_check_interval_seconds: float = 300.0
    version_check_concurrency: int = 5
    version_check_timeout: float = 30.0
    mod_info_search_depth: int = 6
    parse_workers: int = 8
    write_enabled_mods_list: bool = False

    host: str = "127.0.0.1"
    port: int = 8426

    @model_validator(mode="after")
    def _resolve_data_paths(self) -> "Settings":
        if self.data_dir == Path(""):
            self.data_dir = _default_data_dir()
        if self.mods_path == Path("") and self.game_path != Path(""):
            self.mods_path = self.game_path / "mods"
        if self.staging_path == Path(""):
            self.staging_path = self.data_dir / "staging"
        if self.archives_path == Path(""):
            self.archives_path = self.data_dir / "archives"
        if self.version_checker_cache_path == Path(""):
            self.version_checker_cache_path = self.data_dir / "version_checker_cache.json"
        if self.vram_checker_cache_path == Path(""):
            self.vram_checker_cache_path = self.data_dir / "vram_checker_cache.json"
        return self

    @property
    def enabled_mods_path(self) -> Path:
        return self.mods_path / "enabled_mods.json"


settings = Settings()
