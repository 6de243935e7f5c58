"""Parse mod_info.json and version checker files into model objects.

Mod authors hand-write these files, so parsing is lenient: ``#``, ``//``
and ``/* */`` comments, trailing commas and unquoted keys are accepted.
``#`` comments are stripped first, the rest is handled by ``json5``.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import json5
from pydantic import ValidationError as PydanticValidationError

from smol_manager.constants import (
    MOD_INFO_FILE,
    VERSION_CHECKER_CSV_PATH,
    VERSION_CHECKER_FILE_ENDING,
)
from smol_manager.exceptions import ModInfoParseError
from smol_manager.models.mod import Dependency, ModInfo, VersionCheckerInfo
from smol_manager.models.version import Version
from smol_manager.schemas.mod_info import (
    LegacyModInfoFile,
    ModInfoFile,
    VersionCheckerFile,
    VersionObject,
)

logger = logging.getLogger(__name__)

_VERSION_FILE_SEARCH_DEPTH = 4


@dataclass(frozen=True, slots=True)
class DataFiles:
    mod_info: ModInfo
    version_checker_info: VersionCheckerInfo | None = None


def strip_hash_comments(text: str) -> str:
    """Remove ``#`` line comments that are not inside a string or another comment."""
    out: list[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            # Copy the string literal verbatim, honouring escapes.
            j = i + 1
            while j < n and text[j] != ch and text[j] != "\n":
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            i = j + 1
        elif text.startswith("//", i):
            j = text.find("\n", i)
            j = n if j == -1 else j
            out.append(text[i:j])
            i = j
        elif text.startswith("/*", i):
            j = text.find("*/", i + 2)
            j = n if j == -1 else j + 2
            out.append(text[i:j])
            i = j
        elif ch == "#":
            j = text.find("\n", i)
            i = n if j == -1 else j
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def load_relaxed_json(raw: str | bytes) -> Any:
    text = raw.decode("utf-8-sig", errors="replace") if isinstance(raw, bytes) else raw
    return json5.loads(strip_hash_comments(text.lstrip("\ufeff")))


def _version_from(value: str | VersionObject | None) -> Version | None:
    if value is None:
        return None
    if isinstance(value, VersionObject):
        return Version.from_components(value.major, value.minor, value.patch)
    return Version.parse(value)


def deserialize_mod_info_file(raw: str | bytes) -> ModInfo:
    """Parse mod_info.json content, accepting both manifest layouts.

    Raises:
        ModInfoParseError: If the content is not relaxed JSON or lacks required fields.
    """
    try:
        data = load_relaxed_json(raw)
    except ValueError as exc:
        raise ModInfoParseError(f"Invalid {MOD_INFO_FILE}: {exc}", step="parse-mod-info") from exc
    if not isinstance(data, dict):
        raise ModInfoParseError(f"{MOD_INFO_FILE} is not an object", step="parse-mod-info")

    try:
        if isinstance(data.get("version"), dict):
            parsed: ModInfoFile | LegacyModInfoFile = ModInfoFile.model_validate(data)
        else:
            parsed = LegacyModInfoFile.model_validate(data)
    except PydanticValidationError as exc:
        raise ModInfoParseError(
            f"Invalid {MOD_INFO_FILE}: {exc.error_count()} validation error(s)",
            step="parse-mod-info",
        ) from exc

    version = _version_from(parsed.version) or Version.parse("")
    return ModInfo(
        id=parsed.id,
        name=parsed.name or parsed.id,
        version=version,
        author=parsed.author,
        game_version=parsed.game_version,
        description=parsed.description,
        dependencies=tuple(
            Dependency(
                id=dep.id,
                name=dep.name,
                version=str(_version_from(dep.version)) if dep.version is not None else None,
            )
            for dep in parsed.dependencies
        ),
        jars=tuple(parsed.jars),
        mod_plugin=parsed.mod_plugin,
        utility=parsed.utility,
        total_conversion=parsed.total_conversion,
    )


def deserialize_version_checker_file(raw: str | bytes) -> VersionCheckerInfo:
    """Parse a ``.version`` file (local or fetched from ``masterVersionFile``)."""
    try:
        data = load_relaxed_json(raw)
        parsed = VersionCheckerFile.model_validate(data)
    except (ValueError, PydanticValidationError) as exc:
        raise ModInfoParseError(
            f"Invalid version checker file: {exc}", step="parse-version-checker"
        ) from exc
    return VersionCheckerInfo(
        mod_version=_version_from(parsed.mod_version),
        master_version_file=parsed.master_version_file,
        mod_thread_id=parsed.mod_thread_id,
        mod_name=parsed.mod_name,
        mod_nexus_id=parsed.mod_nexus_id,
    )


def is_mod_info_file(path: Path) -> bool:
    return path.is_file() and path.name.lower() == MOD_INFO_FILE


def is_version_checker_file(name: str) -> bool:
    return name.lower().endswith(VERSION_CHECKER_FILE_ENDING)


def walk(folder: Path, max_depth: int) -> Iterable[Path]:
    """Breadth-first walk of *folder*, up to *max_depth* levels below it."""
    level = [folder]
    for _ in range(max_depth):
        next_level: list[Path] = []
        for current in level:
            try:
                children = sorted(current.iterdir())
            except OSError:
                continue
            for child in children:
                yield child
                if child.is_dir():
                    next_level.append(child)
        if not next_level:
            return
        level = next_level


def find_mod_info_file_in_folder(folder: Path, max_depth: int) -> Path | None:
    return next((p for p in walk(folder, max_depth) if is_mod_info_file(p)), None)


def find_version_checker_file(mod_folder: Path) -> Path | None:
    """Locate the mod's ``.version`` file.

    The version checker convention lists it in ``version_files.csv``; fall
    back to the first ``*.version`` file near the top of the mod.
    """
    csv_path = mod_folder / VERSION_CHECKER_CSV_PATH
    if csv_path.is_file():
        try:
            rows = list(csv.reader(io.StringIO(csv_path.read_text(encoding="utf-8-sig"))))
        except (OSError, csv.Error):
            logger.warning("Could not read %s", csv_path)
            rows = []
        for row in rows[1:]:
            if row and row[0].strip():
                candidate = mod_folder / row[0].strip()
                if candidate.is_file():
                    return candidate
    return next(
        (
            p
            for p in walk(mod_folder, _VERSION_FILE_SEARCH_DEPTH)
            if p.is_file() and is_version_checker_file(p.name)
        ),
        None,
    )


def read_mod_data_files(mod_folder: Path) -> DataFiles:
    """Read mod_info.json and, when present, the version checker file of one mod folder.

    A broken version checker file is logged and ignored; a broken or missing
    mod_info.json raises.
    """
    mod_info_path = mod_folder / MOD_INFO_FILE
    if not mod_info_path.is_file():
        raise ModInfoParseError(f"No {MOD_INFO_FILE}", step="read-mod-info", path=mod_folder)
    try:
        raw = mod_info_path.read_bytes()
    except OSError as exc:
        raise ModInfoParseError(str(exc), step="read-mod-info", path=mod_info_path) from exc
    try:
        mod_info = deserialize_mod_info_file(raw)
    except ModInfoParseError as exc:
        raise ModInfoParseError(str(exc), step="read-mod-info", path=mod_info_path) from exc

    version_checker_info: VersionCheckerInfo | None = None
    vc_path = find_version_checker_file(mod_folder)
    if vc_path is not None:
        try:
            version_checker_info = deserialize_version_checker_file(vc_path.read_bytes())
        except (OSError, ModInfoParseError):
            logger.warning("Ignoring unreadable version checker file %s", vc_path)

    return DataFiles(mod_info=mod_info, version_checker_info=version_checker_info)


def read_mod_data_files_from_folder_of_mods(
    folder: Path,
    *,
    max_workers: int = 8,
) -> list[tuple[Path, DataFiles]]:
    """Parse every mod folder directly inside *folder*, in parallel.

    Folders without a readable mod_info.json are logged and skipped. Hidden
    folders (including leftover temp folders from an interrupted install) are
    ignored.
    """
    if not folder.is_dir():
        return []
    mod_folders = sorted(p for p in folder.iterdir() if p.is_dir() and not p.name.startswith("."))
    if not mod_folders:
        return []

    def _read(mod_folder: Path) -> tuple[Path, DataFiles] | None:
        if not (mod_folder / MOD_INFO_FILE).is_file():
            logger.debug("No %s in %s, skipping", MOD_INFO_FILE, mod_folder)
            return None
        try:
            return mod_folder, read_mod_data_files(mod_folder)
        except ModInfoParseError as exc:
            logger.warning("Skipping mod folder: %s", exc)
            return None

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        results = list(pool.map(_read, mod_folders))
    return [r for r in results if r is not None]
