"""Install mods from a mod_info.json, a folder, or an archive.

``install_from_unknown_source`` is the single ingestion entry point.  Every
install ends as ``<destination>/<variant folder name>/mod_info.json``:

* a mod_info.json file installs (copies) its parent folder;
* a folder is searched for mod_info.json and that mod folder is copied;
* an archive is probed for mod_info.json (and a ``.version`` file) without
  extracting it, then extracted and flattened if the mod sits deeper than
  expected.

An existing destination folder is replaced rather than merged into, so
installing the same source twice gives the same result as installing it
once, and a half-finished earlier extraction is simply overwritten.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path, PurePosixPath

from smol_manager.archive.handler import ArchiveEntry, extract_all, extract_entries, is_archive
from smol_manager.archive.handler import list_entries as list_archive_entries
from smol_manager.constants import DEFAULT_MOD_INFO_SEARCH_DEPTH, MOD_INFO_FILE
from smol_manager.exceptions import (
    FileOperationError,
    ModInfoParseError,
    NotFoundError,
    SmolError,
    ValidationError,
)
from smol_manager.models.mod import generate_variant_folder_name
from smol_manager.services.mod_info_loader import (
    DataFiles,
    deserialize_mod_info_file,
    deserialize_version_checker_file,
    find_mod_info_file_in_folder,
    is_version_checker_file,
)
from smol_manager.utils.fs import delete_tree, is_same_path, move_tree, replace_tree
from smol_manager.utils.locks import MOD_FILES, IOLocks, io_locks

logger = logging.getLogger(__name__)


def _entry_depth(entry: ArchiveEntry) -> int:
    return len(PurePosixPath(entry.filename.replace("\\", "/")).parts)


def _shallowest(entries: list[ArchiveEntry]) -> ArchiveEntry | None:
    return min(entries, key=_entry_depth) if entries else None


def _is_mod_info_entry(entry: ArchiveEntry) -> bool:
    return PurePosixPath(entry.filename.replace("\\", "/")).name.lower() == MOD_INFO_FILE


def read_data_files_in_archive(archive_path: Path) -> DataFiles | None:
    """Read mod_info.json and the version checker file from an archive without extracting it.

    Takes no lock; the caller holds at least a read lock on the archive's
    region.  Returns None when the archive has no parseable mod_info.json.

    Raises:
        FileOperationError: If the archive cannot be opened or read.
    """
    started = time.perf_counter()
    try:
        files = [e for e in list_archive_entries(archive_path) if not e.is_dir]
        mod_info_entry = _shallowest([e for e in files if _is_mod_info_entry(e)])
        if mod_info_entry is None:
            return None
        version_entry = _shallowest([e for e in files if is_version_checker_file(e.filename)])
        indices = [mod_info_entry.index]
        if version_entry is not None:
            indices.append(version_entry.index)
        contents = extract_entries(archive_path, indices)
    except SmolError:
        raise
    except Exception as exc:
        logger.warning("Unable to read archive %s: %s", archive_path, exc)
        raise FileOperationError(str(exc), step="probe-archive", path=archive_path) from exc

    raw_mod_info = contents.get(mod_info_entry.index)
    if raw_mod_info is None:
        return None
    try:
        mod_info = deserialize_mod_info_file(raw_mod_info)
    except ModInfoParseError as exc:
        logger.warning("Unreadable %s in %s: %s", MOD_INFO_FILE, archive_path, exc)
        return None

    version_checker_info = None
    if version_entry is not None and version_entry.index in contents:
        try:
            version_checker_info = deserialize_version_checker_file(contents[version_entry.index])
        except ModInfoParseError:
            logger.warning("Ignoring unreadable version file in %s", archive_path)

    logger.debug(
        "Read data files from %s in %.0fms", archive_path.name, (time.perf_counter() - started) * 1000
    )
    return DataFiles(mod_info=mod_info, version_checker_info=version_checker_info)


def find_data_files_in_archive(
    archive_path: Path,
    *,
    locks: IOLocks = io_locks,
) -> DataFiles | None:
    """Probe an archive for its mod's data files under the mod-files read lock."""
    with locks.read(*MOD_FILES):
        return read_data_files_in_archive(archive_path)


def extract_archive(
    archive_path: Path,
    destination: Path,
    *,
    locks: IOLocks = io_locks,
) -> Path:
    """Extract the whole archive into *destination* under the mod-files write lock."""
    with locks.write(*MOD_FILES):
        try:
            return extract_all(archive_path, destination)
        except SmolError:
            raise
        except Exception as exc:
            logger.error("Failed to extract %s to %s: %s", archive_path, destination, exc)
            raise FileOperationError(str(exc), step="extract", path=archive_path) from exc


def remove_nested_folders(
    folder_containing_single_mod: Path,
    *,
    search_depth: int = DEFAULT_MOD_INFO_SEARCH_DEPTH,
    locks: IOLocks = io_locks,
) -> None:
    """Rearrange *folder_containing_single_mod* so mod_info.json sits directly inside it.

    ``Mod/Inner/Mod/mod_info.json`` becomes ``Mod/mod_info.json``.  The inner
    folder is moved to a temporary sibling, the outer folder is deleted, then
    the sibling is renamed into place; moving the inner folder straight onto
    the outer one would be moving a folder into itself.
    """
    if not folder_containing_single_mod.is_dir():
        raise ValidationError(
            "Expected a folder", step="flatten", path=folder_containing_single_mod
        )
    with locks.write(*MOD_FILES):
        mod_info_file = find_mod_info_file_in_folder(folder_containing_single_mod, search_depth)
        if mod_info_file is None:
            raise NotFoundError(
                f"Expected a {MOD_INFO_FILE}", step="flatten", path=folder_containing_single_mod
            )
        mod_folder = mod_info_file.parent
        if is_same_path(mod_folder, folder_containing_single_mod):
            return

        temp = folder_containing_single_mod.with_name(
            f".{folder_containing_single_mod.name}-{uuid.uuid4().hex}"
        )
        logger.info("Flattening nested mod folder %s", mod_folder)
        move_tree(mod_folder, temp)
        delete_tree(folder_containing_single_mod)
        move_tree(temp, folder_containing_single_mod)


def _copy_mod_folder(
    source_folder: Path,
    destination_folder: Path,
    *,
    search_depth: int,
    locks: IOLocks,
) -> Path:
    with locks.read(*MOD_FILES):
        mod_info_file = find_mod_info_file_in_folder(source_folder, search_depth)
        if mod_info_file is None:
            raise NotFoundError(
                f"No valid {MOD_INFO_FILE} found in folder", step="find-mod-info", path=source_folder
            )
        try:
            mod_info = deserialize_mod_info_file(mod_info_file.read_bytes())
            folder_name = generate_variant_folder_name(mod_info)
        except (OSError, ModInfoParseError) as exc:
            logger.warning("Could not read %s, keeping folder name: %s", mod_info_file, exc)
            folder_name = mod_info_file.parent.name

    mod_folder = mod_info_file.parent
    destination_mod_folder = destination_folder / folder_name

    if is_same_path(mod_folder, destination_mod_folder):
        logger.info("Not copying %s onto itself", mod_folder)
        return destination_mod_folder

    with locks.write(*MOD_FILES):
        if not mod_info_file.is_file():
            raise NotFoundError(
                f"{MOD_INFO_FILE} disappeared before copying", step="copy", path=mod_info_file
            )
        replace_tree(mod_folder, destination_mod_folder)
    return destination_mod_folder


def install_from_unknown_source(
    input_path: Path,
    destination_folder: Path,
    *,
    search_depth: int = DEFAULT_MOD_INFO_SEARCH_DEPTH,
    locks: IOLocks = io_locks,
) -> Path:
    """Find the mod in *input_path* and install it into *destination_folder*.

    *destination_folder* is the parent of the mod folder (e.g. ``mods/``).
    Returns the installed mod folder.

    Raises:
        ValidationError: Missing input or destination, or an unsupported input.
        NotFoundError: No mod_info.json in the folder or archive.
        FileOperationError: Copying or extraction failed.
    """
    input_path = Path(input_path)
    destination_folder = Path(destination_folder)
    logger.info("Installing %s to %s", input_path, destination_folder)
    started = time.perf_counter()

    if not input_path.exists():
        raise ValidationError("Input does not exist", step="validate-input", path=input_path)
    if not destination_folder.is_dir():
        raise ValidationError(
            "Destination does not exist", step="validate-destination", path=destination_folder
        )

    if input_path.is_file():
        if input_path.name.lower() == MOD_INFO_FILE:
            result = _copy_mod_folder(
                input_path.parent, destination_folder, search_depth=1, locks=locks
            )
        elif is_archive(input_path):
            result = _install_archive(
                input_path, destination_folder, search_depth=search_depth, locks=locks
            )
        else:
            raise ValidationError(
                f"Not a {MOD_INFO_FILE} or a supported archive", step="validate-input", path=input_path
            )
    elif input_path.is_dir():
        result = _copy_mod_folder(
            input_path, destination_folder, search_depth=search_depth, locks=locks
        )
    else:
        raise ValidationError(
            "Input is neither a file nor a folder", step="validate-input", path=input_path
        )

    logger.debug("Installed %s in %.0fms", input_path.name, (time.perf_counter() - started) * 1000)
    return result


def _install_archive(
    archive_path: Path,
    destination_folder: Path,
    *,
    search_depth: int,
    locks: IOLocks,
) -> Path:
    data_files = find_data_files_in_archive(archive_path, locks=locks)
    if data_files is None:
        raise NotFoundError(
            f"No valid {MOD_INFO_FILE} found in archive", step="probe-archive", path=archive_path
        )

    destination_mod_folder = destination_folder / generate_variant_folder_name(data_files.mod_info)
    with locks.write(*MOD_FILES):
        delete_tree(destination_mod_folder)
        extract_archive(archive_path, destination_mod_folder, locks=locks)
        remove_nested_folders(destination_mod_folder, search_depth=search_depth, locks=locks)
    return destination_mod_folder
