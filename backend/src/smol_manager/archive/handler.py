"""Archive handlers for ZIP, 7z, and RAR with a shared interface.

Handlers list entries (with a stable index), read selected entries into
memory, and extract everything to a folder.  The module-level functions
open the archive per call, so each call sees the archive as it is on disk.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from smol_manager.constants import ARCHIVE_EXTENSIONS
from smol_manager.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    index: int
    filename: str
    is_dir: bool
    size: int = 0


def _safe_target(destination: Path, filename: str) -> Path | None:
    """Resolve *filename* under *destination*, or None if it would escape it."""
    target = (destination / filename.replace("\\", "/")).resolve()
    if not target.is_relative_to(destination.resolve()):
        return None
    return target


class ArchiveHandler(ABC):
    """Base class for archive format handlers."""

    @abstractmethod
    def list_entries(self) -> list[ArchiveEntry]:
        """Return all entries in the archive, in archive order."""

    @abstractmethod
    def read_entries(self, indices: Iterable[int]) -> dict[int, bytes]:
        """Read the given file entries into memory, keyed by entry index."""

    @abstractmethod
    def extract_all(self, destination: Path) -> None:
        """Extract every entry below *destination*, overwriting existing files."""

    @abstractmethod
    def close(self) -> None:
        """Release resources."""

    def __enter__(self) -> ArchiveHandler:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class ZipHandler(ArchiveHandler):
    """Handler for .zip archives using stdlib zipfile."""

    def __init__(self, path: str | Path) -> None:
        self._zf = zipfile.ZipFile(path, "r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(index=i, filename=info.filename, is_dir=info.is_dir(), size=info.file_size)
            for i, info in enumerate(self._zf.infolist())
        ]

    def read_entries(self, indices: Iterable[int]) -> dict[int, bytes]:
        infos = self._zf.infolist()
        return {i: self._zf.read(infos[i]) for i in indices if not infos[i].is_dir()}

    def extract_all(self, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        for info in self._zf.infolist():
            target = _safe_target(destination, info.filename)
            if target is None:
                raise ValidationError(
                    "Archive entry escapes the destination", step="extract", path=info.filename
                )
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with self._zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)

    def close(self) -> None:
        self._zf.close()


class SevenZipHandler(ArchiveHandler):
    """Handler for .7z archives using py7zr.

    py7zr >= 1.0 removed the ``read()`` method.  All extraction now goes
    through ``extract(path, targets)`` which writes to disk, so in-memory
    reads go through a temporary directory.
    """

    def __init__(self, path: str | Path) -> None:
        try:
            import py7zr
        except ImportError as exc:
            raise ImportError("py7zr is required for .7z support: pip install py7zr") from exc
        self._path = Path(path)
        self._archive = py7zr.SevenZipFile(self._path, mode="r")

    def list_entries(self) -> list[ArchiveEntry]:
        return [
            ArchiveEntry(
                index=i,
                filename=entry.filename,
                is_dir=entry.is_directory,
                size=getattr(entry, "uncompressed", 0) or 0,
            )
            for i, entry in enumerate(self._archive.list())
        ]

    def read_entries(self, indices: Iterable[int]) -> dict[int, bytes]:
        entries = self.list_entries()
        wanted = {entries[i].filename: i for i in indices if not entries[i].is_dir}
        if not wanted:
            return {}
        self._archive.reset()
        result: dict[int, bytes] = {}
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir_path = Path(tmpdir).resolve()
            self._archive.extract(path=tmpdir, targets=list(wanted))
            for name, index in wanted.items():
                extracted = (tmpdir_path / name).resolve()
                if extracted.is_file() and tmpdir_path in extracted.parents:
                    result[index] = extracted.read_bytes()
        return result

    def extract_all(self, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        for entry in self.list_entries():
            if _safe_target(destination, entry.filename) is None:
                raise ValidationError(
                    "Archive entry escapes the destination", step="extract", path=entry.filename
                )
        self._archive.reset()
        self._archive.extractall(path=destination)

    def close(self) -> None:
        self._archive.close()


def _find_7zip() -> str | None:
    """Locate the 7-Zip CLI executable."""
    common = [
        r"C:\Program Files\7-Zip\7z.exe",
        r"C:\Program Files (x86)\7-Zip\7z.exe",
    ]
    for p in common:
        if Path(p).exists():
            return p
    return shutil.which("7z")


class RarHandler(ArchiveHandler):
    """Handler for .rar archives using the 7-Zip CLI."""

    def __init__(self, path: str | Path) -> None:
        exe = _find_7zip()
        if not exe:
            raise FileNotFoundError("RAR extraction requires 7-Zip (7z) on the PATH")
        self._exe = exe
        self._path = str(path)

    def list_entries(self) -> list[ArchiveEntry]:
        result = subprocess.run(
            [self._exe, "l", "-slt", self._path],
            capture_output=True,
            text=True,
            timeout=60,
        )
        if result.returncode != 0:
            raise RuntimeError(f"7z list failed (exit {result.returncode}): {result.stderr}")

        entries: list[ArchiveEntry] = []
        current: dict[str, str] = {}
        # The listing header also has a "Path = <archive>" block, which ends before "----------".
        body = result.stdout.split("----------", 1)[-1]

        def flush() -> None:
            if current.get("Path"):
                entries.append(
                    ArchiveEntry(
                        index=len(entries),
                        filename=current["Path"],
                        is_dir=current.get("Folder") == "+",
                        size=int(current["Size"]) if current.get("Size", "").isdigit() else 0,
                    )
                )
            current.clear()

        for line in body.splitlines():
            line = line.strip()
            if not line:
                flush()
                continue
            key, sep, value = line.partition(" = ")
            if sep:
                current[key] = value
        flush()
        return entries

    def read_entries(self, indices: Iterable[int]) -> dict[int, bytes]:
        entries = self.list_entries()
        out: dict[int, bytes] = {}
        for i in indices:
            entry = entries[i]
            if entry.is_dir:
                continue
            result = subprocess.run(
                [self._exe, "e", "-so", self._path, entry.filename],
                capture_output=True,
                timeout=120,
            )
            if result.returncode != 0:
                stderr = result.stderr.decode(errors="replace")
                raise RuntimeError(f"7z extract failed (exit {result.returncode}): {stderr}")
            out[i] = result.stdout
        return out

    def extract_all(self, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        result = subprocess.run(
            [self._exe, "x", "-y", f"-o{destination}", self._path],
            capture_output=True,
            text=True,
            timeout=600,
        )
        if result.returncode != 0:
            raise RuntimeError(f"7z extract failed (exit {result.returncode}): {result.stderr}")

    def close(self) -> None:
        pass


def is_archive(path: Path) -> bool:
    return path.suffix.lower() in ARCHIVE_EXTENSIONS


def open_archive(path: str | Path) -> ArchiveHandler:
    """Open an archive file and return the appropriate handler.

    Raises:
        ValidationError: If the file extension is not supported.
        FileNotFoundError: For RAR files when 7-Zip is not installed.
        zipfile.BadZipFile: If a ZIP file is corrupt.
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext == ".zip":
        return ZipHandler(path)
    if ext == ".7z":
        return SevenZipHandler(path)
    if ext == ".rar":
        return RarHandler(path)

    raise ValidationError(f"Unsupported archive format: {ext}", step="open-archive", path=path)


def list_entries(archive_path: str | Path) -> Iterator[ArchiveEntry]:
    """Yield the entries of *archive_path* without extracting anything."""
    with open_archive(archive_path) as archive:
        yield from archive.list_entries()


def extract_entries(archive_path: str | Path, indices: Iterable[int]) -> dict[int, bytes]:
    """Read only the entries at *indices* into memory."""
    with open_archive(archive_path) as archive:
        return archive.read_entries(list(indices))


def extract_all(archive_path: str | Path, destination: str | Path) -> Path:
    """Extract the whole archive into *destination*, creating it if needed."""
    destination = Path(destination)
    with open_archive(archive_path) as archive:
        archive.extract_all(destination)
    return destination
