from smol_manager.archive.handler import (
    ArchiveEntry,
    ArchiveHandler,
    RarHandler,
    SevenZipHandler,
    ZipHandler,
    extract_all,
    extract_entries,
    is_archive,
    list_entries,
    open_archive,
)

__all__ = [
    "ArchiveEntry",
    "ArchiveHandler",
    "RarHandler",
    "SevenZipHandler",
    "ZipHandler",
    "extract_all",
    "extract_entries",
    "is_archive",
    "list_entries",
    "open_archive",
]
