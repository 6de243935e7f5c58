"""JSON document caches kept under the data dir."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from smol_manager.exceptions import FileOperationError
from smol_manager.schemas.cache import VramCheckerCacheDocument, VramUsage
from smol_manager.utils.locks import IOLocks, LockRegion, io_locks

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=BaseModel)


class JsonDocumentStore(Generic[DocT]):
    """Load a pydantic document from *path* and write it back wholesale.

    A missing or unreadable file loads as an empty document; the next save
    replaces it.
    """

    def __init__(self, path: Path, model: type[DocT], *, locks: IOLocks = io_locks) -> None:
        self.path = path
        self._model = model
        self._locks = locks

    def load(self) -> DocT:
        with self._locks.read(LockRegion.CONFIG):
            if not self.path.is_file():
                return self._model()
            try:
                return self._model.model_validate_json(self.path.read_bytes())
            except (OSError, PydanticValidationError) as exc:
                logger.warning("Ignoring unreadable cache %s: %s", self.path, exc)
                return self._model()

    def save(self, document: DocT) -> None:
        with self._locks.write(LockRegion.CONFIG):
            tmp = self.path.with_name(f"{self.path.name}.tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(document.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError as exc:
                logger.error("Failed to write cache %s: %s", self.path, exc)
                raise FileOperationError(str(exc), step="write-cache", path=self.path) from exc


class VramCheckerCache:
    """Estimated VRAM use per variant, keyed by smol id.

    The estimates themselves are computed elsewhere; this only keeps them.
    """

    def __init__(self, path: Path, *, locks: IOLocks = io_locks) -> None:
        self._store = JsonDocumentStore(path, VramCheckerCacheDocument, locks=locks)
        self._lock = threading.Lock()
        self._document = self._store.load()

    def get(self, smol_id: str) -> VramUsage | None:
        with self._lock:
            return self._document.bytes_per_variant.get(smol_id)

    def all(self) -> dict[str, VramUsage]:
        with self._lock:
            return dict(self._document.bytes_per_variant)

    def put(self, smol_id: str, usage: VramUsage) -> None:
        with self._lock:
            variants = {**self._document.bytes_per_variant, smol_id: usage}
            self._document = VramCheckerCacheDocument(bytes_per_variant=variants)
            document = self._document
        self._store.save(document)
