"""Check mods' remote version files for newer releases.

A mod opts in by shipping a ``.version`` file whose ``masterVersionFile``
points at the current online copy.  Lookups are rate limited by an
interval; results are cached per mod id and survive restarts.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

import httpx

from smol_manager.exceptions import ModInfoParseError, NetworkError
from smol_manager.models.mod import Mod, ModId, ModVariant, VersionCheckerInfo
from smol_manager.schemas.cache import CachedVersionInfo, VersionCheckerCacheDocument
from smol_manager.services.cache_store import JsonDocumentStore
from smol_manager.services.mod_info_loader import deserialize_version_checker_file
from smol_manager.utils.locks import IOLocks, io_locks

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 60 * 5
_MAX_CONCURRENT = 5


def _now_millis() -> int:
    return int(time.time() * 1000)


async def _fetch_version_file(client: httpx.AsyncClient, url: str) -> VersionCheckerInfo:
    """Download and parse one remote version file.

    Raises:
        NetworkError: If the URL is unusable or the request fails.
        ModInfoParseError: If the response is not a version file.
    """
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        # Error pages can be whole HTML documents.
        first_line = next(iter(str(exc).splitlines()), "")
        raise NetworkError(first_line, step="fetch-version-file") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise NetworkError(str(exc) or type(exc).__name__, step="fetch-version-file") from exc
    return deserialize_version_checker_file(resp.content)


class VersionChecker:
    def __init__(
        self,
        cache_path: Path,
        *,
        interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        max_concurrent: int = _MAX_CONCURRENT,
        timeout: float = 30.0,
        locks: IOLocks = io_locks,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self._store = JsonDocumentStore(cache_path, VersionCheckerCacheDocument, locks=locks)
        self._interval_ms = int(interval_seconds * 1000)
        self._max_concurrent = max(1, max_concurrent)
        self._timeout = timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._cache = self._store.load()

    @property
    def last_check_timestamp(self) -> int:
        with self._lock:
            return self._cache.last_check_timestamp

    def get_online_version(self, mod_id: ModId) -> VersionCheckerInfo | None:
        """Cached remote version info for *mod_id*; never fetches."""
        with self._lock:
            cached = self._cache.online_versions.get(mod_id)
        return cached.to_info() if cached is not None else None

    def has_update(self, variant: ModVariant) -> bool:
        """True when the cached online version is newer than *variant*'s own version file."""
        local = variant.version_checker_info
        if local is None or local.mod_version is None:
            return False
        online = self.get_online_version(variant.mod_id)
        if online is None or online.mod_version is None:
            return False
        return online.mod_version > local.mod_version

    async def look_up_versions(
        self, mods: Iterable[Mod], force_lookup: bool = False
    ) -> dict[ModId, VersionCheckerInfo]:
        """Fetch remote version files for every mod that declares one.

        Skipped (returning an empty dict) when the last check was less than
        the configured interval ago, unless *force_lookup*.  Mods whose fetch
        or parse fails are logged and left out; their previously cached
        value is kept.
        """
        started = self._clock()
        elapsed = started - self.last_check_timestamp
        if not force_lookup and elapsed < self._interval_ms:
            logger.info(
                "Skipping version check, it has only been %ds of %ds",
                elapsed // 1000,
                self._interval_ms // 1000,
            )
            return {}

        targets: dict[ModId, tuple[ModVariant, str]] = {}
        for mod in mods:
            variant = mod.find_highest_version
            if variant is None or mod.id in targets:
                continue
            info = variant.version_checker_info
            if info is None or not (info.master_version_file or "").strip():
                continue
            targets[mod.id] = (variant, info.master_version_file.strip())

        results: dict[ModId, VersionCheckerInfo] = {}
        sem = asyncio.Semaphore(self._max_concurrent)

        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:

            async def check_one(mod_id: ModId, variant: ModVariant, url: str) -> None:
                async with sem:
                    try:
                        online = await _fetch_version_file(client, url)
                    except (NetworkError, ModInfoParseError) as exc:
                        logger.warning(
                            "Version check failed for %s: %s (url: %s)",
                            variant.mod_info.name,
                            exc,
                            url,
                        )
                        return
                logger.debug(
                    "Version checked %s: existing %s, online %s",
                    variant.mod_info.name,
                    variant.version_checker_info.mod_version if variant.version_checker_info else None,
                    online.mod_version,
                )
                results[mod_id] = online

            await asyncio.gather(*(check_one(mid, v, url) for mid, (v, url) in targets.items()))

        with self._lock:
            online_versions = dict(self._cache.online_versions)
            online_versions.update(
                (mod_id, CachedVersionInfo.from_info(info)) for mod_id, info in results.items()
            )
            self._cache = VersionCheckerCacheDocument(
                last_check_timestamp=self._clock(),
                online_versions=online_versions,
            )
            document = self._cache
        await asyncio.to_thread(self._store.save, document)

        logger.info(
            "Version checked %d mods in %dms (%d succeeded)",
            len(targets),
            self._clock() - started,
            len(results),
        )
        return results
