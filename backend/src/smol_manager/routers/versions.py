"""Endpoints for online version checks."""

from fastapi import APIRouter, Depends

from smol_manager.routers.deps import get_manager
from smol_manager.schemas.mod import VersionCheckerInfoOut
from smol_manager.schemas.version import OnlineVersionOut, VersionCheckRequest, VersionCheckResult
from smol_manager.services.mod_manager import ModManager

router = APIRouter(prefix="/versions", tags=["versions"])


@router.post("/check", response_model=VersionCheckResult)
async def check_versions(
    data: VersionCheckRequest | None = None,
    manager: ModManager = Depends(get_manager),
) -> VersionCheckResult:
    """Fetch remote version files, unless the last check was too recent and ``force`` is off."""
    force = data.force if data else False
    results = await manager.look_up_versions(force_lookup=force)
    return VersionCheckResult(
        checked=len(results),
        last_check_timestamp=manager.version_checker.last_check_timestamp,
        online_versions={k: VersionCheckerInfoOut.from_info(v) for k, v in results.items()},
    )


@router.get("/{mod_id}", response_model=OnlineVersionOut)
def get_online_version(mod_id: str, manager: ModManager = Depends(get_manager)) -> OnlineVersionOut:
    """Cached online version of a mod; never fetches."""
    online = manager.get_online_version(mod_id)
    mod = manager.current_mods().get(mod_id)
    variant = mod.find_highest_version if mod else None
    return OnlineVersionOut(
        mod_id=mod_id,
        online=VersionCheckerInfoOut.from_info(online) if online else None,
        has_update=manager.version_checker.has_update(variant) if variant else False,
    )
