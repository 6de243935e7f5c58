"""Endpoints for the mod list and variant state transitions."""

import logging

from fastapi import APIRouter, Depends, Query

from smol_manager.routers.deps import get_manager, http_errors
from smol_manager.schemas.mod import ActiveVariantRequest, ModListOut, ModOut, TransitionResult
from smol_manager.services.mod_manager import ModManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mods", tags=["mods"])


@router.get("/", response_model=ModListOut)
def list_mods(manager: ModManager = Depends(get_manager)) -> ModListOut:
    """Current published mod list (empty until the first load finishes)."""
    return ModListOut.from_update(manager.mods.value)


@router.post("/reload", response_model=ModListOut)
def reload_mods(
    mod_id: list[str] | None = Query(None),
    manager: ModManager = Depends(get_manager),
) -> ModListOut:
    """Re-read mods from disk, optionally only the given mod ids."""
    update = manager.reload(mod_id)
    return ModListOut.from_update(update if update is not None else manager.mods.value)


@router.get("/{mod_id}", response_model=ModOut)
def get_mod(mod_id: str, manager: ModManager = Depends(get_manager)) -> ModOut:
    with http_errors():
        return ModOut.from_mod(manager.find_mod(mod_id))


@router.post("/variants/{smol_id}/stage", response_model=TransitionResult)
def stage_variant(smol_id: str, manager: ModManager = Depends(get_manager)) -> TransitionResult:
    with http_errors():
        _mod, variant = manager.find_variant(smol_id)
        folder = manager.stage(variant)
    return TransitionResult(mod_id=variant.mod_id, smol_id=smol_id, folder=str(folder))


@router.post("/variants/{smol_id}/enable", response_model=TransitionResult)
def enable_variant(smol_id: str, manager: ModManager = Depends(get_manager)) -> TransitionResult:
    with http_errors():
        _mod, variant = manager.find_variant(smol_id)
        folder = manager.enable(variant)
    return TransitionResult(mod_id=variant.mod_id, smol_id=smol_id, folder=str(folder))


@router.post("/variants/{smol_id}/disable", response_model=TransitionResult)
def disable_variant(smol_id: str, manager: ModManager = Depends(get_manager)) -> TransitionResult:
    with http_errors():
        _mod, variant = manager.find_variant(smol_id)
        manager.disable(variant)
    return TransitionResult(mod_id=variant.mod_id, smol_id=smol_id)


@router.post("/{mod_id}/unstage", response_model=TransitionResult)
def unstage_mod(mod_id: str, manager: ModManager = Depends(get_manager)) -> TransitionResult:
    with http_errors():
        manager.unstage(manager.find_mod(mod_id))
    return TransitionResult(mod_id=mod_id)


@router.put("/{mod_id}/active-variant", response_model=TransitionResult)
def change_active_variant(
    mod_id: str,
    data: ActiveVariantRequest,
    manager: ModManager = Depends(get_manager),
) -> TransitionResult:
    """Make one variant the only one in the mods folder, or disable the mod with ``smol_id: null``."""
    with http_errors():
        mod = manager.find_mod(mod_id)
        variant = None
        if data.smol_id is not None:
            _owner, variant = manager.find_variant(data.smol_id)
        changed = manager.change_active_variant(mod, variant)
    logger.info("Active variant of %s set to %s (changed=%s)", mod_id, data.smol_id, changed)
    return TransitionResult(mod_id=mod_id, smol_id=data.smol_id, changed=changed)
