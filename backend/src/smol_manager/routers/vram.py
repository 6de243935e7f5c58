"""Endpoints for the per-variant VRAM estimate cache."""

from fastapi import APIRouter, Depends, HTTPException

from smol_manager.routers.deps import get_manager, http_errors
from smol_manager.schemas.cache import VramUsage
from smol_manager.services.mod_manager import ModManager

router = APIRouter(prefix="/vram", tags=["vram"])


@router.get("/", response_model=dict[str, VramUsage], response_model_by_alias=False)
def list_vram(manager: ModManager = Depends(get_manager)) -> dict[str, VramUsage]:
    return manager.vram_cache.all()


@router.get("/{smol_id}", response_model=VramUsage, response_model_by_alias=False)
def get_vram(smol_id: str, manager: ModManager = Depends(get_manager)) -> VramUsage:
    usage = manager.vram_cache.get(smol_id)
    if usage is None:
        raise HTTPException(404, f"No VRAM estimate for '{smol_id}'")
    return usage


@router.put("/{smol_id}", response_model=VramUsage, response_model_by_alias=False)
def put_vram(smol_id: str, data: VramUsage, manager: ModManager = Depends(get_manager)) -> VramUsage:
    with http_errors():
        manager.vram_cache.put(smol_id, data)
    return data
