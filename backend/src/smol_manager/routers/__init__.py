from fastapi import APIRouter

from smol_manager.routers.events import router as events_router
from smol_manager.routers.install import router as install_router
from smol_manager.routers.mods import router as mods_router
from smol_manager.routers.versions import router as versions_router
from smol_manager.routers.vram import router as vram_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(mods_router)
api_router.include_router(install_router)
api_router.include_router(versions_router)
api_router.include_router(vram_router)
api_router.include_router(events_router)
