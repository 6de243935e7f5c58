"""Endpoint for installing a mod from a file, folder, or archive."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends

from smol_manager.exceptions import ModInfoParseError
from smol_manager.models.mod import create_smol_id
from smol_manager.routers.deps import get_manager, http_errors
from smol_manager.schemas.install import InstallRequest, InstallResult
from smol_manager.services.mod_info_loader import read_mod_data_files
from smol_manager.services.mod_manager import ModManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/install", tags=["install"])


@router.post("/", response_model=InstallResult, status_code=201)
def install(data: InstallRequest, manager: ModManager = Depends(get_manager)) -> InstallResult:
    """Install from a mod_info.json, a mod folder, or an archive (into the mods folder by default)."""
    destination = Path(data.destination_folder) if data.destination_folder else None
    with http_errors():
        folder = manager.install_from_unknown_source(Path(data.input_path), destination)

    try:
        mod_info = read_mod_data_files(folder).mod_info
    except ModInfoParseError as exc:
        logger.warning("Installed %s but could not read it back: %s", folder, exc)
        return InstallResult(installed_folder=str(folder))
    return InstallResult(
        installed_folder=str(folder),
        mod_id=mod_info.id,
        smol_id=create_smol_id(mod_info.id, mod_info.version),
    )
