from pydantic import BaseModel


class InstallRequest(BaseModel):
    input_path: str
    destination_folder: str | None = None


class InstallResult(BaseModel):
    installed_folder: str
    mod_id: str | None = None
    smol_id: str | None = None
