from pydantic import BaseModel

from smol_manager.schemas.mod import VersionCheckerInfoOut


class VersionCheckRequest(BaseModel):
    force: bool = False


class VersionCheckResult(BaseModel):
    checked: int
    last_check_timestamp: int
    online_versions: dict[str, VersionCheckerInfoOut] = {}


class OnlineVersionOut(BaseModel):
    mod_id: str
    online: VersionCheckerInfoOut | None = None
    has_update: bool = False
