"""Persisted cache documents.

Both caches are small JSON documents under the data dir, read once at
startup and rewritten wholesale whenever they change.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from smol_manager.models.mod import VersionCheckerInfo
from smol_manager.models.version import Version


class CachedVersionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mod_version: str | None = Field(None, alias="modVersion")
    master_version_file: str | None = Field(None, alias="masterVersionFile")
    mod_thread_id: str | None = Field(None, alias="modThreadId")
    mod_name: str | None = Field(None, alias="modName")
    mod_nexus_id: str | None = Field(None, alias="modNexusId")

    @classmethod
    def from_info(cls, info: VersionCheckerInfo) -> CachedVersionInfo:
        return cls(
            mod_version=str(info.mod_version) if info.mod_version is not None else None,
            master_version_file=info.master_version_file,
            mod_thread_id=info.mod_thread_id,
            mod_name=info.mod_name,
            mod_nexus_id=info.mod_nexus_id,
        )

    def to_info(self) -> VersionCheckerInfo:
        return VersionCheckerInfo(
            mod_version=Version.parse(self.mod_version) if self.mod_version is not None else None,
            master_version_file=self.master_version_file,
            mod_thread_id=self.mod_thread_id,
            mod_name=self.mod_name,
            mod_nexus_id=self.mod_nexus_id,
        )


class VersionCheckerCacheDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Epoch milliseconds.
    last_check_timestamp: int = Field(0, alias="lastCheckTimestamp")
    online_versions: dict[str, CachedVersionInfo] = Field(default_factory=dict, alias="onlineVersions")


class VramUsage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mod_id: str = Field(alias="modId")
    version: str
    bytes_for_mod: int = Field(alias="bytesForMod")
    image_count: int = Field(alias="imageCount")


class VramCheckerCacheDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bytes_per_variant: dict[str, VramUsage] = Field(default_factory=dict, alias="bytesPerVariant")
