"""Pydantic shapes of the on-disk mod_info.json and version checker files.

Two manifest layouts exist in the wild:

* legacy, where ``version`` is a plain string (``"1.2.3"``);
* current, where ``version`` is an object (``{"major": 1, "minor": 2, "patch": "3a"}``).

Neither declares which one it is, so the loader probes the shape of
``version`` and validates against the matching model.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _stringify(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


class VersionObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    major: str | None = None
    minor: str | None = None
    patch: str | None = None

    @field_validator("major", "minor", "patch", mode="before")
    @classmethod
    def _numbers_to_str(cls, value: Any) -> Any:
        return _stringify(value)


class DependencyFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    version: str | VersionObject | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _numbers_to_str(cls, value: Any) -> Any:
        return _stringify(value)


class _ModInfoFileBase(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    author: str = ""
    description: str = ""
    game_version: str = Field("", alias="gameVersion")
    jars: list[str] = []
    mod_plugin: str = Field("", alias="modPlugin")
    utility: bool = False
    total_conversion: bool = Field(False, alias="totalConversion")
    dependencies: list[DependencyFile] = []

    @field_validator("game_version", mode="before")
    @classmethod
    def _game_version_to_str(cls, value: Any) -> Any:
        return _stringify(value)


class LegacyModInfoFile(_ModInfoFileBase):
    version: str

    @field_validator("version", mode="before")
    @classmethod
    def _version_to_str(cls, value: Any) -> Any:
        return _stringify(value)


class ModInfoFile(_ModInfoFileBase):
    version: VersionObject


class VersionCheckerFile(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    master_version_file: str | None = Field(None, alias="masterVersionFile")
    mod_name: str | None = Field(None, alias="modName")
    mod_thread_id: str | None = Field(None, alias="modThreadId")
    mod_nexus_id: str | None = Field(None, alias="modNexusId")
    mod_version: VersionObject | str | None = Field(None, alias="modVersion")

    @field_validator("mod_thread_id", "mod_nexus_id", "mod_version", mode="before")
    @classmethod
    def _numbers_to_str(cls, value: Any) -> Any:
        return _stringify(value)
