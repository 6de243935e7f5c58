"""Shared FastAPI dependencies used across routers."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, Request

from smol_manager.exceptions import (
    FileOperationError,
    ModInfoParseError,
    NetworkError,
    NotFoundError,
    SmolError,
    ValidationError,
)
from smol_manager.services.mod_manager import ModManager

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[SmolError], int], ...] = (
    (ValidationError, 400),
    (ModInfoParseError, 400),
    (NotFoundError, 404),
    (NetworkError, 502),
    (FileOperationError, 500),
)


def get_manager(request: Request) -> ModManager:
    manager: ModManager | None = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(503, "Mod manager is not running")
    return manager


@contextmanager
def http_errors() -> Iterator[None]:
    """Re-raise domain errors as HTTPException with a matching status code."""
    try:
        yield
    except SmolError as exc:
        status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
        if status >= 500:
            logger.error("Request failed: %s", exc)
        raise HTTPException(status, str(exc)) from exc
