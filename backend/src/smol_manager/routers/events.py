"""Server-sent events for mod list updates and loading state."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from smol_manager.models.mod import ModListUpdate
from smol_manager.routers.deps import get_manager
from smol_manager.schemas.mod import ModListOut
from smol_manager.services.mod_manager import ModManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def _mods_event(update: ModListUpdate | None) -> dict[str, str]:
    return {"event": "mods", "data": ModListOut.from_update(update).model_dump_json()}


def _loading_event(is_loading: bool) -> dict[str, str]:
    return {"event": "loading", "data": json.dumps({"is_loading": is_loading})}


async def mod_events(manager: ModManager) -> AsyncGenerator[dict[str, str], None]:
    """Yield the current state, then every change until the client goes away.

    Observables notify from whichever thread published, so events are handed
    to the event loop through a queue.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, str]] = asyncio.Queue()

    def push(event: dict[str, str]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event)

    unsubscribers = [
        manager.mods.subscribe(lambda update: push(_mods_event(update))),
        manager.is_loading.subscribe(lambda loading: push(_loading_event(loading))),
    ]
    try:
        yield _loading_event(manager.is_loading.value)
        yield _mods_event(manager.mods.value)
        while True:
            yield await queue.get()
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()
        logger.debug("Event stream closed")


@router.get("/")
async def events(manager: ModManager = Depends(get_manager)) -> EventSourceResponse:
    return EventSourceResponse(mod_events(manager))
