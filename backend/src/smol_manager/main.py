import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from smol_manager.config import settings
from smol_manager.routers import api_router
from smol_manager.services.mod_manager import ModManager


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    manager = ModManager.from_settings(settings)
    app.state.manager = manager
    logger.info("Application started (mods folder: %s)", settings.mods_path)
    await asyncio.to_thread(manager.reload)
    yield
    logger.info("Shutting down...")
    app.state.manager = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="SMOL Manager",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
