"""Entry point for standalone backend process."""

import uvicorn

from smol_manager.config import settings


def main() -> None:
    uvicorn.run(
        "smol_manager.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
