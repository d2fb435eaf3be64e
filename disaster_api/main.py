"""Entry point: run the cache runtime and its sweeper until interrupted."""

from __future__ import annotations

import asyncio
import logging

from disaster_api.config import Settings, load_settings
from disaster_api.services.runtime import ServiceRuntime

log = logging.getLogger(__name__)


async def serve(settings: Settings, stop: asyncio.Event | None = None) -> None:
    stop = stop or asyncio.Event()
    async with ServiceRuntime(settings):
        await stop.wait()


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        log.info("Shutting down")


if __name__ == "__main__":
    main()
