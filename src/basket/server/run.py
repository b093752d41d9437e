"""Launch the Basket API under uvicorn."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import uvicorn

from basket.config import Settings, get_settings

logger = logging.getLogger(__name__)

APP_FACTORY = "basket.server.app:create_app"


@dataclass(frozen=True)
class ServeOptions:
    host: str
    port: int
    reload: bool = False
    shutdown_after: Optional[float] = None


def resolve_options(
    settings: Settings,
    *,
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: Optional[bool] = None,
    shutdown_after: Optional[float] = None,
) -> ServeOptions:
    """Merge command-line overrides over the configured server settings."""

    options = ServeOptions(
        host=host or settings.server_host,
        port=port or settings.server_port,
        reload=settings.server_reload if reload is None else reload,
        shutdown_after=settings.server_shutdown_after if shutdown_after is None else shutdown_after,
    )
    if options.shutdown_after is not None and options.shutdown_after <= 0:
        raise ValueError("shutdown_after must be greater than 0")
    if options.reload and options.shutdown_after is not None:
        raise ValueError("Auto-reload cannot be combined with a timed shutdown")
    return options


async def _serve_until(server: uvicorn.Server, seconds: float) -> None:
    async def _stop() -> None:
        await asyncio.sleep(seconds)
        logger.info("Stopping server after %.1f seconds", seconds)
        server.should_exit = True

    stopper = asyncio.create_task(_stop())
    try:
        await server.serve()
    finally:
        stopper.cancel()


def serve(options: ServeOptions) -> None:
    logger.info("Serving Basket on %s:%s", options.host, options.port)
    if options.reload:
        # reload needs an import string so the worker process can rebuild the app
        uvicorn.run(APP_FACTORY, factory=True, host=options.host, port=options.port, reload=True)
        return

    server = uvicorn.Server(uvicorn.Config(APP_FACTORY, factory=True, host=options.host, port=options.port))
    if options.shutdown_after is None:
        server.run()
    else:
        asyncio.run(_serve_until(server, options.shutdown_after))


def main(
    host: Optional[str] = None,
    port: Optional[int] = None,
    *,
    reload: Optional[bool] = None,
    shutdown_after: Optional[float] = None,
) -> None:
    try:
        options = resolve_options(
            get_settings(), host=host, port=port, reload=reload, shutdown_after=shutdown_after
        )
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    serve(options)


if __name__ == "__main__":
    main()
