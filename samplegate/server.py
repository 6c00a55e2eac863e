"""aiohttp application: /sampling, /config, /healthz endpoints."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from samplegate.codec import encode
from samplegate.sampling import SamplingConfig

log = logging.getLogger(__name__)

VERSION_HEADER = "X-Samplegate-Version"


async def healthz(request: web.Request) -> web.Response:
    return web.Response(text="ok")


async def sampling(request: web.Request) -> web.Response:
    engine: SamplingConfig = request.app["sampling"]
    csid = request.query.get("csid", "")
    at = request.query.get("at")
    now: float | None = None
    if at is not None:
        try:
            now = float(at)
        except ValueError:
            log.debug("Ignoring malformed 'at' query value: %r", at)
            return web.Response(status=403, text="denied")
    if not engine.is_allowed(csid, now):
        return web.Response(status=403, text="denied")
    return web.Response(
        status=200, text="allowed", headers={VERSION_HEADER: str(engine.version)}
    )


async def config(request: web.Request) -> web.Response:
    engine: SamplingConfig = request.app["sampling"]
    snapshot = engine.snapshot()
    return web.Response(
        body=encode(snapshot.configuration),
        content_type="application/json",
        headers={VERSION_HEADER: str(snapshot.version)},
    )


def create_app(settings: dict[str, Any]) -> web.Application:
    app = web.Application()
    app["config"] = settings

    app["sampling"] = SamplingConfig(
        settings["sampling"]["source"],
        poll_interval=settings["sampling"]["poll_interval_seconds"],
    )

    async def on_cleanup(app: web.Application) -> None:
        log.info("Shutting down: stopping debug sampling config source")
        app["sampling"].close()

    app.on_cleanup.append(on_cleanup)

    app.router.add_get("/sampling", sampling)
    app.router.add_get("/config", config)
    app.router.add_get("/healthz", healthz)
    return app
