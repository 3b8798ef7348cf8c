# listmatch/web.py
from __future__ import annotations
import asyncio, logging
from typing import Optional
from aiohttp import web
from yarl import URL

from .config import Settings, settings as default_settings
from .errors import ListMatchError
from .handlers.browser import handle_browser
from .handlers.common import PREFIX, SETTINGS, STORE, allow_cors
from .handlers.match import handle_match
from .handlers.upload import handle_upload
from .scheduler import ExpiryTimers
from .state.store import UploadStore

log = logging.getLogger("listmatch.web")


def url_prefix(url: str) -> str:
    path = URL(url).path or "/"
    return path if path.endswith("/") else path + "/"


@web.middleware
async def cors_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        allow_cors(exc)
        raise
    allow_cors(response)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ListMatchError as e:
        log.warning("%s %s failed: %s", request.method, request.path, e)
        return web.Response(status=500, text=str(e))


async def expiry_timers(app: web.Application):
    timers = ExpiryTimers(asyncio.get_running_loop())
    app[STORE].bind(timers)
    yield
    app[STORE].bind(None)
    timers.cancel_all()


def create_app(settings: Optional[Settings] = None, store: Optional[UploadStore] = None) -> web.Application:
    settings = settings or default_settings
    if store is None:
        store = UploadStore(
            max_total_hashes=settings.max_total_hashes,
            max_queries_per_upload=settings.max_queries_per_upload,
            retention=settings.retention,
        )
    prefix = url_prefix(settings.url)

    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[SETTINGS] = settings
    app[STORE] = store
    app[PREFIX] = prefix
    app.cleanup_ctx.append(expiry_timers)

    app.router.add_put(prefix + "upload", handle_upload)
    app.router.add_put(prefix + "match", handle_match)
    app.router.add_route("*", "/{tail:.*}", handle_browser)
    return app
