from __future__ import annotations
import asyncio, logging
from aiohttp import web

from ..codec import read_hashes
from ..errors import UploadEmpty
from ..models import short_name
from .common import SETTINGS, STORE, name_param

log = logging.getLogger("listmatch.handlers.match")


async def handle_match(request: web.Request) -> web.Response:
    name = name_param(request)
    store = request.app[STORE]
    upload = store.lookup(name)
    if not len(upload):
        raise UploadEmpty(name)

    needles = await read_hashes(request.content, request.app[SETTINGS].max_request_hashes)

    loop = asyncio.get_running_loop()
    mask = await loop.run_in_executor(None, store.query, name, needles)
    log.info("Matched %d hashes against %s", len(needles), short_name(name))
    return web.Response(body=mask, content_type="application/octet-stream")
