from __future__ import annotations
import asyncio, logging
from aiohttp import web
from yarl import URL

from ..codec import read_hashes
from ..errors import NameTaken
from ..models import short_name
from .common import PREFIX, SETTINGS, STORE, name_param

log = logging.getLogger("listmatch.handlers.upload")


async def handle_upload(request: web.Request) -> web.Response:
    name = name_param(request)
    store = request.app[STORE]
    # cheap early refusal; deposit() re-checks under the lock
    if name in store:
        raise NameTaken(name)

    hashes = await read_hashes(request.content, request.app[SETTINGS].max_request_hashes)
    log.debug("Read %d hashes for %s", len(hashes), short_name(name))

    # sorting is O(n log n) on up to 1e8 values, keep it off the loop
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, store.deposit, name, hashes)

    # pass the query through untouched so escaped names survive
    path = URL.build(path=request.app[PREFIX] + "match").raw_path
    location = URL.build(path=path, query_string=request.rel_url.raw_query_string, encoded=True)
    return web.Response(status=204, headers={"Location": str(location)})
