
from aiohttp import web

from ..config import Settings
from ..errors import BadRequest
from ..state.store import UploadStore

STORE = web.AppKey("store", UploadStore)
SETTINGS = web.AppKey("settings", Settings)
PREFIX = web.AppKey("prefix", str)


def name_param(request: web.Request) -> str:
    names = request.query.getall("name", [])
    if len(names) != 1:
        raise BadRequest("need a name arg")
    return names[0]


def allow_cors(response: web.StreamResponse) -> None:
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "PUT, OPTIONS"
