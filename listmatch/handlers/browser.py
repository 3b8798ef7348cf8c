
from aiohttp import web

MESSAGE = "Sorry, you need to use the command-line program to access this server."


async def handle_browser(request: web.Request) -> web.Response:
    return web.Response(text=MESSAGE)
