# listmatch/main.py
from __future__ import annotations
import asyncio, logging, os, sys
from dataclasses import replace
import httpx
from aiohttp import web
from yarl import URL

from .client import match, upload
from .config import Settings, settings
from .errors import ClientError
from .utils.logging import setup_logging
from .web import create_app, url_prefix

log = logging.getLogger("listmatch.main")

PROG = "listmatch"
PLACEHOLDER_FILE = "MYFILE.csv"

USAGE = f"""\
To start a list-matching server, run

    {PROG} serve https://example.com/xyz/

To test on your own computer, use a URL like http://localhost:8080/.
HTTPS is not built in: put the server behind a reverse proxy like nginx
or Caddy and set LISTEN_HOST/LISTEN_PORT to the address it forwards to.

To upload a list to be matched, run

    {PROG} upload {PLACEHOLDER_FILE} https://example.com/xyz/

...but using a URL provided to you by the server operator in place of
the example.com one. To match a list, use the unique "{PROG} match"
command the uploader sends you.

The FIRST column of the CSV (or TSV) must be the key you're matching
on. We assume the first row is headers. Matching is case insensitive.
"""


def usage(code: int = 1):
    sys.stderr.write(USAGE)
    sys.exit(code)


def listen_address(url: str, cfg: Settings) -> tuple[str, int]:
    u = URL(url)
    host = cfg.listen_host or u.host or "localhost"
    port = cfg.listen_port or u.port or 80
    return host, port


def serve(url: str, cfg: Settings = settings):
    if hasattr(os, "getuid") and os.getuid() == 0:
        log.error("don't run the server as root; use `setcap` (or a reverse proxy) to open low ports")
        sys.exit(1)
    cfg = replace(cfg, url=url)
    host, port = listen_address(url, cfg)
    if URL(url).scheme == "https" and not (cfg.listen_host or cfg.listen_port):
        log.warning("TLS is not built in; terminate HTTPS in a reverse proxy in front of %s:%d", host, port)
    prefix = url_prefix(url)
    log.info("Serving on %s:%d under %s", host, port, prefix)
    log.info("To use this server, uploaders can run:\n\t%s upload %s %s",
             PROG, PLACEHOLDER_FILE, URL(url).with_path(prefix))
    web.run_app(create_app(cfg), host=host, port=port, print=None)


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    setup_logging(settings.log_level)
    if not argv:
        usage()
    mode, args = argv[0], argv[1:]

    if mode in ("upload", "match") and args and args[0] == PLACEHOLDER_FILE:
        log.error("replace the '%s' placeholder in the command line with the name of the file you want to match",
                  PLACEHOLDER_FILE)
        sys.exit(1)

    try:
        if mode == "serve" and len(args) == 1:
            serve(args[0])
        elif mode == "upload" and len(args) == 2:
            res = asyncio.run(upload(*args))
            log.info("Done! Ask the matcher to run:\n\t%s match %s %s %s",
                     PROG, PLACEHOLDER_FILE, res.match_url, res.salt)
        elif mode == "match" and len(args) == 3:
            res = asyncio.run(match(*args))
            print(f"Wrote {res.matches} matches to {res.path}")
        else:
            usage()
    except (ClientError, httpx.HTTPError, OSError) as e:
        log.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
