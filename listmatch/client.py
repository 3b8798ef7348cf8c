# listmatch/client.py
"""Hash a CSV/TSV key column with a secret salt and talk to a listmatch server.

The salt never leaves this machine; the server only sees the first 8 bytes of
sha256(salt + key) for every row.
"""
from __future__ import annotations

import base64
import hashlib
import logging
import os
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterator, Optional

import httpx

from .config import settings
from .errors import ClientError, ServerError
from .matching import iter_mask_bits

log = logging.getLogger("listmatch.client")

SALT_SIZE = 32
DELIMITERS = b"\r\n\t ,"
BATCH = 8192
PLACEHOLDER_HOST = "example.com"


@dataclass
class UploadResult:
    name: str
    salt: str
    match_url: str
    hashes: int


@dataclass
class MatchResult:
    path: str
    rows: int
    matches: int


def normalize_key(line: bytes) -> bytes:
    """First column, quotes trimmed, upper-cased."""
    for i, ch in enumerate(line):
        if ch in DELIMITERS:
            line = line[:i]
            break
    return upper(line.strip(b"'\""))


def upper(key: bytes) -> bytes:
    """Unicode upper case, one character for one, invalid UTF-8 bytes as U+FFFD."""
    if key.isascii():
        return key.upper()
    text = key.decode("utf-8", "replace")
    return "".join(_upper_char(c) for c in text).encode("utf-8")


def _upper_char(c: str) -> str:
    u = c.upper()
    return u if len(u) == 1 else c


def hash_key(salt: bytes, key: bytes) -> bytes:
    return hashlib.sha256(salt + key).digest()[:8]


def iter_rows(path: str) -> Iterator[bytes]:
    """Data rows of the file, header skipped, line endings stripped."""
    with open(path, "rb") as f:
        if not f.readline():
            raise ClientError(f"couldn't read header row from {path!r}")
        for line in f:
            yield line.rstrip(b"\r\n")


async def hash_stream(path: str, salt: bytes, stats: Optional[dict] = None) -> AsyncIterator[bytes]:
    buf = bytearray()
    n = 0
    for row in iter_rows(path):
        buf += hash_key(salt, normalize_key(row))
        n += 1
        if n % 1_000_000 == 0:
            log.info("%d hashes sent", n)
        if n % BATCH == 0:
            yield bytes(buf)
            buf.clear()
    if buf:
        yield bytes(buf)
    if stats is not None:
        stats["hashes"] = n
    log.info("All %d hashes sent, waiting for reply", n)


def encode_salt(salt: bytes) -> str:
    return base64.b64encode(salt).decode("ascii")


def decode_salt(text: str) -> bytes:
    try:
        salt = base64.b64decode(text, validate=True)
    except ValueError as e:
        raise ClientError(f"trying to decode salt, got {e}") from e
    if len(salt) != SALT_SIZE:
        raise ClientError(f"salt should be {SALT_SIZE} bytes, got {len(salt)}")
    return salt


def upload_url(url: str, name: str) -> httpx.URL:
    base = httpx.URL(url)
    if base.host == PLACEHOLDER_HOST:
        raise ClientError("Sorry, the example.com URL in the usage info is just a placeholder. "
                          "Use a URL provided to you by someone running a server.")
    path = base.path if base.path.endswith("/") else base.path + "/"
    return base.copy_with(path=path + "upload").copy_merge_params({"name": name})


def matches_path(path: str) -> str:
    """data/list.csv -> data/list-matches.csv"""
    head, tail = os.path.split(path)
    pieces = tail.split(".")
    pieces[0] += "-matches"
    return os.path.join(head, ".".join(pieces))


async def send(path: str, url, salt: bytes, client: httpx.AsyncClient, stats: Optional[dict] = None) -> httpx.Response:
    r = await client.put(url, content=hash_stream(path, salt, stats))
    if r.status_code not in (200, 204):
        raise ServerError(r.status_code, r.text)
    return r


async def upload(path: str, url: str, client: Optional[httpx.AsyncClient] = None) -> UploadResult:
    salt = secrets.token_bytes(SALT_SIZE)
    name = secrets.token_urlsafe(16)
    target = upload_url(url, name)
    stats = {}
    async with _client(client) as c:
        r = await send(path, target, salt, c, stats)
    location = r.headers.get("Location")
    if not location:
        raise ClientError("server didn't send back a match link")
    return UploadResult(name=name, salt=encode_salt(salt),
                        match_url=str(target.join(location)), hashes=stats.get("hashes", 0))


async def match(path: str, url: str, salt_text: str, client: Optional[httpx.AsyncClient] = None) -> MatchResult:
    salt = decode_salt(salt_text)
    async with _client(client) as c:
        r = await send(path, url, salt, c)
    mask = r.content

    out_path = matches_path(path)
    rows = matches = 0
    with open(path, "rb") as src, open(out_path, "wb") as out:
        out.write(src.readline().rstrip(b"\r\n") + b"\n")
        data = (line.rstrip(b"\r\n") for line in src)
        for row, hit in zip(data, iter_mask_bits(mask, len(mask) * 8)):
            rows += 1
            if hit:
                out.write(row + b"\n")
                matches += 1
    log.info("Wrote %d matches out of %d rows to %s", matches, rows, out_path)
    return MatchResult(path=out_path, rows=rows, matches=matches)


@asynccontextmanager
async def _client(client: Optional[httpx.AsyncClient]):
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.http_timeout) as c:
        yield c
