# listmatch/codec.py
"""Wire format: a bare stream of 8-byte big-endian unsigned integers."""
from __future__ import annotations

import sys
from array import array
from typing import Iterable

from .errors import TooManyRecords, TruncatedRecord

RECORD_SIZE = 8
MAX_RECORDS = 10**8
CHUNK_SIZE = 1 << 16

_SWAP = sys.byteorder == "little"


def new_hashes(values: Iterable[int] = ()) -> array:
    return array("Q", values)


class HashDecoder:
    """Incremental decoder; feed it chunks as they arrive, then close()."""

    def __init__(self, limit: int = MAX_RECORDS):
        self.limit = limit
        self.hashes = new_hashes()
        self._pending = b""

    def feed(self, chunk: bytes) -> None:
        data = self._pending + chunk if self._pending else bytes(chunk)
        whole = len(data) - len(data) % RECORD_SIZE
        if whole:
            if len(self.hashes) + whole // RECORD_SIZE > self.limit:
                raise TooManyRecords(self.limit)
            batch = array("Q")
            batch.frombytes(data[:whole])
            if _SWAP:
                batch.byteswap()
            self.hashes.extend(batch)
        self._pending = data[whole:]

    def close(self) -> array:
        if self._pending:
            raise TruncatedRecord(len(self._pending))
        return self.hashes


def decode_hashes(data: bytes, limit: int = MAX_RECORDS) -> array:
    decoder = HashDecoder(limit)
    decoder.feed(data)
    return decoder.close()


async def read_hashes(stream, limit: int = MAX_RECORDS) -> array:
    """Decode an aiohttp StreamReader until EOF. Nothing is shared until it returns."""
    decoder = HashDecoder(limit)
    async for chunk in stream.iter_chunked(CHUNK_SIZE):
        decoder.feed(chunk)
    return decoder.close()


def encode_hashes(values: Iterable[int]) -> bytes:
    out = new_hashes(values)
    if _SWAP:
        out.byteswap()
    return out.tobytes()
