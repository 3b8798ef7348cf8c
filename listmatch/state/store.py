from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Iterable, Optional

from ..codec import new_hashes
from ..errors import NameTaken, NotFound, QueryBudgetExceeded
from ..matching import match
from ..models import Upload, short_name

log = logging.getLogger("listmatch.store")

# roughly 8-10 bytes of memory per stored hash, plus up to twice a request's
# size while deposit() sorts it (see sort_hashes)
MAX_TOTAL_HASHES = 10**8
# if you try a billion hashes, you're not really matching
MAX_QUERIES_PER_UPLOAD = 10**8
RETENTION = 24 * 60 * 60.0
# sorted() turns every value into an int object; sort in runs this long and merge
SORT_RUN = 1 << 20


def sort_hashes(hashes, run: Optional[int] = None):
    run = run or SORT_RUN
    if len(hashes) <= run:
        return new_hashes(sorted(hashes))
    runs = [new_hashes(sorted(hashes[i:i + run])) for i in range(0, len(hashes), run)]
    return new_hashes(heapq.merge(*runs))


class UploadStore:
    """Named hash sets awaiting a matcher.

    The OrderedDict is both the name -> upload map and the deposit-order ledger
    used for eviction, so the two can never disagree. Every read-modify-write
    runs under one lock; callers decode request bodies before calling in.
    """

    def __init__(
        self,
        max_total_hashes: int = MAX_TOTAL_HASHES,
        max_queries_per_upload: int = MAX_QUERIES_PER_UPLOAD,
        retention: float = RETENTION,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_total_hashes = max_total_hashes
        self.max_queries_per_upload = max_queries_per_upload
        self.retention = retention
        self.clock = clock
        self.timers = None
        self._lock = threading.Lock()
        self._uploads: OrderedDict[str, Upload] = OrderedDict()
        self._total = 0
        self._serials = itertools.count(1)

    def bind(self, timers) -> None:
        """Arm a one-shot expiry timer through `timers` on every deposit."""
        self.timers = timers

    def __len__(self) -> int:
        with self._lock:
            return len(self._uploads)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            self._purge_expired()
            return name in self._uploads

    @property
    def total_hashes(self) -> int:
        with self._lock:
            return self._total

    def stats(self) -> dict:
        with self._lock:
            return {"uploads": len(self._uploads), "hashes": self._total}

    def deposit(self, name: str, hashes: Iterable[int]) -> Upload:
        ordered = sort_hashes(hashes)
        with self._lock:
            self._purge_expired()
            if name in self._uploads:
                raise NameTaken(name)
            now = self.clock()
            upload = Upload(name, ordered, deposited_at=now, expires_at=now + self.retention,
                            serial=next(self._serials))
            self._uploads[name] = upload
            self._total += len(upload)
            self._schedule_expiry(upload)
            self._evict()
        log.info("Deposited %s: %d hashes", short_name(name), len(upload))
        return upload

    def expire(self, name: str, serial: Optional[int] = None) -> bool:
        """Remove `name` if present (only if it is still deposit `serial`, when given)."""
        with self._lock:
            current = self._uploads.get(name)
            if current is None or (serial is not None and current.serial != serial):
                return False
            self._remove(name)
        log.info("Expired %s", short_name(name))
        return True

    def lookup(self, name: str) -> Upload:
        with self._lock:
            self._purge_expired()
            upload = self._uploads.get(name)
        if upload is None:
            raise NotFound(name)
        return upload

    def query(self, name: str, needles) -> bytes:
        with self._lock:
            self._purge_expired()
            upload = self._uploads.get(name)
            if upload is None:
                raise NotFound(name)
            upload.match_query_count += len(needles)
            if upload.match_query_count > self.max_queries_per_upload:
                self._remove(name)
                log.warning("Dropped %s: %d hashes queried, limit %d",
                            short_name(name), upload.match_query_count, self.max_queries_per_upload)
                raise QueryBudgetExceeded(name, upload.match_query_count, self.max_queries_per_upload)
            haystack = upload.hashes
        # stored hashes never change, so matching needs no lock
        return match(haystack, needles)

    # the helpers below expect self._lock to be held

    def _schedule_expiry(self, upload: Upload) -> None:
        # the timer holds only the name and serial, never the hashes
        if self.timers is not None:
            self.timers.arm(upload.serial, self.retention, self.expire, upload.name, upload.serial)

    def _forget(self, upload: Upload) -> None:
        self._total -= len(upload)
        if self.timers is not None:
            self.timers.cancel(upload.serial)

    def _remove(self, name: str) -> Optional[Upload]:
        upload = self._uploads.pop(name, None)
        if upload is not None:
            self._forget(upload)
        return upload

    def _evict(self) -> None:
        while self._total > self.max_total_hashes and self._uploads:
            name, upload = self._uploads.popitem(last=False)
            self._forget(upload)
            log.info("Evicted %s (%d hashes) to stay under %d total",
                     short_name(name), len(upload), self.max_total_hashes)

    def _purge_expired(self) -> None:
        # deposit order is also deadline order
        now = self.clock()
        while self._uploads:
            name, upload = next(iter(self._uploads.items()))
            if not upload.expired(now):
                break
            self._remove(name)
            log.info("Expired %s", short_name(name))
