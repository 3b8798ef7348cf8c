
import asyncio
import logging

log = logging.getLogger("listmatch.scheduler")


class ExpiryTimers:
    """One-shot keyed timers on an event loop. arm() and cancel() may be called from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop
        self._handles: dict[object, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def arm(self, key, delay: float, callback, *args) -> None:
        self.loop.call_soon_threadsafe(self._arm, key, delay, callback, args)

    def cancel(self, key) -> None:
        self.loop.call_soon_threadsafe(self._cancel, key)

    def _arm(self, key, delay, callback, args):
        def fire():
            self._handles.pop(key, None)
            callback(*args)

        self._cancel(key)
        self._handles[key] = self.loop.call_later(delay, fire)

    def _cancel(self, key):
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        if self._handles:
            log.info("Cancelling %d pending expiry timers", len(self._handles))
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
