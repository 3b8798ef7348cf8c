import threading
from array import array

import pytest

from listmatch.errors import NameTaken, NotFound, QueryBudgetExceeded
from listmatch.state.store import UploadStore, sort_hashes


def test_deposit_sorts_hashes(store):
    upload = store.deposit("a", [5, 1, 3, 1])
    assert upload.hashes == array("Q", [1, 1, 3, 5])
    assert store.lookup("a") is upload
    assert store.total_hashes == 4


def test_deposit_then_query(store):
    store.deposit("a", [5, 1, 3])
    assert store.query("a", [1, 2, 3]) == bytes([0b10100000])


def test_name_taken_keeps_first_upload(store):
    store.deposit("a", [1, 2])
    with pytest.raises(NameTaken):
        store.deposit("a", [9])
    assert list(store.lookup("a").hashes) == [1, 2]
    assert store.total_hashes == 2


def test_query_unknown_name(store):
    with pytest.raises(NotFound):
        store.query("nobody", [1])
    with pytest.raises(NotFound):
        store.lookup("nobody")


def test_expiry_by_deadline(store, clock):
    store.deposit("a", [1])
    clock.advance(59.9)
    assert store.query("a", [1]) == b"\x80"
    clock.advance(0.1)
    with pytest.raises(NotFound):
        store.query("a", [1])
    assert "a" not in store
    assert store.total_hashes == 0


def test_expired_name_can_be_reused(store, clock):
    store.deposit("a", [1])
    clock.advance(60)
    store.deposit("a", [2])
    assert store.query("a", [1, 2]) == bytes([0b01000000])


def test_expire_is_idempotent(store):
    store.deposit("a", [1, 2, 3])
    assert store.expire("a")
    assert not store.expire("a")
    assert len(store) == 0
    assert store.total_hashes == 0


def test_stale_expiry_leaves_newer_deposit(store):
    first = store.deposit("a", [1])
    store.expire("a")
    store.deposit("a", [2])
    assert not store.expire("a", first.serial)
    assert list(store.lookup("a").hashes) == [2]


def test_eviction_drops_oldest_first(store):
    store.deposit("a", range(40))
    store.deposit("b", range(40))
    store.deposit("c", range(40))
    with pytest.raises(NotFound):
        store.query("a", [1])
    assert store.query("b", [1]) == b"\x80"
    assert store.query("c", [1]) == b"\x80"
    assert store.total_hashes == 80


def test_eviction_counts_every_upload(store):
    # 60 + 50 only goes over the cap when both uploads are counted
    store.deposit("a", range(60))
    store.deposit("b", range(50))
    assert "a" not in store
    assert "b" in store
    assert store.stats() == {"uploads": 1, "hashes": 50}


def test_oversized_upload_evicts_everything(store):
    store.deposit("a", [1])
    store.deposit("big", range(101))
    assert len(store) == 0
    assert store.total_hashes == 0


def test_query_budget(store):
    store.deposit("a", [1])
    store.query("a", [1] * 30)
    store.query("a", [1] * 20)
    assert store.lookup("a").match_query_count == 50
    with pytest.raises(QueryBudgetExceeded) as err:
        store.query("a", [1])
    assert err.value.count == 51
    with pytest.raises(NotFound):
        store.query("a", [1])
    assert store.total_hashes == 0


def test_empty_query_uses_no_budget(store):
    store.deposit("a", [1])
    assert store.query("a", []) == b""
    assert store.lookup("a").match_query_count == 0


class RecordingTimers:
    def __init__(self):
        self.armed = []
        self.cancelled = []

    def arm(self, key, delay, callback, *args):
        self.armed.append((key, delay, callback, args))

    def cancel(self, key):
        self.cancelled.append(key)


def test_deposit_arms_expiry_timer(store):
    timers = RecordingTimers()
    store.bind(timers)
    upload = store.deposit("a", [1])
    [(key, delay, callback, args)] = timers.armed
    assert key == upload.serial
    assert delay == 60.0
    assert args == ("a", upload.serial)
    callback(*args)
    assert "a" not in store
    assert timers.cancelled == [upload.serial]


def test_removal_cancels_expiry_timer(store):
    timers = RecordingTimers()
    store.bind(timers)
    old = store.deposit("old", range(60))
    store.deposit("new", range(60))
    assert timers.cancelled == [old.serial]

    store.query("new", [1] * 50)
    with pytest.raises(QueryBudgetExceeded):
        store.query("new", [1])
    assert len(timers.cancelled) == 2


def test_failed_deposit_arms_nothing(store):
    timers = RecordingTimers()
    store.deposit("a", [1])
    store.bind(timers)
    with pytest.raises(NameTaken):
        store.deposit("a", [1])
    assert timers.armed == []


def test_concurrent_deposits():
    store = UploadStore(max_total_hashes=10**6)

    def work(t):
        for i in range(50):
            store.deposit(f"{t}-{i}", [t, i])

    threads = [threading.Thread(target=work, args=(t,)) for t in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    assert len(store) == 400
    assert store.total_hashes == 800


def test_concurrent_queries_share_one_budget():
    store = UploadStore(max_queries_per_upload=1000)
    store.deposit("a", [7])

    def work():
        for _ in range(100):
            store.query("a", [7])

    threads = [threading.Thread(target=work) for _ in range(10)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    assert store.lookup("a").match_query_count == 1000
    with pytest.raises(QueryBudgetExceeded):
        store.query("a", [7])


def test_sort_hashes_in_runs():
    values = [9, 3, 3, 2**64 - 1, 0, 7, 3, 12, 5, 1, 8]
    assert list(sort_hashes(values, run=3)) == sorted(values)
    assert list(sort_hashes(values)) == sorted(values)
    assert list(sort_hashes([], run=3)) == []


def test_deposit_sorts_large_uploads_in_runs(monkeypatch, store):
    monkeypatch.setattr("listmatch.state.store.SORT_RUN", 4)
    upload = store.deposit("a", [10, 2, 8, 6, 4, 9, 1, 7, 3, 5])
    assert list(upload.hashes) == list(range(1, 11))
