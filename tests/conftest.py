import pytest

from listmatch.config import Settings
from listmatch.state.store import UploadStore
from listmatch.web import create_app


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return UploadStore(max_total_hashes=100, max_queries_per_upload=50, retention=60.0, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        url="http://localhost/lm/",
        max_request_hashes=1000,
        max_total_hashes=100,
        max_queries_per_upload=50,
        retention_hours=1,
    )


@pytest.fixture
def app(settings, store):
    return create_app(settings, store)


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)
