import pytest
import pytest_asyncio

from tests.http_helpers import Backend, FakeClock, make_client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> Backend:
    return Backend()


@pytest_asyncio.fixture
async def client(backend, clock):
    api_client = make_client(backend, clock)
    yield api_client
    await api_client.aclose()
