import pytest

from rate_limit import DualWindowLimiter
from riot_client import RiotAPIClient
from tests.fakes import FakeSession


@pytest.fixture
def limiter():
    limiter = DualWindowLimiter.from_limits(((1000, 1.0), (1000, 1.0)), start_timers=False)
    yield limiter
    limiter.close()


@pytest.fixture
def make_client(limiter):
    """Build a RiotAPIClient on a FakeSession; returns (client, session)."""

    def _make(handler, server="kr"):
        session = FakeSession(handler)
        client = RiotAPIClient(api_key="RGAPI-test", server=server, limiter=limiter, session=session)
        return client, session

    return _make
