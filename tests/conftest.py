import pytest

from routerisk.config import Settings
from routerisk.lanes import LaneNetwork, LaneNetworkProvider, load_lane_network
from routerisk.models import Position
from routerisk.ports import StaticPortLookup
from routerisk.service import RiskService


class FakeRouter:
    """Stand-in for a directions service: returns fixed points or raises."""

    def __init__(self, points=None, error=None):
        self.points = list(points or [])
        self.error = error
        self.calls = []

    async def route(self, origin, destination):
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        return list(self.points)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def P(lon, lat):
    return Position(lon=lon, lat=lat)


@pytest.fixture(scope="session")
def lane_network():
    return load_lane_network()


@pytest.fixture
def lane_provider(lane_network):
    return LaneNetworkProvider(network=lane_network)


@pytest.fixture(scope="session")
def ports():
    return StaticPortLookup.from_file()


@pytest.fixture
def fake_router():
    return FakeRouter


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def line_network():
    """Two lanes sharing the vertex (0, 1), plus an unconnected lane far east."""
    return LaneNetwork.from_lines([
        ("west", [P(0, 0), P(0, 0.5), P(0, 1)]),
        ("north", [P(0, 1), P(0.5, 1.5), P(1, 2)]),
        ("island", [P(40, 0), P(40, 1)]),
    ])


@pytest.fixture
def make_service(lane_network, ports, clock):
    def factory(road=None, rail=None, sources=(), network=None, **settings):
        return RiskService(
            Settings(**settings),
            LaneNetworkProvider(network=network or lane_network),
            ports,
            road or FakeRouter(),
            rail or FakeRouter(),
            sources,
            clock=clock,
        )

    return factory
