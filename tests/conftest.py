from datetime import datetime

import pytest

from ride_acceptance.services.distance.cache import DistanceCache, normalize_address
from ride_acceptance.services.distance.models import MILES_PER_METER

# Monday 10:00
NOW = datetime(2026, 10, 19, 10, 0)


def ok_cell(miles: float, minutes: int | None = None) -> dict:
    minutes = minutes if minutes is not None else round(miles * 2)
    return {
        "status": "OK",
        "distance": {"text": f"{miles} mi", "value": miles / MILES_PER_METER},
        "duration": {"text": f"{minutes} mins", "value": minutes * 60},
    }


class DummyMatrixClient:
    """Distance capability backed by a table of known driving distances."""

    def __init__(self, miles_by_pair: dict | None = None, fail: bool = False):
        self.miles_by_pair = {
            tuple(sorted((normalize_address(a), normalize_address(b)))): miles
            for (a, b), miles in (miles_by_pair or {}).items()
        }
        self.fail = fail
        self.calls = []
        self.parallel_limits = []

    async def matrix(self, origins, destinations, max_parallel_requests=None):
        self.calls.append((list(origins), list(destinations)))
        self.parallel_limits.append(max_parallel_requests)
        if self.fail:
            raise ConnectionError("maps service unreachable")
        grid = []
        for origin in origins:
            row = []
            for destination in destinations:
                key = tuple(sorted((normalize_address(origin), normalize_address(destination))))
                miles = self.miles_by_pair.get(key)
                row.append(ok_cell(miles) if miles is not None else {"status": "NOT_FOUND"})
            grid.append(row)
        return grid


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> DistanceCache:
    return DistanceCache(clock=clock)
