import asyncio
import random

import pytest

from conftest import DummyMatrixClient
from ride_acceptance.services.distance.models import DistanceRequest
from ride_acceptance.services.distance.resolver import DistanceResolver, InvalidAddressError

DRIVER = "10 Driver Way, Springfield"
PICKUP_A = "1 Patient Rd, Springfield"
PICKUP_B = "2 Patient Rd, Springfield"
CLINIC = "Mercy Clinic, Springfield"


def _resolver(cache, client=None, seed=7) -> DistanceResolver:
    return DistanceResolver(
        cache,
        client,
        rng=random.Random(seed),
        fallback_min_miles=1.0,
        fallback_max_miles=25.0,
        fallback_minutes_per_mile=2.5,
    )


def test_resolve_measures_and_caches(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 5.0})
    resolver = _resolver(cache, client)

    first = asyncio.run(resolver.resolve(DRIVER, PICKUP_A))
    second = asyncio.run(resolver.resolve(PICKUP_A, DRIVER))

    assert first.kind == "measured"
    assert first.distance_miles == 5.0
    assert not first.cached
    assert second.cached
    assert second.distance_miles == 5.0
    assert len(client.calls) == 1


def test_resolve_rejects_empty_addresses(cache):
    resolver = _resolver(cache, DummyMatrixClient())

    with pytest.raises(InvalidAddressError):
        asyncio.run(resolver.resolve("", PICKUP_A))
    with pytest.raises(ValueError):
        asyncio.run(resolver.resolve(DRIVER, "   "))


def test_resolve_without_client_estimates_and_does_not_cache(cache):
    resolver = _resolver(cache)

    result = asyncio.run(resolver.resolve(DRIVER, PICKUP_A))

    assert result.kind == "estimated"
    assert 1.0 <= result.distance_miles < 25.0
    assert result.duration_seconds == round(result.distance_miles * 2.5) * 60
    assert len(cache) == 0


def test_estimates_are_reproducible_with_seeded_rng(cache):
    first = asyncio.run(_resolver(cache, seed=42).resolve(DRIVER, PICKUP_A))
    second = asyncio.run(_resolver(cache, seed=42).resolve(DRIVER, PICKUP_A))

    assert first == second


def test_failed_cell_falls_back_to_estimate(cache):
    client = DummyMatrixClient({})
    resolver = _resolver(cache, client)

    result = asyncio.run(resolver.resolve(DRIVER, PICKUP_A))

    assert result.kind == "estimated"
    assert len(cache) == 0


def test_transport_failure_falls_back_to_estimate(cache):
    client = DummyMatrixClient(fail=True)
    resolver = _resolver(cache, client)

    result = asyncio.run(resolver.resolve(DRIVER, PICKUP_A))

    assert result.is_estimated
    assert len(client.calls) == 1


def test_resolve_many_makes_one_call_for_shared_pickup(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 4.0})
    resolver = _resolver(cache, client)
    requests = [DistanceRequest(DRIVER, PICKUP_A) for _ in range(6)]

    results = asyncio.run(resolver.resolve_many(requests))

    assert len(results) == 6
    assert all(result.distance_miles == 4.0 for result in results)
    assert client.calls == [([DRIVER], [PICKUP_A])]


def test_resolve_many_preserves_order_and_uses_unique_addresses(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 4.0, (DRIVER, PICKUP_B): 9.5})
    resolver = _resolver(cache, client)
    requests = [
        DistanceRequest(DRIVER, PICKUP_B),
        DistanceRequest(DRIVER, PICKUP_A),
        DistanceRequest(DRIVER, PICKUP_B.upper()),
    ]

    results = asyncio.run(resolver.resolve_many(requests))

    assert [result.distance_miles for result in results] == [9.5, 4.0, 9.5]
    origins, destinations = client.calls[0]
    assert origins == [DRIVER]
    assert destinations == [PICKUP_B, PICKUP_A]


def test_resolve_many_skips_external_call_when_all_cached(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 4.0, (DRIVER, PICKUP_B): 9.5})
    resolver = _resolver(cache, client)
    requests = [DistanceRequest(DRIVER, PICKUP_A), DistanceRequest(DRIVER, PICKUP_B)]
    asyncio.run(resolver.resolve_many(requests))

    results = asyncio.run(resolver.resolve_many(requests))

    assert len(client.calls) == 1
    assert all(result.cached for result in results)


def test_resolve_many_partial_and_total_failures(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 4.0})
    resolver = _resolver(cache, client)

    results = asyncio.run(
        resolver.resolve_many([DistanceRequest(DRIVER, PICKUP_A), DistanceRequest(DRIVER, PICKUP_B)])
    )
    assert [result.kind for result in results] == ["measured", "estimated"]
    assert len(cache) == 1

    failing = _resolver(cache, DummyMatrixClient(fail=True))
    results = asyncio.run(
        failing.resolve_many([DistanceRequest(DRIVER, PICKUP_A), DistanceRequest(DRIVER, PICKUP_B)])
    )
    assert [result.kind for result in results] == ["measured", "estimated"]
    assert results[0].cached


def test_resolve_many_estimates_blank_addresses(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 4.0})
    resolver = _resolver(cache, client)

    results = asyncio.run(resolver.resolve_many([DistanceRequest(DRIVER, ""), DistanceRequest(DRIVER, PICKUP_A)]))

    assert results[0].kind == "estimated"
    assert results[1].kind == "measured"


def test_distance_to_driver_rounds_miles(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 12.34})
    resolver = _resolver(cache, client)

    assert asyncio.run(resolver.distance_to_driver(DRIVER, PICKUP_A)) == 12.3


def test_resolve_trip_round_trip_sums_legs(cache):
    client = DummyMatrixClient({(DRIVER, PICKUP_A): 3.0, (PICKUP_A, CLINIC): 6.0})
    resolver = _resolver(cache, client)

    trip = asyncio.run(resolver.resolve_trip(DRIVER, PICKUP_A, CLINIC, round_trip=True))

    assert [leg.name for leg in trip.legs] == [
        "Driver to Pickup",
        "Pickup to Provider",
        "Provider to Pickup (Return)",
    ]
    assert trip.total_distance_miles == 15.0
    assert trip.total_distance_text == "15.0 mi"
    assert not trip.includes_estimates
    assert len(client.calls) == 1


def test_resolve_trip_requires_all_addresses(cache):
    resolver = _resolver(cache)

    with pytest.raises(InvalidAddressError):
        asyncio.run(resolver.resolve_trip(DRIVER, PICKUP_A, ""))
