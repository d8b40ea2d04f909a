"""
Test planner sessions: explicit recompute, name backfill and settings.
"""

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from ..clients.mapbox_directions import MapboxDirectionsClient
from ..models.travel import CostSettings, NameStatus, Waypoint
from ..processing.route_resolver import RouteResolver
from ..processing.session import PlannerSession, SessionRegistry

from .test_route_resolver import FakeDirections


class FakeGeocoder:
    """Reverse geocoder with a scripted answer."""

    def __init__(self, label: str = "Salt Lake City", fail: bool = False, delay: float = 0):
        self.label = label
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def reverse_geocode(self, longitude, latitude):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("geocoder down")
        return self.label


def make_session(geocoder=None, provider=None) -> tuple[PlannerSession, FakeDirections]:
    provider = provider or FakeDirections()
    session = PlannerSession(
        RouteResolver(provider),
        geocoder=geocoder,
        settings=CostSettings(mpg=25, price_per_gallon=3.5),
    )
    return session, provider


def test_route_follows_waypoints():
    """Test recompute after each mutation."""
    print("\n=== Testing Session Recompute ===")

    async def scenario():
        session, provider = make_session()

        first = await session.add_waypoint(-111.89, 40.76, name="Home")
        assert session.resolution.route is None
        assert session.cost() is None
        assert provider.calls == []

        await session.add_waypoint(-111.65, 40.23, name="Provo")
        assert session.resolution.route.distance == 2000.0
        assert len(provider.calls) == 1

        third = await session.add_waypoint(-112.03, 41.22, name="Ogden")
        assert session.resolution.route.distance == 3000.0
        assert len(provider.calls) == 2

        # Renaming does not change the sequence, so no new request
        await session.update_waypoint(third.id, name="Ogden Canyon")
        assert len(provider.calls) == 2

        await session.remove_waypoint(first.id)
        assert session.resolution.route.distance == 2000.0
        assert len(provider.calls) == 3

        await session.clear_waypoints()
        assert session.resolution.route is None
        assert len(session.store) == 0

    asyncio.run(scenario())

    print("✓ Route recomputed on every sequence change")


def test_cost_follows_settings():
    """Test cost derivation and settings updates."""
    print("\n=== Testing Session Cost ===")

    async def scenario():
        session, _ = make_session()
        await session.add_waypoint(0.0, 0.0, name="A")
        await session.add_waypoint(1.0, 1.0, name="B")

        before = session.cost()
        session.update_settings(price_per_gallon=7.0)
        after = session.cost()

        assert after.fuel_cost == pytest.approx(before.fuel_cost * 2, abs=0.01)
        assert session.settings.mpg == 25

        with pytest.raises(ValidationError):
            session.update_settings(mpg=0)
        assert session.settings.mpg == 25

    asyncio.run(scenario())

    print("✓ Cost reacts to settings")


def test_name_backfill():
    """Test asynchronous naming of new waypoints."""
    print("\n=== Testing Name Backfill ===")

    async def scenario():
        session, _ = make_session(geocoder=FakeGeocoder(label="Park City", delay=0.01))
        waypoint = await session.add_waypoint(-111.5, 40.65)

        # The append did not wait for the lookup
        assert waypoint.name is None
        assert waypoint.name_status == NameStatus.PENDING

        await session.wait_for_names()
        named = session.store.get(waypoint.id)
        assert named.name == "Park City"
        assert named.name_status == NameStatus.RESOLVED

    asyncio.run(scenario())

    print("✓ Names filled in after the lookup")


def test_name_backfill_failure_uses_fallback():
    """Test that a failing lookup still leaves a non-empty label."""
    print("\n=== Testing Name Fallback ===")

    async def scenario():
        session, _ = make_session(geocoder=FakeGeocoder(fail=True))
        waypoint = await session.add_waypoint(-111.891, 40.7608)
        await session.wait_for_names()

        named = session.store.get(waypoint.id)
        assert named.name == "Waypoint (40.7608, -111.8910)"
        assert named.name_status == NameStatus.FALLBACK

        # No geocoder at all: fallback immediately
        bare, _ = make_session()
        waypoint = await bare.add_waypoint(2.0, 1.0)
        assert waypoint.name == "Waypoint (1.0000, 2.0000)"

    asyncio.run(scenario())

    print("✓ Failed lookups fall back to coordinates")


def test_manual_name_beats_late_lookup():
    """Test that a user rename is not overwritten by a slow lookup."""
    print("\n=== Testing Manual Rename ===")

    async def scenario():
        session, _ = make_session(geocoder=FakeGeocoder(label="Somewhere", delay=0.01))
        waypoint = await session.add_waypoint(1.0, 1.0)
        await session.update_waypoint(waypoint.id, name="My Stop")
        await session.wait_for_names()

        assert session.store.get(waypoint.id).name == "My Stop"

    asyncio.run(scenario())

    print("✓ Manual names win")


def test_blank_names_are_ignored():
    """Test that whitespace-only names neither name nor pin a waypoint."""
    print("\n=== Testing Blank Names ===")

    async def scenario():
        session, _ = make_session(geocoder=FakeGeocoder(label="Park City"))
        waypoint = await session.add_waypoint(-111.5, 40.65, name="   ")
        assert waypoint.name_status == NameStatus.PENDING

        await session.wait_for_names()
        await session.update_waypoint(waypoint.id, name="  \t ")
        kept = session.store.get(waypoint.id)
        assert kept.name == "Park City"
        assert kept.name_status == NameStatus.RESOLVED

        renamed = await session.update_waypoint(waypoint.id, name="  Trailhead ")
        assert renamed.name == "Trailhead"
        assert renamed.name_status == NameStatus.MANUAL

    asyncio.run(scenario())

    print("✓ Blank names ignored")


def test_moved_pending_waypoint_is_renamed_for_new_position():
    """Test that dragging a waypoint mid-lookup names it for where it ended up."""
    print("\n=== Testing Drag During Lookup ===")

    class PlaceGeocoder(FakeGeocoder):
        async def reverse_geocode(self, longitude, latitude):
            await super().reverse_geocode(longitude, latitude)
            return f"Place {longitude}"

    async def scenario():
        geocoder = PlaceGeocoder(delay=0.01)
        session, _ = make_session(geocoder=geocoder)
        waypoint = await session.add_waypoint(1.0, 1.0)
        await session.update_waypoint(waypoint.id, longitude=2.0, latitude=2.0)
        await session.wait_for_names()

        named = session.store.get(waypoint.id)
        assert named.coordinates == (2.0, 2.0)
        assert named.name == "Place 2.0"
        assert named.name_status == NameStatus.RESOLVED
        assert geocoder.calls == 2

        # Moving a named waypoint keeps its name
        await session.update_waypoint(waypoint.id, longitude=3.0, latitude=3.0)
        await session.wait_for_names()
        assert session.store.get(waypoint.id).name == "Place 2.0"
        assert geocoder.calls == 2

    asyncio.run(scenario())

    print("✓ Moved waypoints named for their new position")


def test_malformed_directions_payload_clears_loading():
    """Test a 200 response with a broken geometry leaves no route and no spinner."""
    print("\n=== Testing Malformed Directions Payload ===")

    def handler(request):
        return httpx.Response(200, json={"code": "Ok", "routes": [
            {"distance": 10.0, "duration": 5.0, "geometry": None}]})

    async def scenario():
        provider = MapboxDirectionsClient(
            "pk.test", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        session, _ = make_session(provider=provider)
        await session.add_waypoint(0.0, 0.0, name="A")
        await session.add_waypoint(1.0, 1.0, name="B")

        snapshot = session.snapshot()
        assert snapshot["route"] is None
        assert snapshot["loading"] is False
        assert snapshot["cost"] is None
        await provider.close()

    asyncio.run(scenario())

    print("✓ Broken provider payloads degrade to no route")


def test_failed_resolution_retries_on_next_mutation():
    """Test that a failed lookup is not cached."""
    print("\n=== Testing Resolution Retry ===")

    async def scenario():
        provider = FakeDirections(empty=True)
        session, _ = make_session(provider=provider)
        a = await session.add_waypoint(0.0, 0.0, name="A")
        await session.add_waypoint(1.0, 1.0, name="B")
        assert session.resolution.route is None

        provider.empty = False
        await session.update_waypoint(a.id, name="Start")
        assert session.resolution.route is not None
        assert len(provider.calls) == 2

    asyncio.run(scenario())

    print("✓ Failed resolution retried")


def test_load_waypoints():
    """Test loading a saved sequence into the session."""
    print("\n=== Testing Load ===")

    async def scenario():
        session, provider = make_session()
        await session.load_waypoints(
            [
                Waypoint(id="w1", longitude=0.0, latitude=0.0, name="A", name_status=NameStatus.MANUAL),
                Waypoint(id="w2", longitude=1.0, latitude=1.0, name="B", name_status=NameStatus.MANUAL),
            ],
            route_id="route-1",
        )
        snapshot = session.snapshot()
        assert snapshot["route_id"] == "route-1"
        assert [w["id"] for w in snapshot["waypoints"]] == ["w1", "w2"]
        assert snapshot["route"]["distance"] == 2000.0
        assert snapshot["cost"]["gallons_needed"] > 0

    asyncio.run(scenario())

    print("✓ Saved sequences load into a session")


def test_registry_eviction():
    """Test session registry bookkeeping."""
    print("\n=== Testing Session Registry ===")

    async def scenario():
        registry = SessionRegistry(RouteResolver(FakeDirections()), max_sessions=2)
        first = registry.create()
        second = registry.create()
        assert registry.get(first.id) is first

        # first was touched last, so second is evicted
        registry.create()
        assert len(registry) == 2
        assert registry.get(second.id) is None
        assert registry.get(first.id) is first

        assert await registry.drop(first.id) is True
        assert await registry.drop(first.id) is False

    asyncio.run(scenario())

    print("✓ Registry evicts least recently used sessions")


def run_all_tests():
    """Run all planner session tests."""
    print("\n" + "=" * 60)
    print("PLANNER SESSION - TEST SUITE")
    print("=" * 60)

    test_route_follows_waypoints()
    test_cost_follows_settings()
    test_name_backfill()
    test_name_backfill_failure_uses_fallback()
    test_manual_name_beats_late_lookup()
    test_blank_names_are_ignored()
    test_moved_pending_waypoint_is_renamed_for_new_position()
    test_malformed_directions_payload_clears_loading()
    test_failed_resolution_retries_on_next_mutation()
    test_load_waypoints()
    test_registry_eviction()

    print("\n" + "=" * 60)
    print("✅ ALL PLANNER SESSION TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    run_all_tests()
