"""
Test the HTTP clients against canned provider responses.
"""

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from ..clients.mapbox_directions import MapboxDirectionsClient
from ..clients.mapbox_search import MapboxSearchClient, rank_suggestions
from ..clients.osrm import OSRMDirectionsClient
from ..models.search import SearchSuggestion

ROUTE_BODY = {
    "code": "Ok",
    "routes": [
        {
            "distance": 80467.2,
            "duration": 3600.0,
            "geometry": {
                "type": "LineString",
                "coordinates": [[-111.89, 40.76], [-111.75, 40.5], [-111.65, 40.23]],
            },
        }
    ],
}


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_mapbox_directions_request():
    """Test URL shape, parameters and parsing."""
    print("\n=== Testing Mapbox Directions ===")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=ROUTE_BODY)

    async def scenario():
        client = MapboxDirectionsClient(
            "pk.test", base_url="https://directions.test/v5/mapbox", http_client=mock_client(handler)
        )
        route = await client.get_route([(-111.89, 40.76), (-111.65, 40.23)])
        await client.close()
        return route

    route = asyncio.run(scenario())

    assert len(seen) == 1
    assert seen[0].url.path == "/v5/mapbox/driving/-111.89,40.76;-111.65,40.23"
    assert seen[0].url.params["geometries"] == "geojson"
    assert seen[0].url.params["overview"] == "full"
    assert seen[0].url.params["access_token"] == "pk.test"

    assert route.distance == 80467.2
    assert route.duration == 3600.0
    assert len(route.geometry.coordinates) == 3

    print("✓ Directions request and parsing work")


def test_mapbox_directions_no_route():
    """Test provider error codes become None."""
    print("\n=== Testing Mapbox No Route ===")

    def handler(request):
        return httpx.Response(200, json={"code": "NoRoute", "message": "No route found", "routes": []})

    async def scenario():
        client = MapboxDirectionsClient("pk.test", http_client=mock_client(handler))
        return await client.get_route([(0.0, 0.0), (1.0, 1.0)])

    assert asyncio.run(scenario()) is None

    print("✓ Zero routes returns None")


def test_mapbox_directions_coordinate_limit():
    """Test the 25-coordinate request limit."""
    print("\n=== Testing Coordinate Limit ===")

    def handler(request):
        raise AssertionError("request should not be sent")

    async def scenario():
        client = MapboxDirectionsClient("pk.test", http_client=mock_client(handler))
        with pytest.raises(ValueError):
            await client.get_route([(0.0, float(i)) for i in range(26)])

    asyncio.run(scenario())

    with pytest.raises(ValueError):
        MapboxDirectionsClient("")

    print("✓ Oversized requests rejected")


def test_osrm_directions():
    """Test the OSRM route service path and status handling."""
    print("\n=== Testing OSRM Directions ===")
    seen = []

    def handler(request):
        seen.append(request)
        if "0,0" in request.url.path:
            return httpx.Response(400, json={"code": "InvalidQuery", "message": "bad"})
        return httpx.Response(200, json=ROUTE_BODY)

    async def scenario():
        client = OSRMDirectionsClient(base_url="https://osrm.test", http_client=mock_client(handler))
        ok = await client.get_route([(-111.89, 40.76), (-111.65, 40.23)])
        bad = await client.get_route([(0, 0), (1, 1)])
        return ok, bad

    ok, bad = asyncio.run(scenario())

    assert seen[0].url.path == "/route/v1/driving/-111.89,40.76;-111.65,40.23"
    assert ok.distance == 80467.2
    assert bad is None

    print("✓ OSRM requests and failures handled")


def test_transport_errors_propagate():
    """Test that directions clients surface httpx errors to the resolver."""
    print("\n=== Testing Transport Errors ===")

    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async def scenario():
        client = MapboxDirectionsClient("pk.test", http_client=mock_client(handler))
        with pytest.raises(httpx.ConnectError):
            await client.get_route([(0.0, 0.0), (1.0, 1.0)])

    asyncio.run(scenario())

    print("✓ Transport errors propagate")


def test_malformed_route_payloads():
    """Test 200 responses with a non-object body or a broken geometry."""
    print("\n=== Testing Malformed Route Payloads ===")

    def route_with(geometry):
        return {"code": "Ok", "routes": [{"distance": 10.0, "duration": 5.0, "geometry": geometry}]}

    def clients_returning(body):
        def handler(request):
            return httpx.Response(200, json=body)

        return [
            MapboxDirectionsClient("pk.test", http_client=mock_client(handler)),
            OSRMDirectionsClient(base_url="https://osrm.test", http_client=mock_client(handler)),
        ]

    async def scenario():
        points = [(0.0, 0.0), (1.0, 1.0)]
        for body in ([], "maintenance"):
            for client in clients_returning(body):
                assert await client.get_route(points) is None
        for body in (route_with(None), route_with("_p~iF~ps|U_ulLnnqC")):
            for client in clients_returning(body):
                with pytest.raises(ValidationError):
                    await client.get_route(points)

    asyncio.run(scenario())

    print("✓ Malformed payloads give None or a validation error")


def test_rank_suggestions():
    """Test type ranking with stable order inside a type."""
    print("\n=== Testing Suggestion Ranking ===")

    suggestions = [
        SearchSuggestion(name="Main St", mapbox_id="1", feature_type="address"),
        SearchSuggestion(name="Coffee", mapbox_id="2", feature_type="poi"),
        SearchSuggestion(name="Utah", mapbox_id="3", feature_type="region"),
        SearchSuggestion(name="Ogden", mapbox_id="4", feature_type="place"),
        SearchSuggestion(name="Provo", mapbox_id="5", feature_type="place"),
        SearchSuggestion(name="Mystery", mapbox_id="6", feature_type=None),
    ]
    ranked = rank_suggestions(suggestions)

    assert [s.mapbox_id for s in ranked] == ["4", "5", "3", "1", "2", "6"]

    print("✓ Places rank first, unknown types last")


def test_suggest():
    """Test suggest parameters, ranking and failure fallback."""
    print("\n=== Testing Suggest ===")
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.params["q"] == "boom":
            return httpx.Response(500, text="error")
        return httpx.Response(
            200,
            json={
                "suggestions": [
                    {"name": "Salt Lake Coffee", "mapbox_id": "poi.1", "feature_type": "poi"},
                    {"name": "Salt Lake City", "mapbox_id": "place.1", "feature_type": "place",
                     "place_formatted": "Utah, United States"},
                    {"name": "No id", "feature_type": "place"},
                ]
            },
        )

    async def scenario():
        client = MapboxSearchClient(
            "pk.test", base_url="https://search.test/v1", http_client=mock_client(handler)
        )
        results = await client.suggest(
            "salt lake", "token-1", limit=3, proximity=(-111.9, 40.7), countries=["us"]
        )
        failed = await client.suggest("boom", "token-1")
        return results, failed

    results, failed = asyncio.run(scenario())

    params = seen[0].url.params
    assert seen[0].url.path == "/v1/suggest"
    assert params["session_token"] == "token-1"
    assert params["limit"] == "3"
    assert params["proximity"] == "-111.9,40.7"
    assert params["country"] == "us"

    assert [s.mapbox_id for s in results] == ["place.1", "poi.1"]
    assert results[0].place_formatted == "Utah, United States"
    assert failed == []

    print("✓ Suggestions fetched and re-ranked")


def test_retrieve():
    """Test retrieve parsing and unusable responses."""
    print("\n=== Testing Retrieve ===")

    bodies = {
        "good": {
            "features": [
                {
                    "id": "place.1",
                    "geometry": {"coordinates": [-111.891, 40.7608]},
                    "properties": {
                        "name": "Salt Lake City",
                        "feature_type": "place",
                        "place_formatted": "Utah, United States",
                    },
                }
            ]
        },
        "empty": {"features": []},
        "no-coords": {"features": [{"geometry": {}, "properties": {"name": "x"}}]},
        "out-of-range": {"features": [{"geometry": {"coordinates": [500, 0]}, "properties": {}}]},
    }

    def handler(request):
        key = request.url.path.rsplit("/", 1)[-1]
        if key not in bodies:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=bodies[key])

    async def scenario():
        client = MapboxSearchClient("pk.test", http_client=mock_client(handler))
        return {
            key: await client.retrieve(key, "token-1")
            for key in ("good", "empty", "no-coords", "out-of-range", "missing")
        }

    results = asyncio.run(scenario())

    good = results["good"]
    assert good.name == "Salt Lake City"
    assert good.longitude == -111.891
    assert good.latitude == 40.7608
    assert good.feature_type == "place"
    for key in ("empty", "no-coords", "out-of-range", "missing"):
        assert results[key] is None

    print("✓ Retrieve returns a point or None")


def test_reverse_geocode_labels():
    """Test city, feature name, unnamed and failure labels."""
    print("\n=== Testing Reverse Geocode ===")

    def handler(request):
        lon = request.url.params["longitude"]
        if lon == "1.0":
            return httpx.Response(200, json={"features": [{"properties": {
                "name": "123 Main St", "context": {"place": {"name": "Provo"}}}}]})
        if lon == "2.0":
            return httpx.Response(200, json={"features": [{"properties": {"name": "Arches"}}]})
        if lon == "3.0":
            return httpx.Response(200, json={"features": []})
        return httpx.Response(503, text="unavailable")

    async def scenario():
        client = MapboxSearchClient("pk.test", http_client=mock_client(handler))
        return [
            await client.reverse_geocode(1.0, 10.0),
            await client.reverse_geocode(2.0, 10.0),
            await client.reverse_geocode(3.0, 10.0),
            await client.reverse_geocode(4.0, 10.0),
        ]

    labels = asyncio.run(scenario())

    assert labels == [
        "Provo",
        "Arches",
        "Location at 10.00, 3.00",
        "Waypoint (10.0000, 4.0000)",
    ]

    print("✓ Reverse geocode always yields a label")


def run_all_tests():
    """Run all provider client tests."""
    print("\n" + "=" * 60)
    print("PROVIDER CLIENTS - TEST SUITE")
    print("=" * 60)

    test_mapbox_directions_request()
    test_mapbox_directions_no_route()
    test_mapbox_directions_coordinate_limit()
    test_osrm_directions()
    test_transport_errors_propagate()
    test_malformed_route_payloads()
    test_rank_suggestions()
    test_suggest()
    test_retrieve()
    test_reverse_geocode_labels()

    print("\n" + "=" * 60)
    print("✅ ALL PROVIDER CLIENT TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    run_all_tests()
