import httpx
import pytest

from app.core.config import settings
from app.core.errors import MapsError
from app.schemas.pricing import LatLng
from app.services.maps import GoogleDirectionsProvider, encode_place, select_shortest_route


def _route(meters, seconds):
    return {"legs": [{"distance": {"value": meters}, "duration": {"value": seconds}}]}


def _provider(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleDirectionsProvider(api_key=api_key, client=client)


class TestEncodePlace:

    def test_address_is_trimmed(self):
        assert encode_place("  3211 Grant McConachie Way ") == "3211 Grant McConachie Way"

    def test_empty_address(self):
        with pytest.raises(MapsError) as exc:
            encode_place("   ")
        assert exc.value.code == "EMPTY_ADDRESS"
        assert exc.value.status_code == 400

    def test_coordinates(self):
        assert encode_place(LatLng(lat=49.1947, lng=-123.1792)) == "49.1947,-123.1792"
        assert encode_place({"lat": 49, "lng": -122.5}) == "49,-122.5"

    @pytest.mark.parametrize("value", [
        {"lat": "49.1", "lng": -123.1},
        {"lat": 49.1},
        {"lat": float("nan"), "lng": -123.1},
        42,
    ])
    def test_invalid_coordinates(self, value):
        with pytest.raises(MapsError) as exc:
            encode_place(value)
        assert exc.value.code == "INVALID_COORDINATES"


class TestSelectShortestRoute:

    def test_picks_shortest_alternative(self):
        payload = {"status": "OK", "routes": [_route(52000, 2700), _route(35123, 1830), _route(40000, 1500)]}
        result = select_shortest_route(payload)

        assert result.distance_km == 35.12
        assert result.duration_minutes == 31

    @pytest.mark.parametrize("meters,expected_km", [
        (12125, 12.13),
        (12135, 12.14),
        (12124, 12.12),
        (1005, 1.01),
    ])
    def test_distance_rounds_half_up(self, meters, expected_km):
        result = select_shortest_route({"status": "OK", "routes": [_route(meters, 600)]})
        assert result.distance_km == expected_km

    def test_skips_unusable_legs(self):
        payload = {"status": "OK", "routes": [
            {"legs": []},
            {"legs": [{"distance": {}, "duration": {"value": 100}}]},
            {"legs": [{"distance": {"value": "abc"}, "duration": {"value": 100}}]},
            _route(0, 100),
            _route(12000, 900),
        ]}
        result = select_shortest_route(payload)
        assert result.distance_km == 12
        assert result.duration_minutes == 15

    def test_upstream_status_not_ok(self):
        with pytest.raises(MapsError) as exc:
            select_shortest_route({"status": "ZERO_RESULTS", "routes": []})
        assert exc.value.code == "NO_ROUTE_FOUND"
        assert exc.value.status_code == 422
        assert exc.value.details == "ZERO_RESULTS"

    def test_no_usable_route(self):
        with pytest.raises(MapsError) as exc:
            select_shortest_route({"status": "OK", "routes": [{"legs": [{}]}]})
        assert exc.value.code == "NO_ROUTE_FOUND"

    def test_malformed_payload(self):
        with pytest.raises(MapsError) as exc:
            select_shortest_route(["not", "a", "dict"])
        assert exc.value.code == "INVALID_ROUTE_RESPONSE"


class TestGoogleDirectionsProvider:

    @pytest.mark.asyncio
    async def test_defaults_read_current_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "DIRECTIONS_API_URL", "https://directions.example.com/json")
        monkeypatch.setattr(settings, "DIRECTIONS_REGION", "US")
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            return httpx.Response(200, json={"status": "OK", "routes": [_route(1000, 60)]})

        provider = _provider(handler)
        await provider.get_driving_distance("1 Main St", "2 Main St")

        assert provider.base_url == "https://directions.example.com/json"
        assert seen[0].url.host == "directions.example.com"
        assert seen[0].url.params["region"] == "US"

    @pytest.mark.asyncio
    async def test_explicit_arguments_win(self):
        provider = GoogleDirectionsProvider(api_key="k", base_url="https://other.example.com", region="MX", timeout=2.5)

        assert provider.base_url == "https://other.example.com"
        assert provider.region == "MX"
        assert provider._client.timeout.read == 2.5
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        seen = {}

        def handler(request: httpx.Request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"status": "OK", "routes": [_route(35000, 1800)]})

        provider = _provider(handler)
        result = await provider.get_driving_distance("1 Main St, Abbotsford", LatLng(lat=49.0252, lng=-122.3601))
        await provider.aclose()

        assert result.distance_km == 35
        assert result.duration_minutes == 30
        assert seen["origin"] == "1 Main St, Abbotsford"
        assert seen["destination"] == "49.0252,-122.3601"
        assert seen["mode"] == "driving"
        assert seen["alternatives"] == "true"
        assert seen["region"] == "CA"
        assert seen["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_http_failure(self):
        provider = _provider(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("1 Main St", "2 Main St")
        assert exc.value.code == "DIRECTIONS_REQUEST_FAILED"
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("1 Main St", "2 Main St")
        assert exc.value.code == "DIRECTIONS_REQUEST_FAILED"
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        provider = _provider(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("1 Main St", "2 Main St")
        assert exc.value.code == "INVALID_ROUTE_RESPONSE"

    @pytest.mark.asyncio
    async def test_no_route(self):
        provider = _provider(lambda request: httpx.Response(200, json={"status": "NOT_FOUND"}))
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("1 Main St", "2 Main St")
        assert exc.value.code == "NO_ROUTE_FOUND"

    @pytest.mark.asyncio
    async def test_missing_api_key_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        provider = _provider(handler, api_key="")
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("1 Main St", "2 Main St")
        assert exc.value.code == "MISSING_MAPS_SERVER_KEY"
        assert calls == []

    @pytest.mark.asyncio
    async def test_empty_address_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        provider = _provider(handler)
        with pytest.raises(MapsError) as exc:
            await provider.get_driving_distance("", "2 Main St")
        assert exc.value.code == "EMPTY_ADDRESS"
        assert calls == []
