from datetime import datetime, timezone

import httpx
import pytest
from fastapi import HTTPException

from app.core import rate_limit
from app.core.config import settings
from app.core.enums import UserRole
from app.core.security import create_access_token, decode_access_token
from app.services import webhook
from app.services.locations import get_terminal, resolve_location_details
from app.utils import counters

YVR = "Vancouver International Airport (YVR)"


class FakeRedis:

    def __init__(self):
        self.values = {}
        self.expiry = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiry[key] = ex

    async def incr(self, key):
        self.values[key] = str(int(self.values.get(key, 0)) + 1)
        return int(self.values[key])

    async def expire(self, key, seconds):
        self.expiry[key] = seconds


class TestLocations:

    def test_terminal_defaults_fill_gaps(self):
        location = resolve_location_details(YVR)

        assert location.label == YVR
        assert location.address == "3211 Grant McConachie Way, Richmond, BC V7B 0A4, Canada"
        assert (location.lat, location.lng) == (49.1947, -123.1792)
        assert location.place_id == "ChIJm6MnhjQLhlQRhIA0hqzMaLo"

    def test_caller_values_win(self):
        location = resolve_location_details(YVR, address=" Domestic departures ", lat=49.19, lng=-123.18)

        assert location.address == "Domestic departures"
        assert (location.lat, location.lng) == (49.19, -123.18)

    def test_unknown_label(self):
        assert resolve_location_details("Langley (Any Address)").address is None
        assert resolve_location_details("", address="1 Main St").label == "1 Main St"
        assert resolve_location_details(None).label == "Location"

    def test_get_terminal(self):
        assert get_terminal(YVR).locality == "Richmond"
        assert get_terminal("Nowhere") is None
        assert get_terminal(None) is None


class TestSecurity:

    def test_token_round_trip(self):
        token = create_access_token("admin_1", "dispatch@example.com", [UserRole.ADMIN])
        user = decode_access_token(token)

        assert user.uid == "admin_1"
        assert user.email == "dispatch@example.com"
        assert user.has_role(UserRole.ADMIN)
        assert not user.has_role(UserRole.DRIVER)

    def test_expired_token(self):
        token = create_access_token("admin_1", roles=["admin"], expires_minutes=-5)
        with pytest.raises(HTTPException) as exc:
            decode_access_token(token)
        assert exc.value.status_code == 401


class TestCounters:

    def test_daily_key(self):
        now = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
        assert counters.daily_counter_key("quick_quotes", now) == "counter:quick_quotes:2026-10-19"

    @pytest.mark.asyncio
    async def test_without_redis(self, monkeypatch):
        monkeypatch.setattr(counters, "get_redis", lambda: None)
        assert await counters.increment_daily_counter("quick_quotes") is None

    @pytest.mark.asyncio
    async def test_increment(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(counters, "get_redis", lambda: fake)

        assert await counters.increment_daily_counter("quick_quotes") == 1
        assert await counters.increment_daily_counter("quick_quotes") == 2
        key = counters.daily_counter_key("quick_quotes")
        assert fake.expiry[key] == counters.COUNTER_TTL


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limit_enforced(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)
        monkeypatch.setattr(settings, "RATE_LIMIT", 2)

        await rate_limit.check_rate_limit("quick:10.0.0.1")
        await rate_limit.check_rate_limit("quick:10.0.0.1")
        with pytest.raises(HTTPException) as exc:
            await rate_limit.check_rate_limit("quick:10.0.0.1")
        assert exc.value.status_code == 429

        await rate_limit.check_rate_limit("quick:10.0.0.2")
        assert fake.expiry["rl:quick:10.0.0.1"] == settings.RATE_LIMIT_WINDOW

    @pytest.mark.asyncio
    async def test_skipped_without_redis(self, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: None)
        await rate_limit.check_rate_limit("quick:10.0.0.1")


class TestWebhook:

    @pytest.fixture
    def mock_transport(self, monkeypatch):
        """Route the webhook client through a handler and skip the backoff sleeps."""
        real_client = httpx.AsyncClient
        delays = []

        async def no_sleep(seconds):
            delays.append(seconds)

        def install(handler):
            monkeypatch.setattr(
                webhook.httpx, "AsyncClient",
                lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
            )
            return delays

        monkeypatch.setattr(webhook.asyncio, "sleep", no_sleep)
        monkeypatch.setattr(settings, "WEBHOOK_URL", "https://hooks.example.com/dispatch")
        return install

    @pytest.mark.asyncio
    async def test_no_url_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "WEBHOOK_URL", "")
        assert await webhook.send_webhook({"event": "quick_quote_fallback"}) is False

    @pytest.mark.asyncio
    async def test_delivered(self, mock_transport):
        received = []

        def handler(request):
            received.append(request)
            return httpx.Response(204)

        mock_transport(handler)
        payload = webhook.build_fallback_notification(
            log_id="abc123",
            pickup_address="123 Main St, Abbotsford",
            dropoff_address="Downtown Vancouver",
            passengers=2,
            estimate=170,
            pricing_source="fallback",
        )

        assert await webhook.send_webhook(payload) is True
        assert len(received) == 1
        assert str(received[0].url) == "https://hooks.example.com/dispatch"
        assert "Estimate: $170.00" in payload["text"]
        assert payload["to"] == settings.ADMIN_NOTIFICATION_EMAIL

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self, mock_transport):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectTimeout("timed out", request=request)
            if len(attempts) == 2:
                return httpx.Response(502)
            return httpx.Response(200)

        delays = mock_transport(handler)

        assert await webhook.send_webhook({"event": "quick_quote_fallback", "log_id": "x"}, retries=3) is True
        assert len(attempts) == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up(self, mock_transport):
        delays = mock_transport(lambda request: httpx.Response(500))

        assert await webhook.send_webhook({"event": "quick_quote_fallback"}, retries=2) is False
        assert delays == [1.0]
