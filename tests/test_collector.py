"""Tests for the telemetry providers."""

import asyncio
import json
from unittest.mock import MagicMock, patch
from urllib.error import URLError

import pytest

from apps.telemetry.collector import (
    ClientReportedGeolocation,
    Coordinates,
    GeolocationError,
    GeolocationOptions,
    IpGeoLookupError,
    IpUnavailableError,
    collect_device_details,
    default_geolocation_options,
    lookup_ip,
    lookup_ip_geo,
    request_device_location,
)


def _response(payload, status: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.read.return_value = json.dumps(payload).encode()
    return mock_response


class SlowGeolocation:
    """Provider that never answers within any reasonable timeout."""

    async def get_current_position(self, options: GeolocationOptions) -> Coordinates:
        await asyncio.sleep(5)
        return Coordinates(latitude=1.0, longitude=2.0)


class BrokenGeolocation:
    """Provider that fails with something other than a geolocation error."""

    async def get_current_position(self, options: GeolocationOptions) -> Coordinates:
        msg = "sensor driver crashed"
        raise RuntimeError(msg)


class TestLookupIp:
    """IP lookup provider."""

    @pytest.mark.asyncio
    async def test_returns_ip(self) -> None:
        with patch("apps.telemetry.collector.urlopen", return_value=_response({"ip": "203.0.113.7"})) as mock_open:
            ip = await lookup_ip()

        assert ip == "203.0.113.7"
        assert mock_open.call_args[0][0].full_url == "https://ip.test.invalid/?format=json"

    @pytest.mark.asyncio
    async def test_missing_ip_field(self) -> None:
        with (
            patch("apps.telemetry.collector.urlopen", return_value=_response({"address": "x"})),
            pytest.raises(IpUnavailableError),
        ):
            await lookup_ip()

    @pytest.mark.asyncio
    async def test_non_2xx_status(self) -> None:
        with (
            patch("apps.telemetry.collector.urlopen", return_value=_response({"ip": "1.2.3.4"}, status=502)),
            pytest.raises(IpUnavailableError, match="HTTP 502"),
        ):
            await lookup_ip()

    @pytest.mark.asyncio
    async def test_network_failure(self) -> None:
        with (
            patch("apps.telemetry.collector.urlopen", side_effect=URLError("connection refused")),
            pytest.raises(IpUnavailableError),
        ):
            await lookup_ip()


class TestLookupIpGeo:
    """IP-geo provider."""

    @pytest.mark.asyncio
    async def test_returns_geo_fields(self) -> None:
        payload = {"ip": "203.0.113.7", "city": "Nairobi", "region": "Nairobi County", "country": "KE", "org": "AS1"}
        with patch("apps.telemetry.collector.urlopen", return_value=_response(payload)) as mock_open:
            geo = await lookup_ip_geo("203.0.113.7")

        assert geo == {
            "city": "Nairobi",
            "region": "Nairobi County",
            "country": "KE",
            "postal": None,
            "timezone": None,
        }
        url = mock_open.call_args[0][0].full_url
        assert url == "https://geo.test.invalid/203.0.113.7/json?token=test-token"

    @pytest.mark.asyncio
    async def test_requires_token(self, settings) -> None:
        settings.IPINFO_TOKEN = ""
        with patch("apps.telemetry.collector.urlopen") as mock_open, pytest.raises(IpGeoLookupError):
            await lookup_ip_geo("203.0.113.7")
        mock_open.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_object_body(self) -> None:
        with (
            patch("apps.telemetry.collector.urlopen", return_value=_response(["not", "an", "object"])),
            pytest.raises(IpGeoLookupError),
        ):
            await lookup_ip_geo("203.0.113.7")


class TestDeviceLocation:
    """Device geolocation requests."""

    def test_default_options(self) -> None:
        options = default_geolocation_options()
        assert options.high_accuracy is True
        assert options.timeout_ms == 5000
        assert options.max_cache_age_ms == 0

    @pytest.mark.asyncio
    async def test_reported_fix(self) -> None:
        provider = ClientReportedGeolocation({"latitude": "-1.2921", "longitude": 36.8219, "accuracy": 15})
        coordinates = await request_device_location(provider)
        assert coordinates == Coordinates(latitude=-1.2921, longitude=36.8219, accuracy=15.0)

    @pytest.mark.asyncio
    async def test_permission_denied_gives_null_coordinates(self) -> None:
        provider = ClientReportedGeolocation({"error": GeolocationError.PERMISSION_DENIED})
        assert await request_device_location(provider) == Coordinates()

    @pytest.mark.asyncio
    async def test_nothing_reported_gives_null_coordinates(self) -> None:
        assert await request_device_location(ClientReportedGeolocation(None)) == Coordinates()

    @pytest.mark.asyncio
    async def test_timeout_gives_null_coordinates(self) -> None:
        options = GeolocationOptions(timeout_ms=10)
        assert await request_device_location(SlowGeolocation(), options) == Coordinates()

    @pytest.mark.asyncio
    async def test_unexpected_provider_failure_gives_null_coordinates(self) -> None:
        assert await request_device_location(BrokenGeolocation()) == Coordinates()

    @pytest.mark.asyncio
    async def test_missing_coordinates_raise_position_unavailable(self) -> None:
        provider = ClientReportedGeolocation({"latitude": 1.0})
        with pytest.raises(GeolocationError) as exc_info:
            await provider.get_current_position(GeolocationOptions())
        assert exc_info.value.code == GeolocationError.POSITION_UNAVAILABLE


class TestDeviceDetails:
    """Device metadata collection."""

    def test_merges_headers_and_reported_fields(self, rf) -> None:
        request = rf.post(
            "/api/contact/",
            HTTP_USER_AGENT="Mozilla/5.0 (Macintosh)",
            HTTP_ACCEPT_LANGUAGE="en-GB,en;q=0.9",
            HTTP_DNT="1",
        )
        details = collect_device_details(
            request,
            {"screenResolution": "1920x1080", "platform": "MacIntel", "cookiesEnabled": "true"},
        )

        assert details == {
            "userAgent": "Mozilla/5.0 (Macintosh)",
            "screenResolution": "1920x1080",
            "language": "en-GB",
            "timezone": None,
            "platform": "MacIntel",
            "vendor": None,
            "cookiesEnabled": True,
            "doNotTrack": "1",
            "online": None,
        }

    def test_nothing_reported(self, rf) -> None:
        details = collect_device_details(rf.post("/api/contact/"), None)
        assert details["userAgent"] is None
        assert details["language"] is None
        assert details["doNotTrack"] is None

    def test_reported_language_wins(self, rf) -> None:
        request = rf.post("/api/contact/", HTTP_ACCEPT_LANGUAGE="fr-FR")
        assert collect_device_details(request, {"language": "sw-KE"})["language"] == "sw-KE"
