"""
Telemetry collection from external providers.

Each contact submission is enriched with independent signal bundles:
  1. The public IP, from the IP lookup provider (ipify by default).
  2. Device geolocation, reported by the visitor's browser.
  3. IP-derived geo metadata, from the IP-geo provider (ipinfo by default).
  4. Device metadata, read from the request. This one never fails.

Every provider has its own failure mode and raises its own ``TelemetryError``
subclass, so callers decide per bundle whether a failure is tolerated.
"""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from typing import Protocol
from urllib.error import HTTPError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_IP_LOOKUP_URL = "https://api.ipify.org?format=json"
DEFAULT_IP_GEO_URL = "https://ipinfo.io/{ip}/json"

GEO_FIELDS = ("city", "region", "country", "postal", "timezone")


class TelemetryError(RuntimeError):
    """Base class for telemetry provider failures."""


class IpUnavailableError(TelemetryError):
    """The public IP could not be determined."""


class IpGeoLookupError(TelemetryError):
    """The IP-geo provider did not return geo metadata."""


class GeolocationError(TelemetryError):
    """The device refused or failed to produce a position fix."""

    PERMISSION_DENIED = "permission-denied"
    POSITION_UNAVAILABLE = "position-unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        super().__init__(message or code)


@dataclass(frozen=True)
class GeolocationOptions:
    """Acquisition policy handed to the geolocation provider."""

    high_accuracy: bool = True
    timeout_ms: int = 5000
    max_cache_age_ms: int = 0


@dataclass(frozen=True)
class Coordinates:
    latitude: float | None = None
    longitude: float | None = None
    accuracy: float | None = None

    def as_dict(self) -> dict:
        return asdict(self)


class GeolocationProvider(Protocol):
    async def get_current_position(self, options: GeolocationOptions) -> Coordinates: ...


def _optional_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ClientReportedGeolocation:
    """
    Geolocation fix posted by the visitor's browser alongside the form.

    The browser runs the actual position request with the options from
    ``default_geolocation_options()`` and posts either
    ``{"latitude", "longitude", "accuracy"}`` or ``{"error": <code>}``.
    """

    def __init__(self, payload: dict | None) -> None:
        self.payload = payload if isinstance(payload, dict) else None

    async def get_current_position(self, options: GeolocationOptions) -> Coordinates:
        if not self.payload:
            raise GeolocationError(GeolocationError.UNSUPPORTED, "No device location was reported")

        error = self.payload.get("error")
        if error:
            raise GeolocationError(str(error))

        latitude = _optional_float(self.payload.get("latitude"))
        longitude = _optional_float(self.payload.get("longitude"))
        if latitude is None or longitude is None:
            raise GeolocationError(
                GeolocationError.POSITION_UNAVAILABLE,
                "Reported device location has no usable coordinates",
            )
        return Coordinates(
            latitude=latitude,
            longitude=longitude,
            accuracy=_optional_float(self.payload.get("accuracy")),
        )


def default_geolocation_options() -> GeolocationOptions:
    """Favor accuracy, never accept a cached fix, give up after the configured timeout."""
    return GeolocationOptions(
        high_accuracy=True,
        timeout_ms=getattr(settings, "GEOLOCATION_TIMEOUT_MS", 5000),
        max_cache_age_ms=0,
    )


# ---------------------------------------------------------------------------
# HTTP providers
# ---------------------------------------------------------------------------
def _fetch_json_sync(url: str, error_class: type[TelemetryError]) -> dict:
    """
    GET *url* and decode the JSON body (synchronous, for executor use).

    Raises *error_class* on non-2xx status, network failure or a body that
    is not a JSON object.
    """
    timeout = getattr(settings, "TELEMETRY_HTTP_TIMEOUT", 10)
    req = Request(url, headers={"Accept": "application/json"})  # noqa: S310

    try:
        resp = urlopen(req, timeout=timeout)  # noqa: S310
        status = getattr(resp, "status", 200)
        if not 200 <= status < 300:
            msg = f"{url} returned HTTP {status}"
            raise error_class(msg)
        data = json.loads(resp.read())
    except TelemetryError:
        raise
    except HTTPError as exc:
        msg = f"{url} returned HTTP {exc.code}"
        raise error_class(msg) from exc
    except Exception as exc:
        msg = f"Request to {url} failed: {exc}"
        raise error_class(msg) from exc

    if not isinstance(data, dict):
        msg = f"{url} returned an unexpected payload"
        raise error_class(msg)
    return data


async def lookup_ip() -> str:
    """
    Return the public IP reported by the IP lookup provider.

    Raises:
        IpUnavailableError: If the provider fails or omits the ``ip`` field.
    """
    url = getattr(settings, "IP_LOOKUP_URL", DEFAULT_IP_LOOKUP_URL)
    logger.debug("Fetching IP address from %s", url)

    loop = asyncio.get_event_loop()
    data = await loop.run_in_executor(None, _fetch_json_sync, url, IpUnavailableError)

    ip = data.get("ip")
    if not ip:
        msg = f"{url} response did not include an IP address"
        raise IpUnavailableError(msg)
    return str(ip)


async def lookup_ip_geo(ip: str) -> dict:
    """
    Look up geo metadata for *ip* with the IP-geo provider.

    Returns a dict with the keys of ``GEO_FIELDS``; values the provider
    omitted are None.

    Raises:
        IpGeoLookupError: If no access token is configured or the call fails.
    """
    token = getattr(settings, "IPINFO_TOKEN", "")
    if not token:
        msg = "IPINFO_TOKEN is not configured"
        raise IpGeoLookupError(msg)

    template = getattr(settings, "IP_GEO_URL", DEFAULT_IP_GEO_URL)
    url = template.format(ip=quote(ip, safe=""))
    separator = "&" if "?" in url else "?"
    url = f"{url}{separator}{urlencode({'token': token})}"

    loop = asyncio.get_event_loop()
    data = await loop.run_in_executor(None, _fetch_json_sync, url, IpGeoLookupError)
    return {field: data.get(field) for field in GEO_FIELDS}


async def request_device_location(
    provider: GeolocationProvider,
    options: GeolocationOptions | None = None,
) -> Coordinates:
    """
    Ask *provider* for a position fix under *options*.

    Refusal, timeouts and any other provider failure never propagate: they
    are logged and an all-null ``Coordinates`` is returned instead.
    """
    options = options or default_geolocation_options()
    try:
        return await asyncio.wait_for(
            provider.get_current_position(options),
            timeout=options.timeout_ms / 1000,
        )
    except TimeoutError:
        logger.warning("Device location request timed out after %d ms", options.timeout_ms)
    except GeolocationError as exc:
        logger.warning("Device location unavailable (%s): %s", exc.code, exc)
    except Exception:
        logger.exception("Device location provider failed")
    return Coordinates()


# ---------------------------------------------------------------------------
# Device metadata
# ---------------------------------------------------------------------------
def _optional_bool(value) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def collect_device_details(request, reported: dict | None = None) -> dict:
    """
    Build the ``deviceDetails`` bundle from the request and browser-reported fields.

    Request headers win for the user agent and language; everything else
    comes from what the browser posted. Missing values are None.
    """
    reported = reported if isinstance(reported, dict) else {}
    headers = request.headers

    accept_language = headers.get("Accept-Language", "")
    header_language = accept_language.split(",")[0].split(";")[0].strip()

    do_not_track = reported.get("doNotTrack", headers.get("DNT"))

    return {
        "userAgent": headers.get("User-Agent") or reported.get("userAgent"),
        "screenResolution": reported.get("screenResolution"),
        "language": reported.get("language") or header_language or None,
        "timezone": reported.get("timezone"),
        "platform": reported.get("platform"),
        "vendor": reported.get("vendor"),
        "cookiesEnabled": _optional_bool(reported.get("cookiesEnabled")),
        "doNotTrack": None if do_not_track is None else str(do_not_track),
        "online": _optional_bool(reported.get("online")),
    }
