"""
Merge the telemetry bundles into the ``visitor_data`` document.

Failure policy per bundle:
  * IP lookup failed: ``ip`` is None and the IP-geo lookup is skipped.
  * Device location refused or timed out: null coordinates, carry on.
  * IP-geo lookup failed: no visitor data at all for this submission.

The last rule is stricter than the device-location one; the
contact message itself is still saved without telemetry.
"""

import asyncio
import logging
from datetime import datetime

from django.utils import timezone

from .collector import (
    GEO_FIELDS,
    Coordinates,
    GeolocationProvider,
    IpGeoLookupError,
    IpUnavailableError,
    lookup_ip,
    lookup_ip_geo,
    request_device_location,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def build_visitor_data(
    *,
    ip: str | None,
    coordinates: Coordinates,
    geo: dict,
    device_details: dict,
    captured_at: datetime | None = None,
) -> dict:
    """Assemble a normalized visitor data document from already-collected bundles."""
    location = coordinates.as_dict()
    for field in GEO_FIELDS:
        location[field] = geo.get(field) or UNKNOWN

    return {
        "ip": ip,
        "location": location,
        "deviceDetails": device_details,
        "timestamp": (captured_at or timezone.now()).isoformat(),
    }


async def gather_visitor_data(
    *,
    geolocation: GeolocationProvider,
    device_details: dict,
) -> dict | None:
    """
    Collect all telemetry bundles for one submission.

    The IP lookup and the device location request run concurrently; the
    IP-geo lookup needs the IP and runs afterwards.

    Returns:
        The visitor data dict, or None when the IP-geo lookup failed.
    """
    ip_result, coordinates = await asyncio.gather(
        lookup_ip(),
        request_device_location(geolocation),
        return_exceptions=True,
    )

    if isinstance(coordinates, BaseException):
        raise coordinates

    ip: str | None
    if isinstance(ip_result, IpUnavailableError):
        logger.warning("IP lookup failed, continuing without IP: %s", ip_result)
        ip = None
    elif isinstance(ip_result, BaseException):
        raise ip_result
    else:
        ip = ip_result

    geo: dict = {}
    if ip is not None:
        try:
            geo = await lookup_ip_geo(ip)
        except IpGeoLookupError as exc:
            logger.error("IP-geo lookup failed for %s, discarding visitor data: %s", ip, exc)
            return None

    visitor_data = build_visitor_data(
        ip=ip,
        coordinates=coordinates,
        geo=geo,
        device_details=device_details,
    )
    logger.info(
        "Visitor data collected (ip=%s, coordinates=%s)",
        ip or "n/a",
        "yes" if coordinates.latitude is not None else "no",
    )
    return visitor_data
