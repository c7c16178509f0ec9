"""
Read-side normalization of stored submissions into display rows.

Stored records are schema-loose: ``visitor_data`` may be missing entirely
and legacy rows may carry a timestamp in any format (or none). Every row
the dashboard sees goes through ``row_from_submission`` so downstream code
never has to care.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import urlencode

from django.utils import timezone
from django.utils.dateparse import parse_datetime

MAP_URL = "https://www.google.com/maps"
NOT_AVAILABLE = "N/A"


def parse_timestamp(value) -> datetime | None:
    """
    Parse a stored timestamp leniently.

    Accepts aware or naive datetimes, ISO 8601 strings, epoch milliseconds
    and Firestore-style ``{"seconds": ..., "nanoseconds": ...}`` dicts.
    Returns None for anything else.
    """
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, int | float) and not isinstance(seconds, bool):
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return _from_epoch(seconds + nanos / 1_000_000_000)
        return None

    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float):
        return _from_epoch(value / 1000)
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
        except ValueError:
            return None
        if parsed is None:
            return None
    else:
        return None

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _from_epoch(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_submitted_at(value, now: datetime | None = None) -> datetime:
    """Return the parsed timestamp, or *now* when it is missing or invalid."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return now or timezone.now()
    return parsed


def location_display(location: dict | None) -> str:
    """Join the known parts of city, region and country, or return "N/A"."""
    if not location:
        return NOT_AVAILABLE
    parts = [str(location[key]) for key in ("city", "region", "country") if location.get(key)]
    return ", ".join(parts) if parts else NOT_AVAILABLE


def coordinates_display(location: dict | None) -> str | None:
    """Return "<lat>, <lng>" when both coordinates are present."""
    if not location:
        return None
    latitude = location.get("latitude")
    longitude = location.get("longitude")
    if latitude is None or longitude is None:
        return None
    return f"{latitude}, {longitude}"


def map_url(location: dict | None) -> str | None:
    coordinates = coordinates_display(location)
    if coordinates is None:
        return None
    return f"{MAP_URL}?{urlencode({'q': coordinates})}"


@dataclass(frozen=True)
class SubmissionRow:
    """One submission flattened for filtering, sorting, display and export."""

    id: str
    name: str
    email: str
    message: str
    submitted_at: datetime
    ip_address: str
    location: str
    coordinates: str | None
    map_url: str | None
    device_info: str
    screen_resolution: str

    def value(self, column: str):
        return getattr(self, column, None)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "submitted_at": self.submitted_at.isoformat(),
            "ip_address": self.ip_address,
            "location": self.location,
            "coordinates": self.coordinates,
            "map_url": self.map_url,
            "device_info": self.device_info,
            "screen_resolution": self.screen_resolution,
        }


def row_from_submission(submission, now: datetime | None = None) -> SubmissionRow:
    """
    Flatten a ``ContactSubmission`` into a ``SubmissionRow``.

    *now* is the collection time used for rows whose timestamp is missing
    or unparsable; pass the same value for a whole snapshot.
    """
    visitor_data = submission.visitor_data if isinstance(submission.visitor_data, dict) else {}
    location = visitor_data.get("location")
    if not isinstance(location, dict):
        location = None
    device = visitor_data.get("deviceDetails")
    if not isinstance(device, dict):
        device = {}

    return SubmissionRow(
        id=str(submission.pk),
        name=submission.name or "",
        email=submission.email or "",
        message=submission.message or "",
        submitted_at=normalize_submitted_at(submission.submitted_at, now=now),
        ip_address=visitor_data.get("ip") or "",
        location=location_display(location),
        coordinates=coordinates_display(location),
        map_url=map_url(location),
        device_info=device.get("platform") or "",
        screen_resolution=device.get("screenResolution") or "",
    )
