"""Shared fixtures for the contact telemetry tests."""

from datetime import UTC, datetime

import pytest

from apps.contacts.display import SubmissionRow
from apps.contacts.models import ContactSubmission


class FakeRecordStore:
    """In-memory ``RecordStore`` with scriptable failures."""

    def __init__(self, records=None, *, append_errors=(), delete_errors=None, list_error=None) -> None:
        self.records = list(records or [])
        self.append_errors = list(append_errors)
        self.delete_errors = dict(delete_errors or {})
        self.list_error = list_error
        self.appended: list[dict] = []
        self.append_calls = 0

    async def append(self, data: dict) -> str:
        self.append_calls += 1
        if self.append_errors:
            raise self.append_errors.pop(0)
        self.appended.append(data)
        return f"rec-{len(self.appended)}"

    async def list_all(self) -> list:
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    async def delete(self, record_id: str) -> None:
        if record_id in self.delete_errors:
            raise self.delete_errors[record_id]
        self.records = [record for record in self.records if str(record.pk) != record_id]


@pytest.fixture
def make_store():
    """Factory for in-memory record stores."""
    return FakeRecordStore


@pytest.fixture
def visitor_data() -> dict:
    """A fully populated visitor data document."""
    return {
        "ip": "203.0.113.7",
        "location": {
            "latitude": -1.2921,
            "longitude": 36.8219,
            "accuracy": 20.0,
            "city": "Nairobi",
            "region": "Nairobi County",
            "country": "KE",
            "postal": "00100",
            "timezone": "Africa/Nairobi",
        },
        "deviceDetails": {
            "userAgent": "Mozilla/5.0",
            "screenResolution": "1920x1080",
            "language": "en-GB",
            "timezone": "Africa/Nairobi",
            "platform": "MacIntel",
            "vendor": "Apple Computer, Inc.",
            "cookiesEnabled": True,
            "doNotTrack": None,
            "online": True,
        },
        "timestamp": "2024-03-15T09:30:00+00:00",
    }


@pytest.fixture
def make_submission():
    """Factory for unsaved ``ContactSubmission`` instances with a fixed pk."""

    def _make(pk: int = 1, **overrides) -> ContactSubmission:
        fields = {
            "name": f"Visitor {pk}",
            "email": f"visitor{pk}@example.com",
            "message": "Hello there",
            "visitor_data": None,
            "submitted_at": datetime(2024, 3, 15, 9, 30, tzinfo=UTC),
        }
        fields.update(overrides)
        return ContactSubmission(pk=pk, **fields)

    return _make


@pytest.fixture
def make_row():
    """Factory for ``SubmissionRow`` values."""

    def _make(record_id: str = "1", **overrides) -> SubmissionRow:
        fields = {
            "id": record_id,
            "name": f"Visitor {record_id}",
            "email": f"visitor{record_id}@example.com",
            "message": "Hello there",
            "submitted_at": datetime(2024, 3, 15, 9, 30, tzinfo=UTC),
            "ip_address": "203.0.113.7",
            "location": "Nairobi, Nairobi County, KE",
            "coordinates": None,
            "map_url": None,
            "device_info": "MacIntel",
            "screen_resolution": "1920x1080",
        }
        fields.update(overrides)
        return SubmissionRow(**fields)

    return _make
