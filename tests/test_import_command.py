"""Tests for the import_submissions management command."""

import json
from datetime import UTC, datetime
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from apps.contacts.models import ContactSubmission

LEGACY_RECORDS = [
    {
        "name": "Jane",
        "email": "jane@example.com",
        "message": "Hello",
        "submittedAt": {"seconds": 1_700_000_000, "nanoseconds": 0},
        "visitorData": {"ip": "203.0.113.7", "location": {"city": "Nairobi"}},
    },
    {
        "name": "John",
        "email": "john@example.com",
        "message": "Hi",
        "submittedAt": "not a date",
    },
    {"name": "No Email", "message": "Skipped"},
    "not an object",
]


@pytest.fixture
def export_file(tmp_path):
    path = tmp_path / "submissions.json"
    path.write_text(json.dumps(LEGACY_RECORDS), encoding="utf-8")
    return path


@pytest.mark.django_db
class TestImportSubmissions:
    def test_imports_valid_records(self, export_file) -> None:
        out = StringIO()

        call_command("import_submissions", str(export_file), stdout=out)

        assert "Imported 2 submissions, skipped 2" in out.getvalue()
        jane = ContactSubmission.objects.get(email="jane@example.com")
        assert jane.submitted_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        assert jane.visitor_data["location"]["city"] == "Nairobi"

        john = ContactSubmission.objects.get(email="john@example.com")
        assert john.submitted_at is None
        assert john.visitor_data is None

    def test_dry_run_writes_nothing(self, export_file) -> None:
        out = StringIO()

        call_command("import_submissions", str(export_file), "--dry-run", stdout=out)

        assert "2 submissions would be imported" in out.getvalue()
        assert ContactSubmission.objects.count() == 0

    def test_rejects_non_array(self, tmp_path) -> None:
        path = tmp_path / "object.json"
        path.write_text(json.dumps({"name": "Jane"}), encoding="utf-8")

        with pytest.raises(CommandError, match="JSON array"):
            call_command("import_submissions", str(path))

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(CommandError, match="Cannot read"):
            call_command("import_submissions", str(tmp_path / "missing.json"))
