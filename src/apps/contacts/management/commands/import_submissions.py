"""
Import legacy contact submissions from a JSON export.

The file must hold a JSON array of objects shaped like the original
document store records::

    {"name": ..., "email": ..., "message": ..., "submittedAt": ..., "visitorData": {...}}

Timestamps are parsed leniently; anything unparsable is stored empty and
shows up as "now" on the dashboard.
"""

import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.contacts.display import parse_timestamp
from apps.contacts.models import ContactSubmission


class Command(BaseCommand):
    help = "Import contact submissions from a JSON export"

    def add_arguments(self, parser):
        parser.add_argument("path", type=Path, help="Path to the JSON export")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Validate the file without writing anything",
        )

    def handle(self, *args, **options):
        path: Path = options["path"]
        dry_run = options["dry_run"]

        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            msg = f"Cannot read {path}: {exc}"
            raise CommandError(msg) from exc
        except json.JSONDecodeError as exc:
            msg = f"{path} is not valid JSON: {exc}"
            raise CommandError(msg) from exc

        if not isinstance(records, list):
            msg = f"{path} must contain a JSON array of submissions"
            raise CommandError(msg)

        submissions = []
        skipped = 0
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                skipped += 1
                continue
            name = str(record.get("name") or "").strip()
            email = str(record.get("email") or "").strip()
            message = str(record.get("message") or "").strip()
            if not name or not email or not message:
                self.stdout.write(self.style.WARNING(f"Skipping record {index}: missing name, email or message"))
                skipped += 1
                continue

            visitor_data = record.get("visitorData", record.get("visitor_data"))
            submissions.append(
                ContactSubmission(
                    name=name,
                    email=email,
                    message=message,
                    visitor_data=visitor_data if isinstance(visitor_data, dict) else None,
                    submitted_at=parse_timestamp(record.get("submittedAt", record.get("submitted_at"))),
                )
            )

        if dry_run:
            self.stdout.write(
                self.style.NOTICE(f"Dry run: {len(submissions)} submissions would be imported, {skipped} skipped")
            )
            return

        ContactSubmission.objects.bulk_create(submissions)
        self.stdout.write(self.style.SUCCESS(f"Imported {len(submissions)} submissions, skipped {skipped}"))
