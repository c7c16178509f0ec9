"""Time-bucketed submission counters for the dashboard header."""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from django.utils import timezone

from .display import SubmissionRow


@dataclass(frozen=True)
class SubmissionStats:
    total: int = 0
    today: int = 0
    this_week: int = 0
    this_month: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def bucket_starts(now: datetime | None = None) -> tuple[datetime, datetime, datetime]:
    """Return (today, week, month) lower bounds in the current time zone."""
    local_now = timezone.localtime(now or timezone.now())
    today = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = today - timedelta(days=7)
    month = today.replace(day=1)
    return today, week, month


def compute_stats(rows: Iterable[SubmissionRow], now: datetime | None = None) -> SubmissionStats:
    """Count all rows and those submitted since local midnight, a week before it, and the 1st of the month."""
    today, week, month = bucket_starts(now)
    total = today_count = week_count = month_count = 0

    for row in rows:
        total += 1
        submitted_at = row.submitted_at
        if submitted_at >= today:
            today_count += 1
        if submitted_at >= week:
            week_count += 1
        if submitted_at >= month:
            month_count += 1

    return SubmissionStats(total=total, today=today_count, this_week=week_count, this_month=month_count)
