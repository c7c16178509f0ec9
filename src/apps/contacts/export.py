"""CSV export of the filtered dashboard view."""

import csv
import io
import logging
from collections.abc import Sequence
from datetime import date

from django.utils import timezone

from .display import SubmissionRow
from .query import ViewState, column_text, filter_rows

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"


def export_filename(today: date | None = None) -> str:
    return f"submissions_{(today or timezone.localdate()).isoformat()}.csv"


def _csv_value(value) -> str | None:
    # None is written bare, strings are quoted with inner quotes doubled
    text = column_text(value)
    return text or None


def export_csv(rows: Sequence[SubmissionRow], state: ViewState) -> str:
    """
    Serialize the rows matching *state*'s search term.

    Only visible columns are written, in declared order, under a header row
    of column names. Sorting and pagination are ignored.
    """
    columns = state.visible
    matched = filter_rows(rows, state)

    buffer = io.StringIO()
    buffer.write(",".join(columns) + "\n")

    writer = csv.writer(buffer, quoting=csv.QUOTE_STRINGS, lineterminator="\n")
    for row in matched:
        writer.writerow([_csv_value(row.value(column)) for column in columns])

    logger.info("Exported %d of %d submissions (%d columns)", len(matched), len(rows), len(columns))
    return buffer.getvalue()
