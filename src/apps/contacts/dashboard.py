"""
Admin dashboard over the submission record set.

``Dashboard`` owns one in-memory snapshot of rows plus the current
``ViewState``. Page, stats and export are read-only derivations of that
snapshot; ``bulk_delete`` is the only operation that touches the store.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from django.utils import timezone

from .display import SubmissionRow, row_from_submission
from .export import export_csv
from .query import PageResult, ViewState, clear_selection, filter_rows, paginate, select_all, visible_rows
from .stats import SubmissionStats, compute_stats
from .store import DjangoRecordStore, RecordStore

logger = logging.getLogger(__name__)


class DashboardLoadError(Exception):
    """The record set could not be read; nothing should be rendered."""


@dataclass
class BulkDeleteResult:
    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def error(self) -> str | None:
        if self.ok:
            return None
        return f"Error deleting submissions: {len(self.failed)} of {len(self.deleted) + len(self.failed)} failed"


class Dashboard:
    def __init__(self, store: RecordStore | None = None, state: ViewState | None = None) -> None:
        self.store = store or DjangoRecordStore()
        self.state = state or ViewState()
        self.rows: list[SubmissionRow] = []

    async def load(self) -> list[SubmissionRow]:
        """Replace the snapshot with the store's current record set."""
        try:
            records = await self.store.list_all()
        except Exception as exc:
            logger.exception("Error fetching submissions")
            msg = f"Error fetching submissions: {exc}"
            raise DashboardLoadError(msg) from exc

        now = timezone.now()
        self.rows = [row_from_submission(record, now=now) for record in records]
        return self.rows

    def filtered(self) -> list[SubmissionRow]:
        return visible_rows(self.rows, self.state)

    def page(self) -> PageResult:
        return paginate(self.filtered(), self.state.page)

    def stats(self) -> SubmissionStats:
        return compute_stats(self.rows)

    def export_csv(self) -> str:
        return export_csv(self.rows, self.state)

    def select_all(self) -> ViewState:
        self.state = select_all(self.state, filter_rows(self.rows, self.state))
        return self.state

    async def bulk_delete(self, record_ids: Iterable[str] | None = None) -> BulkDeleteResult:
        """
        Delete *record_ids* (default: the current selection) concurrently.

        Not atomic: whatever was deleted stays deleted and leaves the
        snapshot even when other deletes fail. The selection is cleared only
        when every delete succeeded.
        """
        ids = list(dict.fromkeys(self.state.selected if record_ids is None else record_ids))
        outcomes = await asyncio.gather(
            *(self.store.delete(record_id) for record_id in ids),
            return_exceptions=True,
        )

        result = BulkDeleteResult()
        for record_id, outcome in zip(ids, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.warning("Failed to delete submission %s: %s", record_id, outcome)
                result.failed[record_id] = str(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.deleted.append(record_id)

        deleted = set(result.deleted)
        self.rows = [row for row in self.rows if row.id not in deleted]

        if result.ok:
            self.state = clear_selection(self.state)
            logger.info("Deleted %d submissions", len(result.deleted))
        else:
            logger.error(
                "Bulk delete partially failed: %d deleted, %d failed",
                len(result.deleted),
                len(result.failed),
            )
        return result
