"""
Filter, sort, paginate and select over dashboard rows.

Dashboard UI state lives in an immutable ``ViewState``. Every user action
is a pure function returning a new state, and the row derivations below
only read it.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from functools import cmp_to_key

from django.conf import settings
from django.core.paginator import Paginator

from .display import SubmissionRow

COLUMNS = (
    "name",
    "email",
    "message",
    "submitted_at",
    "ip_address",
    "location",
    "device_info",
    "screen_resolution",
)

ASC = "asc"
DESC = "desc"

DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class ViewState:
    search_term: str = ""
    sort_key: str = "submitted_at"
    sort_direction: str = DESC
    page: int = 1
    selected: frozenset[str] = frozenset()
    visible_columns: tuple[tuple[str, bool], ...] = tuple((column, True) for column in COLUMNS)

    @property
    def visible(self) -> list[str]:
        """Visible column names in declared order."""
        return [column for column, shown in self.visible_columns if shown]

    @classmethod
    def from_query(cls, query: Mapping) -> "ViewState":
        """
        Build a state from request parameters.

        Recognised keys: ``q``, ``sort``, ``dir``, ``page`` and ``columns``
        (comma-separated visible column names). Unknown or malformed
        values fall back to the defaults.
        """
        state = cls()

        sort_key = query.get("sort") or state.sort_key
        if sort_key not in COLUMNS:
            sort_key = state.sort_key
        direction = query.get("dir") or (ASC if "sort" in query else state.sort_direction)
        if direction not in (ASC, DESC):
            direction = ASC

        try:
            page = int(query.get("page") or 1)
        except (TypeError, ValueError):
            page = 1

        visible_columns = state.visible_columns
        columns = query.get("columns")
        if isinstance(columns, str) and columns.strip():
            wanted = {name.strip() for name in columns.split(",")}
            visible_columns = tuple((column, column in wanted) for column in COLUMNS)

        return cls(
            search_term=str(query.get("q") or ""),
            sort_key=sort_key,
            sort_direction=direction,
            page=max(page, 1),
            visible_columns=visible_columns,
        )

    def to_query(self) -> dict:
        """Inverse of ``from_query`` (selection is not part of the URL)."""
        return {
            "q": self.search_term,
            "sort": self.sort_key,
            "dir": self.sort_direction,
            "page": self.page,
            "columns": ",".join(self.visible),
        }


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------
def with_search(state: ViewState, term: str) -> ViewState:
    return replace(state, search_term=term, page=1)


def toggle_sort(state: ViewState, key: str) -> ViewState:
    """Flip direction when *key* is already ascending; any other choice sorts ascending."""
    if state.sort_key == key and state.sort_direction == ASC:
        return replace(state, sort_key=key, sort_direction=DESC)
    return replace(state, sort_key=key, sort_direction=ASC)


def go_to_page(state: ViewState, page: int, total_pages: int) -> ViewState:
    return replace(state, page=min(max(page, 1), max(total_pages, 1)))


def toggle_column(state: ViewState, column: str) -> ViewState:
    visible_columns = tuple((name, not shown if name == column else shown) for name, shown in state.visible_columns)
    return replace(state, visible_columns=visible_columns)


def toggle_selected(state: ViewState, record_id: str) -> ViewState:
    return replace(state, selected=state.selected ^ {record_id})


def select_all(state: ViewState, filtered_rows: Iterable[SubmissionRow]) -> ViewState:
    """Select every currently filtered row, or clear if they already are all selected."""
    ids = frozenset(row.id for row in filtered_rows)
    if state.selected == ids:
        return clear_selection(state)
    return replace(state, selected=ids)


def with_selection(state: ViewState, record_ids: Iterable[str]) -> ViewState:
    return replace(state, selected=frozenset(record_ids))


def clear_selection(state: ViewState) -> ViewState:
    return replace(state, selected=frozenset())


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------
def column_text(value) -> str | None:
    """String representation used for matching, sorting and export."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def matches(row: SubmissionRow, term: str, columns: Sequence[str]) -> bool:
    needle = term.lower()
    for column in columns:
        text = column_text(row.value(column))
        if text is not None and needle in text.lower():
            return True
    return False


def filter_rows(rows: Sequence[SubmissionRow], state: ViewState) -> list[SubmissionRow]:
    """Rows where any visible column contains the search term (case-insensitive)."""
    if not state.search_term:
        return list(rows)
    columns = state.visible
    return [row for row in rows if matches(row, state.search_term, columns)]


def compare_values(a, b) -> int:
    """
    Case-insensitive comparison of two column values.

    A missing (None or empty) value on either side compares equal, so the
    pair keeps its relative order.
    """
    a_text = column_text(a)
    b_text = column_text(b)
    if not a_text or not b_text:
        return 0
    a_text = a_text.lower()
    b_text = b_text.lower()
    return (a_text > b_text) - (a_text < b_text)


def sort_rows(rows: Sequence[SubmissionRow], key: str, direction: str = ASC) -> list[SubmissionRow]:
    if direction == DESC:

        def compare(a: SubmissionRow, b: SubmissionRow) -> int:
            return compare_values(b.value(key), a.value(key))

    else:

        def compare(a: SubmissionRow, b: SubmissionRow) -> int:
            return compare_values(a.value(key), b.value(key))

    return sorted(rows, key=cmp_to_key(compare))


def visible_rows(rows: Sequence[SubmissionRow], state: ViewState) -> list[SubmissionRow]:
    """Filtered then sorted rows for *state*."""
    return sort_rows(filter_rows(rows, state), state.sort_key, state.sort_direction)


@dataclass(frozen=True)
class PageResult:
    rows: list[SubmissionRow]
    number: int
    total_pages: int
    total_count: int
    start_index: int
    end_index: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    def as_dict(self) -> dict:
        return {
            "page": self.number,
            "total_pages": self.total_pages,
            "total_count": self.total_count,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "has_previous": self.has_previous,
            "has_next": self.has_next,
        }


def get_page_size() -> int:
    return getattr(settings, "DASHBOARD_PAGE_SIZE", DEFAULT_PAGE_SIZE)


def total_pages(count: int, page_size: int | None = None) -> int:
    return math.ceil(count / (page_size or get_page_size()))


def paginate(rows: Sequence[SubmissionRow], page: int, page_size: int | None = None) -> PageResult:
    """
    Slice *rows* into the requested page.

    Out-of-range page numbers clamp into ``[1, total_pages]``; an empty
    result reports zero pages.
    """
    page_size = page_size or get_page_size()
    paginator = Paginator(rows, page_size)
    pages = total_pages(paginator.count, page_size)

    if not pages:
        return PageResult(rows=[], number=1, total_pages=0, total_count=0, start_index=0, end_index=0)

    current = paginator.get_page(min(max(page, 1), pages))
    return PageResult(
        rows=list(current.object_list),
        number=current.number,
        total_pages=pages,
        total_count=paginator.count,
        start_index=current.start_index(),
        end_index=current.end_index(),
    )
