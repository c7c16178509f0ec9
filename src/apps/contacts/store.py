"""
Record store for contact submissions.

The rest of the app talks to the store through the ``RecordStore``
protocol so the writer and the dashboard can be exercised against any
backend. ``DjangoRecordStore`` is the ORM-backed implementation.
"""

import logging
from typing import Protocol

from django.core.exceptions import ValidationError
from django.db import Error
from django.db.models import F

from .models import ContactSubmission

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A store operation failed. ``code`` tells callers whether retrying can help."""

    PERMISSION_DENIED = "permission-denied"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not-found"
    UNAVAILABLE = "unavailable"

    TERMINAL_CODES = frozenset({PERMISSION_DENIED, UNAUTHENTICATED})

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)

    @property
    def is_terminal(self) -> bool:
        return self.code in self.TERMINAL_CODES


# SQLSTATE classes (PostgreSQL) that retrying will never fix
_PERMISSION_SQLSTATES = frozenset({"42501"})
_AUTH_SQLSTATES = frozenset({"28000", "28P01"})


def classify_database_error(exc: Error) -> StoreError:
    """Map any Django database error (including interface errors) onto a ``StoreError`` code."""
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)

    if sqlstate in _PERMISSION_SQLSTATES:
        code = StoreError.PERMISSION_DENIED
    elif sqlstate in _AUTH_SQLSTATES:
        code = StoreError.UNAUTHENTICATED
    else:
        code = StoreError.UNAVAILABLE
    return StoreError(code, str(exc) or exc.__class__.__name__)


class RecordStore(Protocol):
    async def append(self, data: dict) -> str: ...

    async def list_all(self) -> list[ContactSubmission]: ...

    async def delete(self, record_id: str) -> None: ...


class DjangoRecordStore:
    """Record store backed by the ``ContactSubmission`` table."""

    async def append(self, data: dict) -> str:
        """Insert one submission and return its assigned id."""
        try:
            submission = await ContactSubmission.objects.acreate(**data)
        except Error as exc:
            raise classify_database_error(exc) from exc
        return str(submission.pk)

    async def list_all(self) -> list[ContactSubmission]:
        """Return every submission, newest first; rows without a timestamp go last."""
        qs = ContactSubmission.objects.order_by(F("submitted_at").desc(nulls_last=True), "-pk")
        try:
            return [submission async for submission in qs]
        except Error as exc:
            raise classify_database_error(exc) from exc

    async def delete(self, record_id: str) -> None:
        """Permanently remove one submission."""
        try:
            deleted, _ = await ContactSubmission.objects.filter(pk=record_id).adelete()
        except (ValueError, ValidationError) as exc:
            msg = f"Invalid submission id: {record_id!r}"
            raise StoreError(StoreError.NOT_FOUND, msg) from exc
        except Error as exc:
            raise classify_database_error(exc) from exc

        if not deleted:
            msg = f"Submission {record_id} does not exist"
            raise StoreError(StoreError.NOT_FOUND, msg)
        logger.info("Deleted contact submission %s", record_id)
