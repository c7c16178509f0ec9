"""
Persist contact submissions with bounded retry and exponential backoff.

The retry policy is an explicit state machine:

    ATTEMPTING --ok--------------------------> SUCCESS
    ATTEMPTING --terminal error--------------> FAILED_TERMINAL
    ATTEMPTING --error, budget exhausted-----> FAILED_EXHAUSTED
    ATTEMPTING --error, budget left----------> BACKOFF
    BACKOFF    --after 2 ** attempt s-------> ATTEMPTING

Terminal errors are the store's permission-denied and unauthenticated
failures. Every transition is logged with structured ``extra`` fields.
"""

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from django.conf import settings

from .store import DjangoRecordStore, RecordStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

TERMINAL_MESSAGES = {
    StoreError.PERMISSION_DENIED: "Permission denied. Please check the record store access rules.",
    StoreError.UNAUTHENTICATED: "Authentication required. Please check the record store credentials.",
}
RETRY_EXHAUSTED_MESSAGE = "Failed to send message. Please try again."
SUCCESS_MESSAGE = "Message sent successfully!"


class WriteState(enum.Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCESS = "success"
    FAILED_TERMINAL = "failed_terminal"
    FAILED_EXHAUSTED = "failed_exhausted"

    @property
    def is_final(self) -> bool:
        return self in (WriteState.SUCCESS, WriteState.FAILED_TERMINAL, WriteState.FAILED_EXHAUSTED)


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after failed attempt number *attempt*, before the next one (2, 4, 8, ...)."""
    return 2**attempt


def next_state(
    state: WriteState,
    *,
    attempt: int,
    max_attempts: int,
    error: StoreError | None = None,
) -> WriteState:
    """Transition function of the retry state machine."""
    if state is WriteState.BACKOFF:
        return WriteState.ATTEMPTING
    if state is not WriteState.ATTEMPTING:
        msg = f"{state.name} is a final state"
        raise ValueError(msg)

    if error is None:
        return WriteState.SUCCESS
    if error.is_terminal:
        return WriteState.FAILED_TERMINAL
    if attempt >= max_attempts:
        return WriteState.FAILED_EXHAUSTED
    return WriteState.BACKOFF


@dataclass
class AttemptRecord:
    number: int
    error_code: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_code is None


@dataclass
class WriteResult:
    state: WriteState = WriteState.ATTEMPTING
    record_id: str | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.state is WriteState.SUCCESS

    @property
    def message(self) -> str:
        """User-facing status line."""
        if self.ok:
            return SUCCESS_MESSAGE
        if self.state is WriteState.FAILED_TERMINAL and self.error is not None:
            return TERMINAL_MESSAGES[self.error.code]
        return RETRY_EXHAUSTED_MESSAGE


class SubmissionWriter:
    """Write one submission to a ``RecordStore`` under the retry policy."""

    def __init__(self, store: RecordStore | None = None, *, max_attempts: int | None = None) -> None:
        self.store = store or DjangoRecordStore()
        self.max_attempts = max_attempts or getattr(settings, "SUBMISSION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)

    def _log(self, level: int, msg: str, *args, event: str, attempt: int, error_code: str | None = None) -> None:
        logger.log(
            level,
            msg,
            *args,
            extra={
                "event": event,
                "attempt": attempt,
                "max_attempts": self.max_attempts,
                "error_code": error_code,
            },
        )

    async def write(
        self,
        data: dict,
        on_success: Callable[[WriteResult], None] | None = None,
    ) -> WriteResult:
        """
        Persist *data*, retrying transient store failures.

        *on_success* is called exactly once, after the record is stored.
        Failures never raise; inspect ``WriteResult.state`` and ``.error``.
        """
        result = WriteResult()
        attempt = 1

        while not result.state.is_final:
            self._log(
                logging.INFO,
                "Saving submission (attempt %d/%d)",
                attempt,
                self.max_attempts,
                event="submission.attempt",
                attempt=attempt,
            )
            try:
                record_id = await self.store.append(data)
            except StoreError as exc:
                result.attempts.append(AttemptRecord(number=attempt, error_code=exc.code, error=str(exc)))
                result.error = exc
                result.state = next_state(
                    result.state,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=exc,
                )
                self._log(
                    logging.WARNING,
                    "Store write failed (attempt %d/%d, %s): %s",
                    attempt,
                    self.max_attempts,
                    exc.code,
                    exc,
                    event="submission.attempt_failed",
                    attempt=attempt,
                    error_code=exc.code,
                )
            else:
                result.attempts.append(AttemptRecord(number=attempt))
                result.record_id = record_id
                result.error = None
                result.state = next_state(result.state, attempt=attempt, max_attempts=self.max_attempts)

            if result.state is WriteState.BACKOFF:
                delay = backoff_delay(attempt)
                self._log(
                    logging.INFO,
                    "Waiting %ds before retry",
                    delay,
                    event="submission.backoff",
                    attempt=attempt,
                    error_code=result.error.code,
                )
                await asyncio.sleep(delay)
                result.state = next_state(result.state, attempt=attempt, max_attempts=self.max_attempts)
                attempt += 1

        if result.state is WriteState.SUCCESS:
            self._log(
                logging.INFO,
                "Submission %s saved (attempt %d/%d)",
                result.record_id,
                attempt,
                self.max_attempts,
                event="submission.saved",
                attempt=attempt,
            )
            if on_success is not None:
                on_success(result)
        elif result.state is WriteState.FAILED_TERMINAL:
            self._log(
                logging.ERROR,
                "Submission rejected by the store (%s), not retrying: %s",
                result.error.code,
                result.error,
                event="submission.failed_terminal",
                attempt=attempt,
                error_code=result.error.code,
            )
        else:
            self._log(
                logging.ERROR,
                "Submission failed after %d attempts: %s",
                attempt,
                result.error,
                event="submission.failed_exhausted",
                attempt=attempt,
                error_code=result.error.code,
            )
        return result
