"""Pushes answer changes of a running attempt to the remote progress service."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from learnhub.config import (
    SYNC_DEBOUNCE_SECONDS,
    SYNC_RETRY_BASE_SECONDS,
    SYNC_RETRY_MAX_SECONDS,
)
from learnhub.models import AttemptStatus, AttemptSyncRequest
from learnhub.session.answer_store import AnswerStore
from learnhub.session.client import RemoteProgressClient
from learnhub.session.errors import RemoteError, SyncError
from learnhub.session.scheduler import Handle, Scheduler

log = logging.getLogger(__name__)


class SyncCoordinator:
    """
    Serializes flushes for one attempt.

    At most one ``sync_attempt`` call is outstanding at a time. Requests that
    arrive while a call is in flight are coalesced into a single follow-up
    round that carries everything changed in the meantime. A failed round
    leaves its answers pending and schedules a retry with exponential
    backoff; it never aborts the session.
    """

    def __init__(
        self,
        client: RemoteProgressClient,
        attempt_id: str,
        store: AnswerStore,
        scheduler: Scheduler,
        *,
        context: Callable[[], dict[str, Any]] | None = None,
        debounce_seconds: float = SYNC_DEBOUNCE_SECONDS,
        retry_base_seconds: float = SYNC_RETRY_BASE_SECONDS,
        retry_max_seconds: float = SYNC_RETRY_MAX_SECONDS,
        on_error: Callable[[SyncError], None] | None = None,
        on_success: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._attempt_id = attempt_id
        self._store = store
        self._scheduler = scheduler
        self._context = context
        self._debounce_seconds = debounce_seconds
        self._retry_base_seconds = retry_base_seconds
        self._retry_max_seconds = retry_max_seconds
        self._on_error = on_error
        self._on_success = on_success

        self._task: asyncio.Task | None = None
        self._rerun = False
        self._status: AttemptStatus | None = None
        self._debounce: Handle | None = None
        self._retry: Handle | None = None
        self._failures = 0
        self._closed = False
        self.last_error: SyncError | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def failures(self) -> int:
        """Consecutive failed rounds."""
        return self._failures

    def notify_changed(self) -> None:
        """An answer changed; flush once writes settle for the debounce window."""
        if self._closed:
            return
        self._cancel(self._debounce)
        self._debounce = self._scheduler.call_later(
            self._debounce_seconds, self._debounce_elapsed
        )

    def request_flush(self, status: AttemptStatus | None = None) -> asyncio.Task:
        """
        Start a flush without waiting for it.

        ``status`` is reported to the service with the next round (used for
        interrupted/expired attempts). If a flush is already in flight the
        request is folded into its follow-up round.
        """
        if status is not None:
            self._status = status
        self._cancel(self._debounce)
        self._debounce = None
        if self.in_flight:
            self._rerun = True
            return self._task
        self._task = asyncio.ensure_future(self._drain())
        self._task.add_done_callback(self._task_done)
        return self._task

    async def flush(self, status: AttemptStatus | None = None) -> None:
        """
        Flush and wait for the round that carries the current changes.

        Raises:
            SyncError: if that round failed. The answers stay pending.
        """
        task = self.request_flush(status)
        await asyncio.shield(task)
        if self.last_error is not None:
            raise self.last_error

    async def wait_idle(self) -> None:
        """Wait until no flush is in flight."""
        while self.in_flight:
            await asyncio.shield(self._task)

    def close(self) -> None:
        """Cancel debounce and retry timers. An in-flight call is left to finish."""
        self._closed = True
        self._cancel(self._debounce)
        self._cancel(self._retry)
        self._debounce = self._retry = None

    async def _drain(self) -> None:
        while True:
            self._rerun = False
            await self._send_round()
            if not self._rerun:
                return

    async def _send_round(self) -> None:
        status = self._status
        context = self._context() if self._context else {}
        answers = self._store.snapshot_and_drain()
        if not answers and status is None:
            self.last_error = None
            return

        try:
            payload = AttemptSyncRequest(
                answers=answers,
                questionId=next(iter(answers)) if len(answers) == 1 else None,
                status=status,
                **context,
            )
            await self._client.sync_attempt(self._attempt_id, payload)
        except RemoteError as exc:
            self._store.restore_pending(answers)
            self._failures += 1
            error = SyncError(f"Could not save answers: {exc}")
            error.__cause__ = exc
            self.last_error = error
            log.warning(
                "Sync of attempt %s failed (%d in a row, %d answers kept pending): %s",
                self._attempt_id,
                self._failures,
                len(answers),
                exc,
            )
            self._schedule_retry()
            if self._on_error is not None:
                self._on_error(error)
            return
        except Exception:
            self._store.restore_pending(answers)
            raise

        log.debug(
            "Synced %d answers for attempt %s", len(answers), self._attempt_id
        )
        if self._status == status:
            self._status = None
        self._failures = 0
        self.last_error = None
        self._cancel(self._retry)
        self._retry = None
        if self._on_success is not None:
            self._on_success()

    def _schedule_retry(self) -> None:
        if self._closed:
            return
        delay = min(
            self._retry_base_seconds * 2 ** (self._failures - 1),
            self._retry_max_seconds,
        )
        self._cancel(self._retry)
        self._retry = self._scheduler.call_later(delay, self._retry_elapsed)

    def _debounce_elapsed(self) -> None:
        self._debounce = None
        self.request_flush()

    def _retry_elapsed(self) -> None:
        self._retry = None
        if self._store.has_pending or self._status is not None:
            self.request_flush()

    def _task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Sync task for attempt %s crashed", self._attempt_id, exc_info=exc)

    @staticmethod
    def _cancel(handle: Handle | None) -> None:
        if handle is not None:
            handle.cancel()
