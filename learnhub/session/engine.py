"""
Orchestrates one timed test attempt.

``TestSession`` feeds events through ``machine.transition`` and performs the
side effects the pure machine cannot: remote calls, answer buffering,
syncing and the countdown.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

from learnhub.config import SYNC_DEBOUNCE_SECONDS
from learnhub.models import (
    AttemptCompleteRequest,
    AttemptStatus,
    TestAssignment,
    TestAttempt,
)
from learnhub.session import machine
from learnhub.session.answer_store import AnswerStore
from learnhub.session.client import RemoteProgressClient
from learnhub.session.errors import (
    AttemptsExhausted,
    Forbidden,
    NotFound,
    RemoteError,
    SessionInitError,
    SessionNotActive,
    SyncError,
)
from learnhub.session.machine import SessionState, SessionStatus
from learnhub.session.scheduler import LoopScheduler, Scheduler
from learnhub.session.scoring import score_answers
from learnhub.session.sync import SyncCoordinator
from learnhub.session.timer import Countdown, CountdownState
from learnhub.utils.time_utils import as_utc, utc_now

log = logging.getLogger(__name__)

_INIT_FAILURES: dict[type[RemoteError], tuple[str, str]] = {
    NotFound: ("assignment_not_found", "Assignment not found"),
    Forbidden: ("forbidden", "Assignment belongs to another user"),
    AttemptsExhausted: ("attempts_exhausted", "No attempts left for this test"),
}


def remaining_seconds(
    assignment: TestAssignment, attempt: TestAttempt, now: datetime
) -> int | None:
    """Seconds left in the attempt's time budget, ``None`` for untimed tests."""
    duration = assignment.test.durationMinutes * 60
    if duration <= 0:
        return None
    elapsed = (as_utc(now) - as_utc(attempt.startedAt)).total_seconds()
    return max(0, int(duration - elapsed))


class TestSession:
    """A learner's run through one assigned test."""

    __test__ = False

    def __init__(
        self,
        client: RemoteProgressClient,
        scheduler: Scheduler | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        debounce_seconds: float = SYNC_DEBOUNCE_SECONDS,
        on_change: Callable[[SessionState], None] | None = None,
    ) -> None:
        self._client = client
        self._scheduler = scheduler or LoopScheduler()
        self._clock = clock
        self._debounce_seconds = debounce_seconds
        self._on_change = on_change

        self._state = SessionState()
        self._store: AnswerStore | None = None
        self._sync: SyncCoordinator | None = None
        self._countdown: Countdown | None = None
        self._sync_error: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def countdown(self) -> CountdownState | None:
        return self._countdown.state if self._countdown is not None else None

    @property
    def sync(self) -> SyncCoordinator | None:
        return self._sync

    def dispatch(self, event: machine.SessionEvent) -> SessionState:
        new_state = machine.transition(self._state, event)
        if new_state is not self._state:
            self._state = new_state
            if self._on_change is not None:
                self._on_change(new_state)
        return self._state

    async def init(self, assignment_id: str) -> SessionState:
        """
        Fetch the assignment, start or resume an attempt and go active.

        Raises:
            SessionInitError: assignment missing or not owned by the caller,
                no attempts left, or the service is unreachable. The session
                ends in ``failed`` and needs a fresh ``init``.
        """
        if not self._state.status.can_init:
            raise SessionInitError(
                f"Session is {self._state.status.value}", reason="busy"
            )
        self.close()
        self.dispatch(machine.Init(assignment_id))

        try:
            assignment = await self._client.get_assignment(assignment_id)
            attempt = await self._client.start_attempt(assignment_id)
        except RemoteError as exc:
            reason, message = _INIT_FAILURES.get(
                type(exc), ("unavailable", "Could not start the test")
            )
            log.warning("Session init for assignment %s failed: %s", assignment_id, exc)
            self.dispatch(machine.InitFailed(f"{message}: {exc}"))
            raise SessionInitError(message, reason=reason) from exc
        except Exception as exc:
            self.dispatch(machine.InitFailed(f"Could not start the test: {exc}"))
            raise

        if not attempt.status.is_resumable:
            message = f"Attempt {attempt.id} is already {attempt.status.value}"
            self.dispatch(machine.InitFailed(message))
            raise SessionInitError(message, reason="attempts_exhausted")

        self._store = AnswerStore(attempt.answers)
        self._sync = SyncCoordinator(
            self._client,
            attempt.id,
            self._store,
            self._scheduler,
            context=self._sync_context,
            debounce_seconds=self._debounce_seconds,
            on_error=self._sync_failed,
            on_success=self._sync_recovered,
        )
        remaining = remaining_seconds(assignment, attempt, self._clock())
        self.dispatch(machine.Ready(assignment, attempt, remaining))
        log.info(
            "Attempt %s (#%d) of assignment %s active, %s s left, %d answers restored",
            attempt.id,
            attempt.attemptNumber,
            assignment_id,
            "unlimited" if remaining is None else remaining,
            len(self._store),
        )

        if remaining is not None:
            self._countdown = Countdown(
                self._scheduler, remaining_seconds=remaining, on_tick=self._on_tick
            )
            self._countdown.start()
            if self._countdown.expired:
                self._expire()
        return self._state

    def answer(self, question_id: str, value: Any) -> bool:
        """Record an answer. Returns False when the session no longer accepts input."""
        if not self._state.is_session_active:
            log.debug("Ignoring answer to %s while %s", question_id, self._state.status.value)
            return False
        self._store.set_answer(question_id, value)
        self.dispatch(machine.Answer(question_id, value))
        self._sync.notify_changed()
        return True

    def navigate(self, index: int) -> int:
        """Move to a question; out-of-range indexes are clamped."""
        self.dispatch(machine.Navigate(index))
        return self._state.current_question_index

    async def save(self) -> bool:
        """Flush now, e.g. when the learner completes a question. False on failure."""
        if not self._state.is_session_active:
            return False
        try:
            await self._sync.flush()
        except SyncError:
            return False
        return True

    async def finish(self) -> TestAttempt:
        """
        Submit the attempt: flush, score, complete remotely.

        A failed flush or completion call is reported through ``state.error``
        but does not keep the session from finishing; the completion call
        carries every answer regardless.
        """
        if self._state.status is SessionStatus.FINISHED:
            return self._state.current_attempt
        if not self._state.is_session_active:
            raise SessionNotActive(f"Cannot finish a session that is {self._state.status.value}")

        self.dispatch(machine.FinishRequested())
        self._stop_countdown()

        # submitting rejects input, so the store is final from here on
        assignment = self._state.assignment
        attempt = self._state.current_attempt
        answers = self._store.get_all()
        result = score_answers(
            assignment.test.questions, answers, assignment.test.passingScore
        )
        final = attempt.model_copy(
            update={
                "status": AttemptStatus.COMPLETED,
                "completedAt": self._clock(),
                "score": result.score,
                "passed": result.passed,
                "answers": answers,
            }
        )
        try:
            try:
                await self._sync.flush()
            except SyncError as exc:
                log.error("Final sync before submit failed: %s", exc)
            final = await self._client.complete_attempt(
                attempt.id, AttemptCompleteRequest(score=result.score, answers=answers)
            )
        except RemoteError as exc:
            log.error("Could not complete attempt %s: %s", attempt.id, exc)
            self.dispatch(machine.SetError(f"Your answers could not be submitted: {exc}"))
        except Exception as exc:
            self.dispatch(machine.SetError(f"Your answers could not be submitted: {exc}"))
            raise
        finally:
            self.dispatch(machine.Finished(final, result))
            self._sync.close()
        log.info(
            "Attempt %s finished: %s/%s points, passed=%s",
            attempt.id,
            result.score,
            result.max_score,
            result.passed,
        )
        return final

    def interrupt(self) -> asyncio.Task | None:
        """Leave mid-attempt. Pending answers are flushed in the background."""
        if not self._state.is_session_active:
            return None
        self.dispatch(machine.Interrupt())
        self._stop_countdown()
        task = self._sync.request_flush(status=AttemptStatus.INTERRUPTED)
        self._sync.close()
        log.info("Attempt %s interrupted", self._state.current_attempt.id)
        return task

    def close(self) -> None:
        """Stop timers. An in-flight flush is left to complete on its own."""
        self._stop_countdown()
        if self._sync is not None:
            self._sync.close()

    async def wait_idle(self) -> None:
        """Wait until no flush is in flight."""
        if self._sync is not None:
            await self._sync.wait_idle()

    def _expire(self) -> None:
        self.dispatch(machine.TimerExpired())
        self._stop_countdown()
        self._sync.request_flush(status=AttemptStatus.EXPIRED)
        self._sync.close()
        log.info("Attempt %s expired", self._state.current_attempt.id)

    def _stop_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.stop()

    def _on_tick(self, countdown: CountdownState) -> None:
        self.dispatch(machine.Tick(countdown.total_seconds_remaining))
        if countdown.is_overdue and self._state.is_session_active:
            self._expire()

    def _sync_context(self) -> dict[str, Any]:
        attempt = self._state.current_attempt
        spent = (self._clock() - as_utc(attempt.startedAt)).total_seconds()
        return {
            "currentPage": self._state.current_question_index,
            "timeSpentSeconds": max(0, int(spent)),
        }

    def _sync_failed(self, error: SyncError) -> None:
        self._sync_error = str(error)
        self.dispatch(machine.SetError(self._sync_error))

    def _sync_recovered(self) -> None:
        if self._sync_error is not None and self._state.error == self._sync_error:
            self.dispatch(machine.ClearError())
        self._sync_error = None
