"""Business logic shared between the HTTP shell and the quiz ticker."""

from __future__ import annotations

import logging
import random
from threading import Lock
from typing import Callable, TypeVar

from lesson_app.constants.quiz_constants import TICK_INTERVAL_SECONDS
from lesson_app.core.lesson_views import LessonView, resolve_lesson_view
from lesson_app.core.models import LessonContent, Question, QuizResult, SessionPhase
from lesson_app.core.services.progress_store import ProgressStore
from lesson_app.core.services.quiz_session import CompletionCallback, QuizSession
from lesson_app.core.services.session_timer import IntervalTicker

logger = logging.getLogger(__name__)

T = TypeVar("T")

TickerFactory = Callable[[Callable[[], None]], IntervalTicker]


class NoLessonLoadedError(RuntimeError):
    """Raised when a lesson or quiz operation is used before a lesson is opened."""


class LessonManager:
    """Facade over the open chapter: its view and, for quizzes, the session.

    Opening a new chapter atomically cancels the old chapter's ticker and
    drops its session before the new one is built. The ticker only runs while
    the quiz is Active.
    """

    def __init__(
        self,
        store: ProgressStore,
        on_complete: CompletionCallback | None = None,
        ticker_factory: TickerFactory | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._lock = Lock()
        self._store = store
        self._on_complete = on_complete
        self._ticker_factory = ticker_factory or (
            lambda callback: IntervalTicker(callback, TICK_INTERVAL_SECONDS)
        )
        self._rng = rng

        self._content: LessonContent | None = None
        self._view: LessonView | None = None
        self._session: QuizSession | None = None
        self._ticker: IntervalTicker | None = None

    # --- Lesson lifecycle ---

    def open_lesson(self, content: LessonContent) -> LessonView:
        with self._lock:
            self._teardown()
            self._content = content
            self._view = resolve_lesson_view(content)
            if content.content_type.is_quiz and content.questions is not None:
                session = QuizSession(
                    chapter_id=content.chapter_id,
                    questions=content.questions,
                    store=self._store,
                    finalized_answers=content.user_answers,
                    on_complete=self._on_complete,
                    rng=self._rng,
                )
                self._session = session
                self._ticker = self._ticker_factory(lambda: self._tick_session(session))
                session.mount()
                self._sync_ticker()
            logger.info(
                "Opened chapter %s (%s)", content.chapter_id, content.content_type.value
            )
            return self._view

    def close_lesson(self) -> None:
        with self._lock:
            self._teardown()

    def get_content(self) -> LessonContent | None:
        with self._lock:
            return self._content

    def get_view(self) -> LessonView:
        with self._lock:
            if self._view is None:
                raise NoLessonLoadedError("No lesson is open.")
            return self._view

    def has_quiz(self) -> bool:
        with self._lock:
            return self._session is not None

    def is_ticker_running(self) -> bool:
        with self._lock:
            return self._ticker is not None and self._ticker.is_running()

    # --- Quiz session delegation ---

    def get_session(self) -> QuizSession:
        with self._lock:
            return self._require_session()

    def resume(self) -> bool:
        return self._transition(lambda session: session.resume())

    def discard(self) -> bool:
        return self._transition(lambda session: session.discard())

    def select_answer(self, question_index: int, option_index: int) -> bool:
        return self._transition(lambda session: session.select_answer(question_index, option_index))

    def next_batch(self) -> bool:
        return self._transition(lambda session: session.next_batch())

    def previous_batch(self) -> bool:
        return self._transition(lambda session: session.previous_batch())

    def request_submit(self) -> bool:
        return self._transition(lambda session: session.request_submit())

    def cancel_submit(self) -> bool:
        return self._transition(lambda session: session.cancel_submit())

    def confirm_submit(self) -> QuizResult | None:
        return self._transition(lambda session: session.confirm_submit())

    def tick(self) -> bool:
        return self._transition(lambda session: session.tick())

    def should_warn_before_leaving(self) -> bool:
        with self._lock:
            return self._session is not None and self._session.should_warn_before_leaving

    def get_quiz_state(self) -> dict[str, object]:
        """Serializable view of the quiz for the host shell."""
        with self._lock:
            session = self._require_session()
            batcher = session.batcher
            batch_index = session.batch_index
            answers = session.answers
            show_results = session.phase is SessionPhase.RESULTS
            batch = [
                _question_state(
                    batcher.global_index(batch_index, local_index),
                    question,
                    answers,
                    reveal=show_results and session.analysis_unlocked,
                )
                for local_index, question in enumerate(batcher.batch(batch_index))
            ]
            return {
                "chapter_id": session.chapter_id,
                "phase": session.phase.name,
                "batch_index": batch_index,
                "page_count": batcher.page_count,
                "has_previous": batcher.has_previous(batch_index),
                "has_next": batcher.has_next(batch_index),
                "question_count": len(session.questions),
                "answered_count": session.answered_count,
                "required_answer_count": session.required_answer_count,
                "is_submittable": session.is_submittable,
                "elapsed_seconds": session.elapsed_seconds,
                "score": session.score if show_results else None,
                "should_warn_before_leaving": session.should_warn_before_leaving,
                "persistence_warning": session.persistence_warning,
                "questions": batch,
            }

    # --- Internals ---

    def _transition(self, action: Callable[[QuizSession], T]) -> T:
        with self._lock:
            outcome = action(self._require_session())
            self._sync_ticker()
            return outcome

    def _require_session(self) -> QuizSession:
        if self._session is None:
            raise NoLessonLoadedError("The open lesson has no quiz.")
        return self._session

    def _tick_session(self, session: QuizSession) -> None:
        with self._lock:
            # A late tick from a ticker that was cancelled by a chapter switch.
            if session is not self._session:
                return
            session.tick()

    def _sync_ticker(self) -> None:
        if self._session is None or self._ticker is None:
            return
        if self._session.phase is SessionPhase.ACTIVE:
            self._ticker.start()
        else:
            self._ticker.cancel()

    def _teardown(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
        self._ticker = None
        self._session = None
        self._view = None
        self._content = None


def _question_state(
    index: int, question: Question, answers: dict[int, int], reveal: bool
) -> dict[str, object]:
    state: dict[str, object] = {
        "index": index,
        "question": question.question,
        "options": list(question.options),
        "selected": answers.get(index),
    }
    if reveal:
        state["correct_answer"] = question.correct_answer
        state["is_correct"] = answers.get(index) == question.correct_answer
        state["explanation"] = question.explanation
    return state
