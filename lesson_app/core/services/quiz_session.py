"""Service for managing a learner's quiz attempt on one chapter."""

from __future__ import annotations

import logging
import random
from typing import Callable

from lesson_app.constants.quiz_constants import BATCH_SIZE, MIN_SUBMISSION_ANSWERS
from lesson_app.core.models import Question, QuizResult, SessionPhase, SessionSnapshot
from lesson_app.core.services.batcher import QuestionBatcher
from lesson_app.core.services.progress_store import (
    ProgressStore,
    ProgressStoreError,
    SnapshotFormatError,
    deserialize_snapshot,
    progress_key,
    serialize_snapshot,
)
from lesson_app.core.services.question_shuffler import shuffle_questions
from lesson_app.core.services.scorer import build_result, score_answers
from lesson_app.core.services.session_timer import ElapsedTimeTracker

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[int, dict[int, int], list[Question], int], None]


class QuizSession:
    """State machine for one quiz attempt.

    Every public transition returns ``True`` when it was applied and ``False``
    when the current phase rejects it. Whenever a transition leaves answers
    behind in an unsubmitted session the snapshot is written to the store
    before the method returns; submitting deletes it.
    """

    def __init__(
        self,
        chapter_id: str,
        questions: list[Question] | None,
        store: ProgressStore,
        finalized_answers: dict[int, int] | None = None,
        on_complete: CompletionCallback | None = None,
        rng: random.Random | None = None,
        page_size: int = BATCH_SIZE,
    ) -> None:
        self._chapter_id = chapter_id
        self._source_questions: list[Question] = list(questions or [])
        self._store = store
        self._finalized_answers = finalized_answers
        self._on_complete = on_complete
        self._rng = rng or random.Random()
        self._page_size = page_size

        self._phase: SessionPhase = SessionPhase.IDLE
        self._questions: list[Question] = []
        self._answers: dict[int, int] = {}
        self._batch_index: int = 0
        self._pending_snapshot: SessionSnapshot | None = None
        self._analysis_unlocked: bool = False
        self._result: QuizResult | None = None
        self._persistence_warning: str | None = None
        self._timer = ElapsedTimeTracker()

    # --- Read-only state ---

    @property
    def chapter_id(self) -> str:
        return self._chapter_id

    @property
    def storage_key(self) -> str:
        return progress_key(self._chapter_id)

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def answers(self) -> dict[int, int]:
        return dict(self._answers)

    @property
    def batch_index(self) -> int:
        return self._batch_index

    @property
    def elapsed_seconds(self) -> int:
        return self._timer.elapsed_seconds

    @property
    def analysis_unlocked(self) -> bool:
        return self._analysis_unlocked

    @property
    def result(self) -> QuizResult | None:
        return self._result

    @property
    def persistence_warning(self) -> str | None:
        """Last storage failure, if durability across reloads was lost."""
        return self._persistence_warning

    @property
    def batcher(self) -> QuestionBatcher:
        return QuestionBatcher(self._questions, self._page_size)

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def required_answer_count(self) -> int:
        return min(MIN_SUBMISSION_ANSWERS, len(self._questions))

    @property
    def is_submittable(self) -> bool:
        return self._phase is SessionPhase.ACTIVE and self.answered_count >= self.required_answer_count

    @property
    def should_warn_before_leaving(self) -> bool:
        return (
            self._phase in (SessionPhase.ACTIVE, SessionPhase.SUBMIT_CONFIRM)
            and bool(self._answers)
        )

    @property
    def score(self) -> int:
        return score_answers(self._questions, self._answers)

    def current_batch(self) -> list[Question]:
        return self.batcher.batch(self._batch_index)

    def is_answered(self, question_index: int) -> bool:
        return question_index in self._answers

    # --- Transitions ---

    def mount(self) -> bool:
        """Enter the first real phase from Idle."""
        if self._phase is not SessionPhase.IDLE:
            logger.warning("Ignoring mount of chapter %s in phase %s", self._chapter_id, self._phase.name)
            return False

        if self._finalized_answers is not None:
            self._questions = list(self._source_questions)
            self._answers = dict(self._finalized_answers)
            self._analysis_unlocked = True
            self._timer.stop()
            self._phase = SessionPhase.RESULTS
            logger.info("Chapter %s opened with finalized answers", self._chapter_id)
            return True

        self._questions = shuffle_questions(self._source_questions, self._rng)
        self._pending_snapshot = self._load_snapshot()
        if self._pending_snapshot is not None:
            self._phase = SessionPhase.RESUME_PROMPT
            logger.info("Found saved progress for chapter %s", self._chapter_id)
        else:
            self._enter_active()
        return True

    def resume(self) -> bool:
        """Continue from the stored snapshot."""
        if self._phase is not SessionPhase.RESUME_PROMPT:
            return False
        snapshot = self._pending_snapshot
        self._pending_snapshot = None
        if snapshot is not None:
            self._questions = list(snapshot.questions)
            self._answers = dict(snapshot.answers)
            self._batch_index = self.batcher.clamp(snapshot.batch_index)
        self._timer.reset()
        self._enter_active()
        self._persist()
        logger.info(
            "Resumed chapter %s with %d answers at batch %d",
            self._chapter_id,
            len(self._answers),
            self._batch_index,
        )
        return True

    def discard(self) -> bool:
        """Throw away the stored snapshot and start over on the fresh shuffle."""
        if self._phase is not SessionPhase.RESUME_PROMPT:
            return False
        self._pending_snapshot = None
        self._clear_snapshot()
        self._answers = {}
        self._batch_index = 0
        self._enter_active()
        logger.info("Discarded saved progress for chapter %s", self._chapter_id)
        return True

    def select_answer(self, question_index: int, option_index: int) -> bool:
        """Record the first answer for a question. Later selections are ignored."""
        if self._phase is not SessionPhase.ACTIVE:
            logger.warning(
                "Answer for question %d rejected in phase %s", question_index, self._phase.name
            )
            return False
        if not 0 <= question_index < len(self._questions):
            raise ValueError(f"Question index {question_index} out of range")
        if not 0 <= option_index < len(self._questions[question_index].options):
            raise ValueError(f"Option index {option_index} out of range for question {question_index}")
        if question_index in self._answers:
            logger.debug("Question %d already answered; keeping first answer", question_index)
            return False

        self._answers[question_index] = option_index
        self._persist()
        return True

    def next_batch(self) -> bool:
        if self._phase not in (SessionPhase.ACTIVE, SessionPhase.RESULTS):
            return False
        if not self.batcher.has_next(self._batch_index):
            return False
        self._batch_index += 1
        self._persist()
        return True

    def previous_batch(self) -> bool:
        if self._phase not in (SessionPhase.ACTIVE, SessionPhase.RESULTS):
            return False
        if not self.batcher.has_previous(self._batch_index):
            return False
        self._batch_index -= 1
        self._persist()
        return True

    def request_submit(self) -> bool:
        """Open the submit confirmation when enough questions are answered."""
        if not self.is_submittable:
            return False
        self._timer.pause()
        self._phase = SessionPhase.SUBMIT_CONFIRM
        return True

    def cancel_submit(self) -> bool:
        if self._phase is not SessionPhase.SUBMIT_CONFIRM:
            return False
        self._enter_active()
        return True

    def confirm_submit(self) -> QuizResult | None:
        """Finalize the attempt, clear stored progress and notify the host."""
        if self._phase is not SessionPhase.SUBMIT_CONFIRM:
            return None
        self._timer.stop()
        self._phase = SessionPhase.RESULTS
        self._clear_snapshot()
        self._analysis_unlocked = True
        self._result = build_result(self._questions, self._answers, self._timer.elapsed_seconds)
        logger.info(
            "Chapter %s submitted: %d/%d correct in %ds",
            self._chapter_id,
            self._result.score,
            len(self._questions),
            self._result.elapsed_seconds,
        )
        if self._on_complete is not None:
            self._on_complete(
                self._result.score,
                dict(self._result.answers),
                list(self._result.questions),
                self._result.elapsed_seconds,
            )
        return self._result

    def tick(self) -> bool:
        """Advance the elapsed-time counter by one second while Active."""
        return self._timer.tick()

    # --- Internals ---

    def _enter_active(self) -> None:
        self._phase = SessionPhase.ACTIVE
        self._timer.start()

    def _load_snapshot(self) -> SessionSnapshot | None:
        try:
            raw = self._store.get(self.storage_key)
        except ProgressStoreError as exc:
            self._persistence_warning = str(exc)
            logger.warning("Saved progress unavailable for chapter %s: %s", self._chapter_id, exc)
            return None
        if raw is None:
            return None
        try:
            return deserialize_snapshot(raw)
        except SnapshotFormatError as exc:
            logger.warning("Ignoring malformed progress for chapter %s: %s", self._chapter_id, exc)
            self._clear_snapshot()
            return None

    def _persist(self) -> None:
        if self._phase is SessionPhase.RESULTS or not self._answers:
            return
        snapshot = SessionSnapshot(
            answers=dict(self._answers),
            batch_index=self._batch_index,
            questions=list(self._questions),
        )
        try:
            self._store.set(self.storage_key, serialize_snapshot(snapshot))
        except ProgressStoreError as exc:
            self._persistence_warning = str(exc)
            logger.warning("Could not save progress for chapter %s: %s", self._chapter_id, exc)

    def _clear_snapshot(self) -> None:
        try:
            self._store.delete(self.storage_key)
        except ProgressStoreError as exc:
            self._persistence_warning = str(exc)
            logger.warning("Could not clear progress for chapter %s: %s", self._chapter_id, exc)
