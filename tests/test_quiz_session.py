import random

import pytest

from lesson_app.core.models import Question, SessionPhase, SessionSnapshot
from lesson_app.core.services.progress_store import (
    deserialize_snapshot,
    progress_key,
    serialize_snapshot,
)
from lesson_app.core.services.quiz_session import QuizSession

from conftest import FailingProgressStore, make_questions


def _session(store, questions, rng=None, **kwargs):
    return QuizSession(
        chapter_id="ch-1",
        questions=questions,
        store=store,
        rng=rng or random.Random(7),
        **kwargs,
    )


def _save(store, snapshot):
    store.set(progress_key("ch-1"), serialize_snapshot(snapshot))


def _stored(store):
    raw = store.get(progress_key("ch-1"))
    return None if raw is None else deserialize_snapshot(raw)


def _answer_all(session, count=None):
    for index in range(count if count is not None else len(session.questions)):
        session.select_answer(index, 0)


# --- Mounting ---

def test_mount_without_snapshot_enters_active_with_shuffled_copy(store, questions):
    session = _session(store, questions)

    assert session.phase is SessionPhase.IDLE
    assert session.mount()

    assert session.phase is SessionPhase.ACTIVE
    assert sorted(q.question for q in session.questions) == sorted(q.question for q in questions)
    assert session.answers == {}
    assert session.batch_index == 0


def test_mount_with_finalized_answers_goes_straight_to_results(store, questions):
    session = _session(store, questions, finalized_answers={0: 0, 1: 0})

    session.mount()

    assert session.phase is SessionPhase.RESULTS
    assert session.questions == questions
    assert session.answers == {0: 0, 1: 0}
    assert session.analysis_unlocked
    assert session.score == 1
    assert store.keys() == []


def test_finalized_answers_ignore_stored_snapshot(store, questions):
    _save(store, SessionSnapshot(answers={0: 1}, batch_index=0, questions=questions))
    session = _session(store, questions, finalized_answers={})

    session.mount()

    assert session.phase is SessionPhase.RESULTS
    assert session.answers == {}


def test_mount_with_snapshot_offers_resume_and_rejects_answers(store, questions):
    _save(store, SessionSnapshot(answers={0: 2}, batch_index=0, questions=questions))
    session = _session(store, questions)

    session.mount()

    assert session.phase is SessionPhase.RESUME_PROMPT
    assert not session.select_answer(0, 1)
    assert session.answers == {}


def test_mount_twice_is_rejected(store, questions):
    session = _session(store, questions)
    session.mount()

    assert not session.mount()


def test_malformed_snapshot_is_treated_as_absent(store, questions):
    store.set(progress_key("ch-1"), "{broken")
    session = _session(store, questions)

    session.mount()

    assert session.phase is SessionPhase.ACTIVE
    assert store.get(progress_key("ch-1")) is None


# --- Resume / discard ---

def test_resume_restores_snapshot_verbatim_and_counts_from_zero(store):
    saved_order = make_questions(5)[::-1]
    _save(store, SessionSnapshot(answers={0: 2, 1: 0}, batch_index=1, questions=saved_order))
    session = _session(store, make_questions(5), page_size=2)
    session.mount()
    assert not session.tick()

    assert session.resume()

    assert session.phase is SessionPhase.ACTIVE
    assert session.questions == saved_order
    assert session.answers == {0: 2, 1: 0}
    assert session.batch_index == 1
    assert session.elapsed_seconds == 0


def test_resume_clamps_batch_index(store):
    _save(store, SessionSnapshot(answers={0: 1}, batch_index=9, questions=make_questions(120)))
    session = _session(store, make_questions(120))
    session.mount()

    session.resume()

    assert session.batch_index == 2


def test_discard_clears_snapshot_and_keeps_fresh_shuffle(store):
    questions = make_questions(30)
    _save(store, SessionSnapshot(answers={0: 1, 3: 2}, batch_index=0, questions=questions))
    session = _session(store, questions)
    session.mount()
    fresh_order = session.questions

    assert session.discard()

    assert session.phase is SessionPhase.ACTIVE
    assert session.answers == {}
    assert session.batch_index == 0
    assert session.questions == fresh_order
    assert store.get(progress_key("ch-1")) is None


def test_resume_and_discard_only_apply_in_resume_prompt(store, questions):
    session = _session(store, questions)
    session.mount()

    assert not session.resume()
    assert not session.discard()


# --- Answers ---

def test_answers_are_sticky(store, questions):
    session = _session(store, questions)
    session.mount()

    assert session.select_answer(2, 1)
    assert not session.select_answer(2, 3)
    assert not session.select_answer(2, 1)

    assert session.answers == {2: 1}


@pytest.mark.parametrize("question_index, option_index", [(5, 0), (-1, 0), (0, 4), (0, -1)])
def test_out_of_range_selection_raises(store, questions, question_index, option_index):
    session = _session(store, questions)
    session.mount()

    with pytest.raises(ValueError):
        session.select_answer(question_index, option_index)
    assert session.answers == {}


def test_every_answer_is_mirrored_to_store(store, questions):
    session = _session(store, questions)
    session.mount()

    session.select_answer(0, 3)
    assert _stored(store) == SessionSnapshot(answers={0: 3}, batch_index=0, questions=session.questions)

    session.select_answer(4, 1)
    assert _stored(store).answers == {0: 3, 4: 1}


def test_nothing_is_stored_before_the_first_answer(store, questions):
    session = _session(store, questions)
    session.mount()

    assert store.keys() == []


def test_store_failure_keeps_session_running(questions):
    store = FailingProgressStore()
    session = _session(store, questions)
    session.mount()

    assert session.select_answer(1, 1)

    assert session.answers == {1: 1}
    assert "quota exceeded" in session.persistence_warning


# --- Navigation ---

def test_navigation_updates_batch_and_snapshot(store):
    session = _session(store, make_questions(120))
    session.mount()
    session.select_answer(0, 1)

    assert not session.previous_batch()
    assert session.next_batch()
    assert session.next_batch()
    assert not session.next_batch()
    assert session.batch_index == 2
    assert _stored(store).batch_index == 2
    assert len(session.current_batch()) == 20

    assert session.previous_batch()
    assert session.answers == {0: 1}


# --- Submission ---

def test_submission_floor_for_short_set(store):
    session = _session(store, make_questions(10))
    session.mount()

    _answer_all(session, 9)
    assert not session.is_submittable
    assert not session.request_submit()

    session.select_answer(9, 0)
    assert session.is_submittable
    assert session.request_submit()
    assert session.phase is SessionPhase.SUBMIT_CONFIRM


def test_submission_floor_caps_at_fifty(store):
    session = _session(store, make_questions(200))
    session.mount()

    _answer_all(session, 49)
    assert not session.is_submittable
    session.select_answer(49, 0)

    assert session.required_answer_count == 50
    assert session.is_submittable


def test_cancel_submit_returns_to_active_unchanged(store):
    session = _session(store, make_questions(3))
    session.mount()
    _answer_all(session)
    session.request_submit()

    assert session.cancel_submit()

    assert session.phase is SessionPhase.ACTIVE
    assert len(session.answers) == 3
    assert _stored(store) is not None


def test_confirm_submit_scores_clears_store_and_notifies_once(store):
    calls = []
    questions = [
        Question(question="q0", options=("a", "b"), correct_answer=1),
        Question(question="q1", options=("c", "d"), correct_answer=0),
    ]
    session = _session(store, questions, on_complete=lambda *args: calls.append(args))
    session.mount()
    shuffled = session.questions
    for index, question in enumerate(shuffled):
        session.select_answer(index, 1)
    session.tick()
    session.tick()
    session.request_submit()

    result = session.confirm_submit()

    expected_score = sum(1 for q in shuffled if q.correct_answer == 1)
    assert expected_score == 1
    assert result.score == 1
    assert calls == [(1, {0: 1, 1: 1}, shuffled, 2)]
    assert session.phase is SessionPhase.RESULTS
    assert store.get(progress_key("ch-1")) is None
    assert session.confirm_submit() is None
    assert len(calls) == 1


def test_results_is_terminal(store, questions):
    session = _session(store, questions)
    session.mount()
    _answer_all(session)
    session.request_submit()
    session.confirm_submit()
    answers_before = session.answers
    score_before = session.score

    assert not session.select_answer(0, 1)
    assert not session.request_submit()
    assert not session.cancel_submit()
    assert not session.resume()
    assert not session.discard()
    assert not session.tick()

    assert session.answers == answers_before
    assert session.score == score_before
    assert session.phase is SessionPhase.RESULTS
    assert store.keys() == []


def test_empty_question_set_submits_zero_result(store):
    calls = []
    session = _session(store, [], on_complete=lambda *args: calls.append(args))
    session.mount()

    assert session.is_submittable
    assert session.request_submit()
    result = session.confirm_submit()

    assert result.score == 0
    assert result.questions == []
    assert calls == [(0, {}, [], 0)]


def test_absent_question_list_behaves_like_empty(store):
    session = _session(store, None)
    session.mount()

    assert session.questions == []
    assert session.batcher.page_count == 0


# --- Time and leave guard ---

def test_elapsed_time_only_counts_while_active(store):
    _save(store, SessionSnapshot(answers={0: 0}, batch_index=0, questions=make_questions(3)))
    session = _session(store, make_questions(3))
    session.mount()

    assert not session.tick()
    session.resume()
    session.tick()
    session.tick()
    session.select_answer(1, 0)
    session.select_answer(2, 0)
    session.request_submit()
    session.tick()
    session.cancel_submit()
    session.tick()

    assert session.elapsed_seconds == 3


def test_leave_guard_requires_an_unsubmitted_answer(store, questions):
    session = _session(store, questions)
    session.mount()
    assert not session.should_warn_before_leaving

    _answer_all(session)
    assert session.should_warn_before_leaving
    session.request_submit()
    assert session.should_warn_before_leaving

    session.confirm_submit()
    assert not session.should_warn_before_leaving


def test_fresh_sessions_shuffle_independently(store):
    questions = make_questions(40)
    orders = []
    for seed in range(3):
        session = _session(store, questions, rng=random.Random(seed))
        session.mount()
        orders.append(tuple(q.question for q in session.questions))

    assert len(set(orders)) == 3
    assert questions == make_questions(40)
