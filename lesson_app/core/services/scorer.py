"""Scoring of submitted quiz sessions."""

from __future__ import annotations

from lesson_app.core.models import Question, QuizResult


def score_answers(questions: list[Question], answers: dict[int, int]) -> int:
    """Count answered questions whose selected option is the correct one."""
    return sum(
        1
        for index, option in answers.items()
        if 0 <= index < len(questions) and option == questions[index].correct_answer
    )


def build_result(questions: list[Question], answers: dict[int, int], elapsed_seconds: int) -> QuizResult:
    """Package the finalized session for the host."""
    return QuizResult(
        score=score_answers(questions, answers),
        answers=dict(answers),
        questions=list(questions),
        elapsed_seconds=elapsed_seconds,
    )
