"""Randomized ordering of a quiz's question set."""

from __future__ import annotations

import random

from lesson_app.core.models import Question


def shuffle_questions(questions: list[Question], rng: random.Random | None = None) -> list[Question]:
    """Return a new, uniformly shuffled copy of ``questions``.

    Answer indices are tied to the order returned here, so a session calls
    this once when it starts fresh and never again while answers exist.
    """
    shuffled = list(questions)
    (rng or random).shuffle(shuffled)
    return shuffled
