"""Fixed-size pagination over a shuffled question set."""

from __future__ import annotations

import math

from lesson_app.constants.quiz_constants import BATCH_SIZE
from lesson_app.core.models import Question


class QuestionBatcher:
    """Partitions a question set into contiguous pages of ``page_size``."""

    def __init__(self, questions: list[Question], page_size: int = BATCH_SIZE) -> None:
        if page_size <= 0:
            raise ValueError("Page size must be a positive integer.")
        self._questions = questions
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_count(self) -> int:
        return math.ceil(len(self._questions) / self._page_size)

    def batch(self, batch_index: int) -> list[Question]:
        if batch_index < 0:
            return []
        start = batch_index * self._page_size
        return self._questions[start:start + self._page_size]

    def has_previous(self, batch_index: int) -> bool:
        return batch_index > 0

    def has_next(self, batch_index: int) -> bool:
        return (batch_index + 1) * self._page_size < len(self._questions)

    def clamp(self, batch_index: int) -> int:
        """Clamp a batch index into ``[0, page_count - 1]`` (0 for an empty set)."""
        return max(0, min(batch_index, self.page_count - 1))

    def global_index(self, batch_index: int, local_index: int) -> int:
        return batch_index * self._page_size + local_index
