import os
import random
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from lesson_app.core.models import Question
from lesson_app.core.services.progress_store import InMemoryProgressStore, ProgressStoreError


def make_questions(count, option_count=4):
    """Questions whose text carries their original position."""
    return [
        Question(
            question=f"Question {i}",
            options=tuple(f"Option {i}.{o}" for o in range(option_count)),
            correct_answer=i % option_count,
            explanation=f"Because {i}",
        )
        for i in range(count)
    ]


class FailingProgressStore(InMemoryProgressStore):
    """Store whose writes fail, like a browser storage quota being exceeded."""

    def set(self, key, value):
        raise ProgressStoreError("quota exceeded")


class FakeTicker:
    """Stand-in for IntervalTicker that fires only when told to."""

    def __init__(self, callback):
        self.callback = callback
        self.running = False
        self.start_calls = 0
        self.cancel_calls = 0

    def is_running(self):
        return self.running

    def start(self):
        self.start_calls += 1
        self.running = True

    def cancel(self):
        self.cancel_calls += 1
        self.running = False

    def fire(self, times=1):
        for _ in range(times):
            self.callback()


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def questions():
    return make_questions(5)
