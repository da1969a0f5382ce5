import pytest

from lesson_app.core.services.batcher import QuestionBatcher

from conftest import make_questions


def test_batches_cover_set_without_duplicates():
    questions = make_questions(120)
    batcher = QuestionBatcher(questions, page_size=50)

    assert batcher.page_count == 3
    assert batcher.batch(0) == questions[0:50]
    assert batcher.batch(1) == questions[50:100]
    assert batcher.batch(2) == questions[100:120]

    combined = [q for i in range(batcher.page_count) for q in batcher.batch(i)]
    assert combined == questions


def test_navigation_flags():
    batcher = QuestionBatcher(make_questions(120), page_size=50)

    assert not batcher.has_previous(0)
    assert batcher.has_next(0)
    assert batcher.has_previous(1)
    assert batcher.has_next(1)
    assert not batcher.has_next(2)


def test_exact_multiple_has_no_trailing_page():
    batcher = QuestionBatcher(make_questions(100), page_size=50)

    assert batcher.page_count == 2
    assert not batcher.has_next(1)


def test_out_of_range_batches_are_empty():
    batcher = QuestionBatcher(make_questions(10), page_size=50)

    assert batcher.batch(3) == []
    assert batcher.batch(-1) == []


@pytest.mark.parametrize(
    "count, requested, expected",
    [(120, 7, 2), (120, -3, 0), (120, 1, 1), (0, 4, 0), (10, 1, 0)],
)
def test_clamp(count, requested, expected):
    batcher = QuestionBatcher(make_questions(count), page_size=50)

    assert batcher.clamp(requested) == expected


def test_global_index():
    batcher = QuestionBatcher(make_questions(120), page_size=50)

    assert batcher.global_index(2, 5) == 105


def test_rejects_non_positive_page_size():
    with pytest.raises(ValueError):
        QuestionBatcher([], page_size=0)
