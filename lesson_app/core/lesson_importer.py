"""Utilities for importing lesson content and question banks from files.

Lesson records are JSON objects::

    {
      "chapterId": "phy-07",
      "chapterTitle": "Optics",
      "title": "Optics - practice set",
      "type": "MCQ_SIMPLE",
      "content": "",
      "mcqData": [{"question": "...", "options": ["a", "b"], "correctAnswer": 1}],
      "mcqFile": "optics.txt",
      "userAnswers": {"0": 1},
      "aiHtmlContent": "&lt;h1&gt;...",
      "videoPlaylist": [{"title": "Part 1", "url": "https://youtu.be/abc"}]
    }

``mcqFile`` points at a question bank in the plain-text format below,
resolved relative to the lesson file. Blocks are separated by blank lines or
``---``::

    Q: Which lens converges light?
    A: Concave
    B: Convex
    CORRECT: B
    EXPLANATION: A convex lens bends parallel rays towards the focus.

Any number of lettered options (at least two) is accepted.
"""

from __future__ import annotations

import json
from pathlib import Path
import string

from lesson_app.core.models import ContentType, LessonContent, Question, VideoItem


class LessonImportError(Exception):
    """Raised when lesson content or a question bank cannot be parsed."""


_OPTION_LETTERS = string.ascii_uppercase


def load_lesson_from_file(file_path: Path) -> LessonContent:
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LessonImportError(f"Lesson file is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise LessonImportError("Lesson file must contain a JSON object.")

    mcq_file = payload.get("mcqFile")
    if mcq_file is not None:
        bank_path = (file_path.parent / str(mcq_file)).resolve()
        payload = {**payload, "mcqData": [q.to_dict() for q in load_questions_from_file(bank_path)]}
    return lesson_from_dict(payload)


def lesson_from_dict(payload: dict[str, object]) -> LessonContent:
    """Build a :class:`LessonContent` from its JSON record."""
    chapter_id = payload.get("chapterId")
    if chapter_id is None or str(chapter_id).strip() == "":
        raise LessonImportError("Lesson record must include a chapterId.")

    raw_type = payload.get("type")
    try:
        content_type = ContentType(raw_type)
    except ValueError as exc:
        raise LessonImportError(f"Unknown content type: {raw_type!r}") from exc

    questions = None
    raw_questions = payload.get("mcqData")
    if raw_questions is not None:
        if not isinstance(raw_questions, list):
            raise LessonImportError("mcqData must be a list of questions.")
        try:
            questions = [Question.from_dict(item) for item in raw_questions]
        except (AttributeError, ValueError) as exc:
            raise LessonImportError(f"Invalid question in mcqData: {exc}") from exc

    return LessonContent(
        chapter_id=str(chapter_id),
        content_type=content_type,
        title=str(payload.get("title") or ""),
        chapter_title=str(payload.get("chapterTitle") or ""),
        content=str(payload.get("content") or ""),
        questions=questions,
        user_answers=_parse_user_answers(payload.get("userAnswers")),
        ai_html_content=_optional_str(payload.get("aiHtmlContent")),
        video_playlist=_parse_playlist(payload.get("videoPlaylist")),
    )


def load_questions_from_file(file_path: Path) -> list[Question]:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LessonImportError(f"Could not read question bank {file_path}: {exc}") from exc
    questions = parse_question_bank(text)
    if not questions:
        raise LessonImportError("Question bank did not contain any questions.")
    return questions


def parse_question_bank(text: str) -> list[Question]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [_parse_block(block) for block in blocks if block]


def _parse_block(block: str) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    explanation_lines: list[str] = []
    correct_letter: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise LessonImportError(f"Encountered text outside of a known section: '{line}'.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise LessonImportError("Question text missing (Q: ...)")

    letters = _OPTION_LETTERS[: len(options)]
    if len(options) < 2 or set(options) != set(letters):
        raise LessonImportError(
            "Options must be lettered consecutively from A and there must be at least two."
        )
    option_list = [options[letter].strip() for letter in letters]
    if any(not option for option in option_list):
        raise LessonImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise LessonImportError(f"CORRECT is missing for question '{question_text}'.")
    if correct_letter not in letters:
        raise LessonImportError(f"CORRECT must be one of {', '.join(letters)}.")

    explanation = "\n".join(explanation_lines).strip() or None
    return Question(
        question=question_text,
        options=tuple(option_list),
        correct_answer=letters.index(correct_letter),
        explanation=explanation,
    )


def _parse_user_answers(raw: object) -> dict[int, int] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise LessonImportError("userAnswers must be an object of index -> option.")
    answers: dict[int, int] = {}
    for raw_index, option in raw.items():
        try:
            answers[int(raw_index)] = int(option)
        except (TypeError, ValueError) as exc:
            raise LessonImportError(f"Invalid user answer {raw_index!r}: {option!r}") from exc
    return answers


def _parse_playlist(raw: object) -> list[VideoItem]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise LessonImportError("videoPlaylist must be a list.")
    playlist: list[VideoItem] = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("url"), str):
            raise LessonImportError("Each playlist entry needs a url.")
        playlist.append(VideoItem(title=str(entry.get("title") or ""), url=entry["url"]))
    return playlist


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)
