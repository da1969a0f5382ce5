"""Durable key-value storage for in-progress quiz snapshots.

Stores only ever see strings: the session serializes its snapshot to JSON
before handing it over, which keeps every backend (in-memory fake, file
system, browser-style local storage) interchangeable.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from lesson_app.constants.quiz_constants import PROGRESS_KEY_NAMESPACE
from lesson_app.core.models import Question, SessionSnapshot


class ProgressStoreError(Exception):
    """Raised when a progress store cannot read or write an entry."""


class SnapshotFormatError(ValueError):
    """Raised when a stored snapshot cannot be decoded."""


class ProgressStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def progress_key(chapter_id: str) -> str:
    """Return the namespaced storage key for a chapter's quiz progress."""
    return f"{PROGRESS_KEY_NAMESPACE}_{chapter_id}"


def serialize_snapshot(snapshot: SessionSnapshot) -> str:
    payload = {
        "answerMap": {str(index): option for index, option in snapshot.answers.items()},
        "batchIndex": snapshot.batch_index,
        "questionSet": [question.to_dict() for question in snapshot.questions],
    }
    return json.dumps(payload, ensure_ascii=False)


def deserialize_snapshot(raw: str) -> SessionSnapshot:
    """Decode a stored snapshot, rejecting anything that is not self-consistent."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SnapshotFormatError("Snapshot must be a JSON object.")

    raw_questions = payload.get("questionSet")
    raw_answers = payload.get("answerMap", {})
    batch_index = payload.get("batchIndex", 0)
    if not isinstance(raw_questions, list):
        raise SnapshotFormatError("Snapshot is missing its question set.")
    if not isinstance(raw_answers, dict):
        raise SnapshotFormatError("Snapshot answer map must be an object.")
    if isinstance(batch_index, bool) or not isinstance(batch_index, int):
        raise SnapshotFormatError("Snapshot batch index must be an integer.")

    try:
        questions = [Question.from_dict(item) for item in raw_questions]
    except (AttributeError, ValueError) as exc:
        raise SnapshotFormatError(f"Snapshot question set is malformed: {exc}") from exc

    answers: dict[int, int] = {}
    for raw_index, option in raw_answers.items():
        try:
            index = int(raw_index)
        except ValueError as exc:
            raise SnapshotFormatError(f"Answer key '{raw_index}' is not an index.") from exc
        if not 0 <= index < len(questions):
            raise SnapshotFormatError(f"Answer key {index} is outside the question set.")
        if isinstance(option, bool) or not isinstance(option, int):
            raise SnapshotFormatError(f"Answer for question {index} is not an option index.")
        if not 0 <= option < len(questions[index].options):
            raise SnapshotFormatError(f"Answer {option} is outside the options of question {index}.")
        answers[index] = option

    return SessionSnapshot(answers=answers, batch_index=batch_index, questions=questions)


class InMemoryProgressStore:
    """Dictionary-backed store, lost when the process exits."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._entries)


class JsonFileProgressStore:
    """Stores each key as a file inside a directory.

    Writes go to a temporary sibling and are moved into place with
    ``os.replace`` so an interrupted write leaves the previous value intact.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ProgressStoreError(f"Could not read progress entry '{key}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(value, encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as exc:
            if temp_path.exists():
                temp_path.unlink()
            raise ProgressStoreError(f"Could not write progress entry '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise ProgressStoreError(f"Could not delete progress entry '{key}': {exc}") from exc

    def _path_for(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys on distinct files.
        return self._directory / f"{quote(key, safe='')}.json"
