"""Domain models for the lesson application."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class ContentType(str, Enum):
    """Kinds of lesson content a chapter can carry."""

    NOTES_MARKDOWN = "NOTES_MARKDOWN"
    NOTES_HTML = "NOTES_HTML"
    NOTES_IMAGE_AI = "NOTES_IMAGE_AI"
    PDF_VIEWER = "PDF_VIEWER"
    VIDEO_LECTURE = "VIDEO_LECTURE"
    MCQ_ANALYSIS = "MCQ_ANALYSIS"
    MCQ_SIMPLE = "MCQ_SIMPLE"

    @property
    def is_quiz(self) -> bool:
        return self in (ContentType.MCQ_ANALYSIS, ContentType.MCQ_SIMPLE)


class SessionPhase(Enum):
    """Lifecycle phases of a quiz session. Exactly one is active at a time."""

    IDLE = auto()
    RESUME_PROMPT = auto()
    ACTIVE = auto()
    SUBMIT_CONFIRM = auto()
    RESULTS = auto()


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question. Identity is its position in the question set."""

    question: str
    options: tuple[str, ...]
    correct_answer: int
    explanation: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }
        if self.explanation is not None:
            payload["explanation"] = self.explanation
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Question":
        """Build a question from its wire form, validating field types."""
        question = data.get("question")
        options = data.get("options")
        correct_answer = data.get("correctAnswer")
        explanation = data.get("explanation")
        if not isinstance(question, str):
            raise ValueError("Question text must be a string.")
        if not isinstance(options, (list, tuple)) or not all(isinstance(o, str) for o in options):
            raise ValueError("Question options must be a list of strings.")
        if isinstance(correct_answer, bool) or not isinstance(correct_answer, int):
            raise ValueError("correctAnswer must be an integer option index.")
        if explanation is not None and not isinstance(explanation, str):
            raise ValueError("Explanation must be a string when provided.")
        return cls(
            question=question,
            options=tuple(options),
            correct_answer=correct_answer,
            explanation=explanation,
        )


@dataclass(frozen=True, slots=True)
class VideoItem:
    """A single entry of a lecture playlist."""

    title: str
    url: str


@dataclass(slots=True)
class LessonContent:
    """Content record handed over by the host for one chapter."""

    chapter_id: str
    content_type: ContentType
    title: str = ""
    chapter_title: str = ""
    content: str = ""
    questions: list[Question] | None = None
    user_answers: dict[int, int] | None = None  # finalized answers, bypass the quiz session
    ai_html_content: str | None = None
    video_playlist: list[VideoItem] = field(default_factory=list)


@dataclass(slots=True)
class SessionSnapshot:
    """Persisted form of an in-progress quiz session."""

    answers: dict[int, int]
    batch_index: int
    questions: list[Question]


@dataclass(frozen=True, slots=True)
class QuizResult:
    """Finalized result package delivered to the host on submission."""

    score: int
    answers: dict[int, int]
    questions: list[Question]
    elapsed_seconds: int
