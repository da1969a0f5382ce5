"""FastAPI server that exposes the open lesson and its quiz session."""

from __future__ import annotations

from threading import Thread
from typing import Any, Callable, TypeVar

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
import uvicorn

from lesson_app.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from lesson_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from lesson_app.core.lesson_importer import LessonImportError, lesson_from_dict
from lesson_app.core.lesson_manager import LessonManager, NoLessonLoadedError
from lesson_app.core.lesson_views import ViewKind
from lesson_app.core.notes_renderer import notes_renderer
from lesson_app.core.models import QuizResult

T = TypeVar("T")


class LessonPayload(BaseModel):
    """Lesson record as sent by the host; keys follow the content JSON format."""

    chapterId: str
    type: str
    title: str = ""
    chapterTitle: str = ""
    content: str = ""
    mcqData: list[dict[str, Any]] | None = None
    userAnswers: dict[str, int] | None = None
    aiHtmlContent: str | None = None
    videoPlaylist: list[dict[str, str]] | None = None


class AnswerPayload(BaseModel):
    """Payload schema for a single answer selection."""

    question_index: int
    option_index: int


def _get_lesson_manager_dependency(lesson_manager: LessonManager):
    def dependency() -> LessonManager:
        return lesson_manager

    return dependency


def _call(action: Callable[[], T]) -> T:
    try:
        return action()
    except NoLessonLoadedError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _require_applied(applied: bool, detail: str) -> None:
    if not applied:
        raise HTTPException(status_code=409, detail=detail)


def _result_to_dict(result: QuizResult) -> dict[str, object]:
    return {
        "score": result.score,
        "answers": {str(index): option for index, option in result.answers.items()},
        "questions": [question.to_dict() for question in result.questions],
        "elapsed_seconds": result.elapsed_seconds,
    }


def create_api_app(lesson_manager: LessonManager) -> FastAPI:
    """Create a FastAPI application wired to the provided lesson manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION, description=APP_ABOUT_TEXT)
    lesson_manager_dep = _get_lesson_manager_dependency(lesson_manager)

    @app.post("/lesson", status_code=201)
    def open_lesson(
        payload: LessonPayload,
        manager: LessonManager = Depends(lesson_manager_dep),
    ) -> dict[str, object]:
        try:
            content = lesson_from_dict(payload.model_dump(exclude_none=True))
        except LessonImportError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        view = manager.open_lesson(content)
        return view.to_dict()

    @app.get("/lesson")
    def get_lesson(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        return _call(manager.get_view).to_dict()

    @app.get("/lesson/html", response_class=HTMLResponse)
    def get_lesson_html(manager: LessonManager = Depends(lesson_manager_dep)) -> str:
        view = _call(manager.get_view)
        if view.html is None:
            raise HTTPException(status_code=409, detail=f"A {view.kind.value} view has no HTML body.")
        if view.kind is ViewKind.MARKDOWN_NOTES:
            return notes_renderer.page(view.html, title=view.title or APP_NAME)
        return view.html

    @app.get("/quiz")
    def get_quiz(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        return _call(manager.get_quiz_state)

    @app.post("/quiz/resume")
    def resume_quiz(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.resume), "There is no saved progress to resume.")
        return manager.get_quiz_state()

    @app.post("/quiz/discard")
    def discard_quiz(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.discard), "There is no saved progress to discard.")
        return manager.get_quiz_state()

    @app.post("/quiz/answer", status_code=201)
    def select_answer(
        payload: AnswerPayload,
        manager: LessonManager = Depends(lesson_manager_dep),
    ) -> dict[str, object]:
        recorded = _call(lambda: manager.select_answer(payload.question_index, payload.option_index))
        state = manager.get_quiz_state()
        if not recorded and state["phase"] != "ACTIVE":
            raise HTTPException(status_code=409, detail=f"Answers are not accepted in phase {state['phase']}.")
        return {
            "recorded": recorded,
            "answered_count": state["answered_count"],
            "is_submittable": state["is_submittable"],
        }

    @app.post("/quiz/batch/next")
    def next_batch(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.next_batch), "Already on the last batch.")
        return manager.get_quiz_state()

    @app.post("/quiz/batch/previous")
    def previous_batch(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.previous_batch), "Already on the first batch.")
        return manager.get_quiz_state()

    @app.post("/quiz/submit")
    def request_submit(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.request_submit), "The quiz cannot be submitted yet.")
        return manager.get_quiz_state()

    @app.post("/quiz/submit/cancel")
    def cancel_submit(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        _require_applied(_call(manager.cancel_submit), "No submission is awaiting confirmation.")
        return manager.get_quiz_state()

    @app.post("/quiz/submit/confirm")
    def confirm_submit(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, object]:
        result = _call(manager.confirm_submit)
        if result is None:
            raise HTTPException(status_code=409, detail="No submission is awaiting confirmation.")
        return _result_to_dict(result)

    @app.get("/quiz/leave-guard")
    def leave_guard(manager: LessonManager = Depends(lesson_manager_dep)) -> dict[str, bool]:
        return {"warn": manager.should_warn_before_leaving()}

    return app


def start_api_server(
    lesson_manager: LessonManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(lesson_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="LessonApiServer", daemon=True)
    thread.start()
    return thread
