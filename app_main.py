"""Application entry point for LessonView."""

from __future__ import annotations

from pathlib import Path
import sys

from lesson_app.core.lesson_importer import LessonImportError, load_lesson_from_file
from lesson_app.core.lesson_manager import LessonManager
from lesson_app.core.models import Question
from lesson_app.core.services.progress_store import JsonFileProgressStore
from lesson_app.server.api_server import start_api_server
from lesson_app.utils.logging_config import configure_logging
from lesson_app.utils.settings import AppSettings


def main() -> None:
    """Initialize logging, open an optional lesson file and serve the API."""
    settings = AppSettings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting LessonView…")

    def report_result(score: int, answers: dict[int, int], questions: list[Question], elapsed: int) -> None:
        logger.info(
            "Quiz finished: %d/%d correct, %d answered, %ds",
            score,
            len(questions),
            len(answers),
            elapsed,
        )

    store = JsonFileProgressStore(settings.progress_dir)
    lesson_manager = LessonManager(store=store, on_complete=report_result)

    if len(sys.argv) > 1:
        lesson_path = Path(sys.argv[1])
        try:
            lesson_manager.open_lesson(load_lesson_from_file(lesson_path))
        except (OSError, LessonImportError) as exc:
            logger.error("Could not open lesson %s: %s", lesson_path, exc)
            sys.exit(1)

    server_thread = start_api_server(lesson_manager, host=settings.host, port=settings.port)
    logger.info("Lesson API available at http://%s:%d/", settings.host, settings.port)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down.")
        lesson_manager.close_lesson()


if __name__ == "__main__":
    main()
