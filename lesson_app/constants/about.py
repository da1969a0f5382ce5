"""Static metadata describing LessonView."""

APP_NAME = "LessonView"
APP_VERSION = "0.1"
APP_ABOUT_TEXT = (
    "LessonView presents chaptered study material (notes, PDFs, videos and "
    "multiple-choice quizzes) and keeps quiz progress safe across reloads."
)
