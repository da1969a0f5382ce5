"""Resolution of lesson content into the view the learner is shown.

The quiz is the only stateful view; every other content type reduces to a
URL or an HTML body that the host shell displays as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from html import unescape
from urllib.parse import parse_qs, urlparse

from lesson_app.core.notes_renderer import notes_renderer
from lesson_app.core.models import ContentType, LessonContent, VideoItem

_YOUTUBE_EMBED_BASE = "https://www.youtube.com/embed/"
_PLAYER_PARAMS = "autoplay=1&modestbranding=1&rel=0&iv_load_policy=3&controls=1&disablekb=1&showinfo=0"


class ViewKind(str, Enum):
    QUIZ = "quiz"
    AI_NOTES_HTML = "ai_notes_html"
    AI_NOTES_IMAGE = "ai_notes_image"
    VIDEO = "video"
    DOCUMENT = "document"
    HTML_NOTES = "html_notes"
    MARKDOWN_NOTES = "markdown_notes"


@dataclass(slots=True)
class LessonView:
    """What the host should display for a chapter's content."""

    kind: ViewKind
    title: str
    html: str | None = None
    url: str | None = None
    playlist: list[VideoItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "html": self.html,
            "url": self.url,
            "playlist": [{"title": item.title, "url": item.url} for item in self.playlist],
        }


def decode_html(encoded: str) -> str:
    """Undo HTML entity escaping applied by the content editor."""
    return unescape(encoded)


def embed_video_url(url: str) -> str:
    """Rewrite YouTube watch/short links to embed links with fixed player parameters."""
    source = url
    if "watch?v=" in source:
        video_id = parse_qs(urlparse(source).query).get("v", [""])[0]
        source = f"{_YOUTUBE_EMBED_BASE}{video_id}"
    elif "youtu.be/" in source:
        video_id = source.split("youtu.be/", 1)[1].split("?", 1)[0]
        source = f"{_YOUTUBE_EMBED_BASE}{video_id}"
    return f"{source}?{_PLAYER_PARAMS}"


def document_preview_url(url: str) -> str:
    return url.replace("/view", "/preview", 1).replace("/edit", "/preview", 1)


def is_document_link(url: str) -> bool:
    return url.lower().endswith(".pdf") or "drive.google.com" in url


def _is_video_source(content: LessonContent) -> bool:
    return "youtube" in content.content or "youtu.be" in content.content or bool(content.video_playlist)


def resolve_lesson_view(content: LessonContent) -> LessonView:
    """Pick the view for ``content`` following the lesson viewer's precedence rules."""
    title = content.title or content.chapter_title
    content_type = content.content_type

    if content_type is ContentType.NOTES_IMAGE_AI:
        if content.ai_html_content:
            return LessonView(ViewKind.AI_NOTES_HTML, title, html=decode_html(content.ai_html_content))
        return LessonView(ViewKind.AI_NOTES_IMAGE, title, url=content.content)

    if content_type.is_quiz and content.questions is not None:
        return LessonView(ViewKind.QUIZ, title)

    if content_type in (ContentType.PDF_VIEWER, ContentType.VIDEO_LECTURE) and _is_video_source(content):
        playlist = content.video_playlist or [VideoItem(title=content.chapter_title, url=content.content)]
        embedded = [VideoItem(title=item.title, url=embed_video_url(item.url)) for item in playlist]
        return LessonView(ViewKind.VIDEO, title, playlist=embedded)

    if content_type.value.startswith(("PDF", "NOTES_HTML")):
        if is_document_link(content.content):
            return LessonView(ViewKind.DOCUMENT, title, url=document_preview_url(content.content))
        return LessonView(ViewKind.HTML_NOTES, title, html=decode_html(content.content))

    return LessonView(ViewKind.MARKDOWN_NOTES, title, html=notes_renderer.render(content.content))
