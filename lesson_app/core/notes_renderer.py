"""Markdown notes -> HTML for the lesson viewer.

Math stays as ``$...$`` / ``$$...$$`` source and is typeset by MathJax in the
learner's browser. Block quotes, inline code and tables are tagged with
``note-*`` classes so the page stylesheet can style them as callouts.
"""

from __future__ import annotations

from html import escape

from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore

EMPTY_NOTES_PLACEHOLDER = "Initialization required... No content stream detected."

_MATHJAX_SRC = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"

_NOTE_CLASSES = {
    "blockquote_open": "note-callout",
    "code_inline": "note-code",
    "table_open": "note-table",
}

_PAGE = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{title}</title>
    <style>
      body {{ font-family: system-ui, sans-serif; max-width: 48rem; margin: 0 auto; padding: 1.5rem; color: #1e293b; }}
      .lesson-notes {{ font-size: 1.05rem; line-height: 1.7; }}
      .note-callout {{ border-left: 4px solid #2563eb; margin: 0; padding: 0.25rem 1rem; background: #eff6ff; }}
      .note-code {{ background: #f1f5f9; border-radius: 4px; padding: 0 0.25rem; }}
      .note-table {{ border-collapse: collapse; }}
      .note-table td, .note-table th {{ border: 1px solid #cbd5e1; padding: 0.25rem 0.5rem; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }} }};
    </script>
    <script defer src="{mathjax_src}"></script>
  </head>
  <body>
    <article class="lesson-notes">{body}</article>
  </body>
</html>"""


def _tag_note_tokens(state: StateCore) -> None:
    for token in state.tokens:
        css_class = _NOTE_CLASSES.get(token.type)
        if css_class:
            token.attrSet("class", css_class)
        for child in token.children or ():
            css_class = _NOTE_CLASSES.get(child.type)
            if css_class:
                child.attrSet("class", css_class)


def build_notes_parser(allow_html: bool = False) -> MarkdownIt:
    parser = MarkdownIt("commonmark", {"html": allow_html}).enable(["table", "strikethrough"])
    parser.core.ruler.push("note_classes", _tag_note_tokens)
    return parser


class NotesRenderer:
    """Renders chapter notes as fragments or as standalone MathJax pages."""

    def __init__(self, allow_html: bool = False) -> None:
        self._parser = build_notes_parser(allow_html)

    def render(self, notes: str | None) -> str:
        text = (notes or "").strip()
        if not text:
            return f"<p><em>{EMPTY_NOTES_PLACEHOLDER}</em></p>"
        return self._parser.render(text)

    def page(self, body_html: str, title: str) -> str:
        return _PAGE.format(title=escape(title), mathjax_src=_MATHJAX_SRC, body=body_html)


notes_renderer = NotesRenderer()
