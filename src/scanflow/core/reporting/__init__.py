"""Report rendering for findings and merge/pull request comments.

Provides:
- render_issue_body: Single finding as HTML, Markdown or plain text
- render_merge_comment: Aggregate Markdown comment for a scan
- export_html: Markdown to standalone HTML document
"""

from .export import export_html, markdown_to_html
from .issue_body import (
    BodyFormat,
    render_html_body,
    render_issue_body,
    render_markdown_body,
    render_text_body,
)
from .links import file_url_for, line_link
from .merge_comment import render_merge_comment

__all__ = [
    "BodyFormat",
    "render_issue_body",
    "render_html_body",
    "render_markdown_body",
    "render_text_body",
    "render_merge_comment",
    "export_html",
    "markdown_to_html",
    "file_url_for",
    "line_link",
]
