"""HTML export of rendered Markdown comments.

Converts a merge comment (or any Markdown body) to a standalone HTML
document, handy for previewing what a pull request comment will look
like before posting it.
"""

import markdown

_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
            line-height: 1.5;
            max-width: 1000px;
            margin: 0 auto;
            padding: 20px;
            color: #24292f;
        }

        table {
            border-collapse: collapse;
            margin: 16px 0;
        }

        th, td {
            border: 1px solid #d0d7de;
            padding: 6px 13px;
        }

        pre {
            background-color: #f6f8fa;
            border-radius: 6px;
            padding: 16px;
            overflow-x: auto;
        }

        hr {
            border: none;
            border-top: 1px solid #d0d7de;
            margin: 24px 0;
        }
"""


def markdown_to_html(markdown_content: str, title: str = "Scan Results") -> str:
    """Convert Markdown to a styled HTML document.

    Args:
        markdown_content: Markdown text (CRLF or LF line endings)
        title: Document title

    Returns:
        Complete HTML document
    """
    html_body = markdown.markdown(
        markdown_content.replace("\r\n", "\n"),
        extensions=["tables", "fenced_code"],
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>{_STYLE}    </style>
</head>
<body>
{html_body}
</body>
</html>
"""


def export_html(markdown_content: str, output_path: str, title: str = "Scan Results") -> str:
    """Export Markdown content to an HTML file.

    Args:
        markdown_content: Markdown text, e.g. a rendered merge comment
        output_path: Path to write the HTML file
        title: Document title

    Returns:
        Path to written HTML file

    Example:
        >>> comment = render_merge_comment(request, results, config.comment)
        >>> export_html(comment, "/tmp/comment.html")
    """
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(markdown_to_html(markdown_content, title))

    return output_path
