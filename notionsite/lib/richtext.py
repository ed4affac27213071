from html import escape
from typing import List, Sequence

from notionsite.types import Annotations, RichText

BACKGROUND_SUFFIX = "_background"
LINK_CLASSES = "text-blue-500 hover:underline"
CODE_CLASSES = "font-mono text-sm bg-gray-100 p-1 rounded"


def color_classes(color: str | None) -> str:
    """CSS classes for a Notion color.

    Examples:
        - `"red"` -> `"text-red-500"`.
        - `"red_background"` -> `"bg-red-100 text-red-800 px-1 rounded"`.
        - `"default"` -> `""`.
    """
    if not isinstance(color, str) or not color or color == "default":
        return ""

    if color.endswith(BACKGROUND_SUFFIX):
        name = color[: -len(BACKGROUND_SUFFIX)]
        return f"bg-{name}-100 text-{name}-800 px-1 rounded"

    return f"text-{color}-500"


def render_span(span: RichText) -> str:
    annotations = span.annotations
    if not isinstance(annotations, Annotations):
        annotations = Annotations()

    content = escape(span.plain_text or "")

    # Innermost first.
    if annotations.code:
        content = f'<code class="{CODE_CLASSES}">{content}</code>'
    if annotations.bold:
        content = f"<strong>{content}</strong>"
    if annotations.italic:
        content = f"<em>{content}</em>"
    if annotations.strikethrough:
        content = f"<del>{content}</del>"
    if annotations.underline:
        content = f"<u>{content}</u>"

    style = escape(color_classes(annotations.color))

    if span.href:
        classes = f"{LINK_CLASSES} {style}".strip()
        return (
            f'<a href="{escape(span.href)}" class="{classes}" '
            f'target="_blank" rel="noopener noreferrer">{content}</a>'
        )

    if style:
        return f'<span class="{style}">{content}</span>'

    return f"<span>{content}</span>"


def render_spans(spans: Sequence[RichText] | None) -> List[str]:
    """Render each span into inline markup, keeping the order."""
    if not spans:
        return []

    return [render_span(span) for span in spans]


def render_rich_text(spans: Sequence[RichText] | None) -> str:
    """Render a sequence of spans. Returns empty string for no spans."""
    return "".join(render_spans(spans))
