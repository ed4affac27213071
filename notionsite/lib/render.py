import logging
from dataclasses import dataclass
from html import escape
from typing import List, Sequence

from notionsite.lib.richtext import render_rich_text
from notionsite.types import (
    Block,
    Bookmark,
    BulletedListItem,
    Callout,
    Code,
    Column,
    ColumnList,
    Divider,
    Embed,
    Equation,
    Heading,
    Image,
    LinkPreview,
    ListKind,
    NumberedListItem,
    Paragraph,
    Quote,
    Table,
    TableRow,
    ToDo,
    Toggle,
    Video,
)

logger = logging.getLogger(__name__)

NO_CONTENT = "No content"
DEFAULT_IMAGE_ALT = "Notion image"

ERROR_CLASSES = "my-4 p-2 border border-red-200 rounded text-red-500"
HEADING_CLASSES = {
    1: "text-3xl font-bold mt-8 mb-4",
    2: "text-2xl font-bold mt-6 mb-3",
    3: "text-xl font-bold mt-5 mb-2",
}
LINK_CARD_CLASSES = (
    "block border border-gray-200 rounded p-4 my-4 hover:bg-gray-50 "
    "transition duration-150"
)
IFRAME_CLASSES = "w-full h-96 border-0 rounded shadow-md"


@dataclass(frozen=True)
class BlockUnit:
    block: Block


@dataclass(frozen=True)
class ListUnit:
    kind: ListKind
    items: Sequence[Block]


@dataclass(frozen=True)
class EmptyUnit:
    message: str = NO_CONTENT


Unit = BlockUnit | ListUnit | EmptyUnit


def _error(message: str) -> str:
    return f'<div class="{ERROR_CLASSES}">{escape(message)}</div>'


def _children(block: Block) -> str:
    return "".join(render_block(child) for child in block.children)


def _caption(block_caption, tag: str = "div") -> str:
    if not block_caption:
        return ""
    return (
        f'<{tag} class="text-center text-gray-500 mt-2">'
        f"{render_rich_text(block_caption)}</{tag}>"
    )


def _list_item(block: Block, rich_text, style: str, nested_tag: str) -> str:
    nested = (
        f'<{nested_tag} class="ml-5 mt-1">{_children(block)}</{nested_tag}>'
        if block.children
        else ""
    )
    return f'<li class="ml-5 {style} mb-1">{render_rich_text(rich_text)}{nested}</li>'


def _table_row(row: TableRow, header: bool) -> str:
    tag = "th" if header else "td"
    cells = "".join(
        f'<{tag} class="border border-gray-300 px-3 py-2">'
        f"{render_rich_text(cell)}</{tag}>"
        for cell in row.cells
    )
    return f'<tr class="bg-gray-100">{cells}</tr>' if header else f"<tr>{cells}</tr>"


def _table(block: Table) -> str:
    if not block.children:
        return _error("Table data not found")

    rows = "".join(
        _table_row(row, header=i == 0 and block.has_column_header)
        for i, row in enumerate(block.children)
        if isinstance(row, TableRow)
    )
    return (
        '<div class="my-4 overflow-x-auto">'
        f'<table class="w-full border-collapse"><tbody>{rows}</tbody></table>'
        "</div>"
    )


def _callout_icon(block: Callout) -> str:
    icon = block.icon
    if icon and icon.type == "emoji" and icon.emoji:
        return icon.emoji
    if icon and icon.type == "external":
        return "\N{LINK SYMBOL}"
    return "\N{ELECTRIC LIGHT BULB}"


def _link_card(url: str, caption=None) -> str:
    caption_html = (
        f'<div class="text-gray-500 text-sm mt-1">{render_rich_text(caption)}</div>'
        if caption
        else ""
    )
    return (
        f'<a href="{escape(url)}" target="_blank" rel="noopener noreferrer" '
        f'class="{LINK_CARD_CLASSES}">'
        f'<div class="text-blue-500 hover:underline break-words">{escape(url)}</div>'
        f"{caption_html}</a>"
    )


def _iframe(url: str, title: str) -> str:
    return (
        f'<iframe src="{escape(url)}" class="{IFRAME_CLASSES}" allowfullscreen '
        f'loading="lazy" title="{title}"></iframe>'
    )


def _render(block: Block) -> str:
    match block:
        case Paragraph():
            return f'<p class="mb-4">{render_rich_text(block.rich_text)}</p>'
        case Heading():
            level = block.level
            return (
                f'<h{level} class="{HEADING_CLASSES[level]}">'
                f"{render_rich_text(block.rich_text)}</h{level}>"
            )
        case BulletedListItem():
            return _list_item(block, block.rich_text, "list-disc", "ul")
        case NumberedListItem():
            return _list_item(block, block.rich_text, "list-decimal", "ol")
        case ToDo():
            checked = " checked" if block.checked else ""
            return (
                '<div class="flex items-start mb-1">'
                f'<input type="checkbox"{checked} readonly class="mt-1 mr-2" />'
                f"<div>{render_rich_text(block.rich_text)}</div></div>"
            )
        case Toggle():
            children = (
                f'<div class="mt-2 pl-4">{_children(block)}</div>'
                if block.children
                else ""
            )
            return (
                '<details class="mb-4 border border-gray-200 rounded p-2">'
                '<summary class="cursor-pointer font-medium">'
                f"{render_rich_text(block.rich_text)}</summary>{children}</details>"
            )
        case Code():
            language = escape(block.language or "text")
            text = escape("".join(span.plain_text for span in block.rich_text))
            return (
                '<pre class="bg-gray-900 text-gray-100 p-4 rounded my-4 '
                f'overflow-x-auto"><code class="language-{language}">{text}</code></pre>'
            )
        case Quote():
            return (
                '<blockquote class="border-l-4 border-gray-300 pl-4 py-1 my-4 italic">'
                f"{render_rich_text(block.rich_text)}</blockquote>"
            )
        case Divider():
            return '<hr class="my-6 border-t border-gray-300" />'
        case Image():
            url = block.file.url
            if not url:
                return _error("Image URL not found")
            caption = block.file.caption
            alt = (
                " ".join(span.plain_text for span in caption)
                if caption
                else DEFAULT_IMAGE_ALT
            )
            return (
                '<figure class="my-6">'
                f'<img src="{escape(url)}" alt="{escape(alt)}" '
                'class="mx-auto max-w-full rounded shadow-md" loading="lazy" />'
                f'{_caption(caption, tag="figcaption")}</figure>'
            )
        case Bookmark():
            if not block.url:
                return _error("Bookmark URL not found")
            return _link_card(block.url, block.caption)
        case LinkPreview():
            if not block.url:
                return _error("Link preview URL not found")
            return _link_card(block.url)
        case Callout():
            return (
                '<div class="flex bg-gray-100 p-4 rounded my-4 border-l-4 '
                'border-gray-300">'
                f'<div class="mr-3 text-xl">{escape(_callout_icon(block))}</div>'
                f'<div class="flex-1">{render_rich_text(block.rich_text)}</div></div>'
            )
        case Table():
            return _table(block)
        case TableRow():
            return _table_row(block, header=False)
        case ColumnList():
            if not block.children:
                return ""
            return f'<div class="flex flex-wrap my-4 -mx-2">{_children(block)}</div>'
        case Column():
            return f'<div class="px-2 flex-1 min-w-[250px]">{_children(block)}</div>'
        case Embed():
            if not block.url:
                return _error("Embed URL not found")
            return (
                f'<div class="my-4">{_iframe(block.url, "Embedded content")}'
                f"{_caption(block.caption)}</div>"
            )
        case Video():
            url = block.file.url
            if not url:
                return _error("Video URL not found")
            return (
                f'<div class="my-6">{_iframe(url, "Video content")}'
                f"{_caption(block.file.caption)}</div>"
            )
        case Equation():
            if not block.expression:
                return _error("Equation not found")
            return (
                '<div class="my-4 p-4 bg-gray-50 rounded overflow-x-auto font-mono">'
                f"{escape(block.expression)}</div>"
            )
        case _:
            return (
                '<div class="my-4 p-2 border border-gray-200 rounded text-sm">'
                '<p class="text-gray-500">'
                f"Unsupported block type: {escape(str(block.type))}</p></div>"
            )


def render_block(block: Block) -> str:
    """Render a block and its children into HTML.

    Never raises: blocks that can't be rendered become a visible notice.
    """
    if block is None:
        return ""

    try:
        return _render(block)
    except Exception as e:
        _id = getattr(block, "id", None)
        logger.warning(f"Failed to render block {_id}: {e}", exc_info=e)
        return _error(f"Failed to render block: {getattr(block, 'type', None)}")


def _list_kind(item: Block | Unit) -> ListKind | None:
    match item:
        case BulletedListItem():
            return "bulleted"
        case NumberedListItem():
            return "numbered"
        case _:
            return None


def group_blocks(blocks: Sequence[Block | Unit]) -> List[Unit]:
    """Merge runs of list items into list units.

    Consecutive bulleted (or numbered) list items become one `ListUnit`,
    other blocks become `BlockUnit`. Units in the input are passed through
    unchanged, so grouping is idempotent.

    Returns:
        Units in input order. `[EmptyUnit()]` for no blocks.
    """
    if not blocks:
        return [EmptyUnit()]

    units: List[Unit] = []
    run: List[Block] = []
    run_kind: ListKind | None = None

    def _flush():
        nonlocal run, run_kind
        if run and run_kind:
            units.append(ListUnit(kind=run_kind, items=tuple(run)))
        run, run_kind = [], None

    for item in blocks:
        kind = _list_kind(item)
        if kind is not None and isinstance(item, Block):
            if kind != run_kind:
                _flush()
                run_kind = kind
            run.append(item)
        else:
            _flush()
            match item:
                case BlockUnit() | ListUnit() | EmptyUnit():
                    units.append(item)
                case _:
                    units.append(BlockUnit(block=item))

    _flush()

    return units


def render_unit(unit: Unit) -> str:
    match unit:
        case ListUnit(kind="bulleted"):
            items = "".join(render_block(item) for item in unit.items)
            return f'<ul class="my-4">{items}</ul>'
        case ListUnit(kind="numbered"):
            items = "".join(render_block(item) for item in unit.items)
            return f'<ol class="my-4">{items}</ol>'
        case BlockUnit():
            return render_block(unit.block)
        case EmptyUnit():
            return f'<p class="text-gray-500 italic">{escape(unit.message)}</p>'
        case _:
            return ""


def render_blocks(blocks: Sequence[Block]) -> str:
    """Render page content, grouping list items into lists."""
    units = "".join(render_unit(unit) for unit in group_blocks(blocks))
    return f'<div class="notion-content">{units}</div>'
