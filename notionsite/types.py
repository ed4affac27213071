from dataclasses import dataclass
from typing import List, Literal, Sequence, TypeGuard

Color = str
ListKind = Literal["bulleted", "numbered"]
FileType = Literal["external", "file"]

BlockType = Literal[
    "paragraph",
    "heading_1",
    "heading_2",
    "heading_3",
    "bulleted_list_item",
    "numbered_list_item",
    "to_do",
    "toggle",
    "code",
    "quote",
    "image",
    "bookmark",
    "callout",
    "table",
    "table_row",
    "column_list",
    "column",
    "embed",
    "video",
    "equation",
    "link_preview",
    "divider",
]
BLOCK_TYPES: List[str] = [
    "paragraph",
    "heading_1",
    "heading_2",
    "heading_3",
    "bulleted_list_item",
    "numbered_list_item",
    "to_do",
    "toggle",
    "code",
    "quote",
    "image",
    "bookmark",
    "callout",
    "table",
    "table_row",
    "column_list",
    "column",
    "embed",
    "video",
    "equation",
    "link_preview",
    "divider",
]


def is_block_type(val: str) -> TypeGuard[BlockType]:
    return val in BLOCK_TYPES


@dataclass(frozen=True)
class Annotations:
    """Inline styling of a rich text span.

    Attributes:
        color (str): `"default"`, a foreground color name (i.e. `"red"`),
            or a background color (i.e. `"red_background"`).
    """

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: Color = "default"


@dataclass(frozen=True)
class RichText:
    """A single styled span of text.

    Attributes:
        type (str): Span kind as reported by Notion (`"text"`, `"mention"`,
            `"equation"`).
        plain_text (str): Text content without styling.
        annotations (Annotations): Styling to apply.
        href (str, optional): Link target.
    """

    plain_text: str
    type: str = "text"
    annotations: Annotations = Annotations()
    href: str | None = None


@dataclass(frozen=True, kw_only=True)
class Block:
    """A unit of page content.

    `children` is only populated when `has_children` was reported at fetch
    time and the children were resolved.
    """

    id: str
    type: str
    has_children: bool = False
    children: Sequence["Block"] = ()


@dataclass(frozen=True, kw_only=True)
class Paragraph(Block):
    type: str = "paragraph"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class Heading(Block):
    type: str = "heading_1"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"
    is_toggleable: bool = False

    @property
    def level(self) -> int:
        return int(self.type[-1]) if self.type[-1:] in ("1", "2", "3") else 1


@dataclass(frozen=True, kw_only=True)
class BulletedListItem(Block):
    type: str = "bulleted_list_item"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class NumberedListItem(Block):
    type: str = "numbered_list_item"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class ToDo(Block):
    type: str = "to_do"
    rich_text: Sequence[RichText] = ()
    checked: bool = False
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class Toggle(Block):
    type: str = "toggle"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class Code(Block):
    type: str = "code"
    rich_text: Sequence[RichText] = ()
    language: str | None = None
    caption: Sequence[RichText] = ()


@dataclass(frozen=True, kw_only=True)
class Quote(Block):
    type: str = "quote"
    rich_text: Sequence[RichText] = ()
    color: Color = "default"


@dataclass(frozen=True)
class File:
    """Media reference shared by images and videos.

    Notion hosts media either externally or as an uploaded file; `type`
    selects which of the two urls applies.
    """

    type: FileType | None = None
    external_url: str | None = None
    file_url: str | None = None
    caption: Sequence[RichText] = ()

    @property
    def url(self) -> str | None:
        if self.type == "external":
            return self.external_url
        return self.file_url


@dataclass(frozen=True, kw_only=True)
class Image(Block):
    type: str = "image"
    file: File = File()


@dataclass(frozen=True, kw_only=True)
class Video(Block):
    type: str = "video"
    file: File = File()


@dataclass(frozen=True, kw_only=True)
class Bookmark(Block):
    type: str = "bookmark"
    url: str | None = None
    caption: Sequence[RichText] = ()


@dataclass(frozen=True, kw_only=True)
class Embed(Block):
    type: str = "embed"
    url: str | None = None
    caption: Sequence[RichText] = ()


@dataclass(frozen=True, kw_only=True)
class LinkPreview(Block):
    type: str = "link_preview"
    url: str | None = None


@dataclass(frozen=True)
class Icon:
    type: str | None = None
    emoji: str | None = None
    url: str | None = None


@dataclass(frozen=True, kw_only=True)
class Callout(Block):
    type: str = "callout"
    rich_text: Sequence[RichText] = ()
    icon: Icon | None = None
    color: Color = "default"


@dataclass(frozen=True, kw_only=True)
class Table(Block):
    type: str = "table"
    table_width: int = 0
    has_column_header: bool = False
    has_row_header: bool = False


@dataclass(frozen=True, kw_only=True)
class TableRow(Block):
    type: str = "table_row"
    cells: Sequence[Sequence[RichText]] = ()


@dataclass(frozen=True, kw_only=True)
class ColumnList(Block):
    type: str = "column_list"


@dataclass(frozen=True, kw_only=True)
class Column(Block):
    type: str = "column"
    ratio: float | None = None


@dataclass(frozen=True, kw_only=True)
class Equation(Block):
    type: str = "equation"
    expression: str | None = None


@dataclass(frozen=True, kw_only=True)
class Divider(Block):
    type: str = "divider"


@dataclass(frozen=True, kw_only=True)
class Unsupported(Block):
    """Any block Notion returns that we don't know how to render.

    `type` keeps the original block type so that it can be reported.
    """


@dataclass(frozen=True)
class Tag:
    name: str
    color: Color = "default"


@dataclass(frozen=True)
class Author:
    name: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class Thumbnail:
    type: str
    url: str


@dataclass(frozen=True)
class Page:
    """A page from the content database, ready for rendering.

    Attributes:
        id (str): Notion page id.
        title (str): Page title, `"untitled"` when the page has none.
        summary (str): Short description, empty when not set.
        slug (str): URL slug. Defaults to the page id.
        tags (Sequence[Tag]): Tags in the order they appear in Notion.
        date (str): Publication date as ISO-8601 instant in UTC.
        updated_at (str): Last edit as ISO-8601 instant in UTC.
        category (str, optional): Category name.
        keywords (Sequence[str]): Keywords from a comma-separated property.
        author (Author, optional): First person from the author property.
        thumbnail (Thumbnail, optional): From the thumbnail property
            or the page cover.
        status (str, optional): Publication status, i.e. `"Public"`.
        blocks (Sequence[Block]): Page content. Empty unless requested.
    """

    id: str
    title: str
    summary: str
    slug: str
    date: str
    updated_at: str
    tags: Sequence[Tag] = ()
    category: str | None = None
    keywords: Sequence[str] = ()
    author: Author | None = None
    thumbnail: Thumbnail | None = None
    status: str | None = None
    blocks: Sequence[Block] = ()
