import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Sequence

import aiohttp
from aiohttp import ClientResponseError

from notionsite import env
from notionsite.types import (
    Annotations,
    Author,
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
    File,
    Heading,
    Icon,
    Image,
    LinkPreview,
    NumberedListItem,
    Page,
    Paragraph,
    Quote,
    RichText,
    Table,
    TableRow,
    Tag,
    Thumbnail,
    ToDo,
    Toggle,
    Unsupported,
    Video,
    is_block_type,
)

logger = logging.getLogger(__name__)

HTTPVerb = Literal["GET", "POST"]

NOTION_API_VERSION = "2022-02-22"
NOTION_API_MAX_PAGE_SIZE = 100

UNTITLED = "untitled"

PROPERTY_NAME_TITLE = "title"
PROPERTY_NAME_SLUG = "slug"
PROPERTY_NAME_SUMMARY = "summary"
PROPERTY_NAME_THUMBNAIL = "thumbnail"
PROPERTY_NAME_DATE = "date"
PROPERTY_NAME_UPDATED_AT = "updatedAt"
PROPERTY_NAME_TAGS = "tags"
PROPERTY_NAME_AUTHOR = "author"
PROPERTY_NAME_CATEGORY = "category"
PROPERTY_NAME_STATUS = "status"
PROPERTY_NAME_KEYWORDS = "keywords"


class NotionAPI:
    """Thin asynchronous wrapper over the parts of the Notion REST API we use.

    Every call opens its own `aiohttp.ClientSession`, so an instance can be
    shared freely between concurrent tasks.

    Args:
        token: Notion integration token.
        url: API base url. Tests point this at a local server.
    """

    def __init__(self, token: str, *, url: str = env.NOTION_API_BASE_URL) -> None:
        self.token = token
        self.url = url

    async def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        """Get Notion API representation of a page.

        Note: It doesn't return page content. Use `list_children` for that.
        """
        return await self._make_api_call(verb="GET", url=f"/v1/pages/{page_id}")

    async def list_children(
        self,
        block_id: str,
        start_cursor: str | None = None,
        page_size: int = NOTION_API_MAX_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Get one page of child blocks.

        Returns:
            Raw list response with `results`, `has_more` and `next_cursor`.
        """
        params: Dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor

        return await self._make_api_call(
            verb="GET", url=f"/v1/blocks/{block_id}/children", payload=params
        )

    async def query_database(
        self,
        database_id: str,
        filter: Dict[str, Any] | None = None,
        sorts: List[Dict[str, Any]] | None = None,
    ) -> List[Dict[str, Any]]:
        """Get all non-archived pages of a database matching `filter`."""
        pages: List[Dict[str, Any]] = []

        payload: Dict[str, Any] = {"page_size": NOTION_API_MAX_PAGE_SIZE}
        if filter:
            payload["filter"] = filter
        if sorts:
            payload["sorts"] = sorts

        while True:
            data = await self._make_api_call(
                verb="POST", url=f"/v1/databases/{database_id}/query", payload=payload
            )

            pages += [page for page in data["results"] if not page.get("archived")]

            if data.get("has_more") and data.get("next_cursor"):
                payload["start_cursor"] = data["next_cursor"]
            else:
                break

        return pages

    async def _make_api_call(
        self, verb: HTTPVerb, url: str, payload: Dict | None = None
    ) -> Dict:
        headers = {
            "Accept": "application/json",
            "Notion-Version": NOTION_API_VERSION,
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }

        async with aiohttp.ClientSession(base_url=self.url, headers=headers) as session:
            match verb:
                case "GET":
                    async with session.get(url, params=payload) as response:
                        return await _parse_api_response(response)
                case "POST":
                    async with session.post(url, json=payload) as response:
                        return await _parse_api_response(response)
                case never:
                    raise ValueError(f"Unsupported HTTP verb: {never}")


async def _parse_api_response(response: aiohttp.ClientResponse) -> Dict:
    if response.status == 200:
        return await response.json()

    text = await response.text()
    try:
        message = json.loads(text).get("message", text)
    except json.decoder.JSONDecodeError:
        message = text

    raise ClientResponseError(
        status=response.status,
        request_info=response.request_info,
        message=message,
        history=response.history,
    )


def parse_rich_text(value: Sequence[Dict] | None) -> List[RichText]:
    if not value:
        return []

    spans = []
    for item in value:
        if not isinstance(item, dict):
            continue
        annotations = item.get("annotations") or {}
        color = annotations.get("color")
        spans += [
            RichText(
                type=item.get("type") or "text",
                plain_text=item.get("plain_text")
                or (item.get("text") or {}).get("content")
                or "",
                annotations=Annotations(
                    bold=annotations.get("bold") is True,
                    italic=annotations.get("italic") is True,
                    strikethrough=annotations.get("strikethrough") is True,
                    underline=annotations.get("underline") is True,
                    code=annotations.get("code") is True,
                    color=color if isinstance(color, str) else "default",
                ),
                href=item.get("href") or None,
            )
        ]

    return spans


def _parse_file(value: Dict) -> File:
    external = value.get("external") or {}
    file = value.get("file") or {}
    return File(
        type=value.get("type"),
        external_url=external.get("url") or None,
        file_url=file.get("url") or None,
        caption=parse_rich_text(value.get("caption")),
    )


def _parse_icon(value: Dict | None) -> Icon | None:
    if not value:
        return None
    _type = value.get("type")
    match _type:
        case "emoji":
            return Icon(type=_type, emoji=value.get("emoji"))
        case "external" | "file":
            return Icon(type=_type, url=(value.get(_type) or {}).get("url"))
        case _:
            return Icon(type=_type)


def parse_block(value: Dict, children: Sequence[Block] = ()) -> Block:
    """Create a Block from Notion API block object.

    Args:
        value: Block object as returned by the API.
        children: Already resolved child blocks.

    Returns:
        One of the Block variants. Types we don't know become `Unsupported`.
    """
    _type = value.get("type") or "unsupported"
    common: Dict[str, Any] = {
        "id": value.get("id") or "",
        "type": _type,
        "has_children": bool(value.get("has_children")),
        "children": tuple(children),
    }
    if not is_block_type(_type):
        logger.debug(f"Unsupported block type: {_type}")
        return Unsupported(**common)

    payload = value.get(_type)
    if not isinstance(payload, dict):
        payload = {}
    rich_text = parse_rich_text(payload.get("rich_text"))
    color = payload.get("color") or "default"

    match _type:
        case "paragraph":
            return Paragraph(**common, rich_text=rich_text, color=color)
        case "heading_1" | "heading_2" | "heading_3":
            return Heading(
                **common,
                rich_text=rich_text,
                color=color,
                is_toggleable=bool(payload.get("is_toggleable")),
            )
        case "bulleted_list_item":
            return BulletedListItem(**common, rich_text=rich_text, color=color)
        case "numbered_list_item":
            return NumberedListItem(**common, rich_text=rich_text, color=color)
        case "to_do":
            return ToDo(
                **common,
                rich_text=rich_text,
                checked=bool(payload.get("checked")),
                color=color,
            )
        case "toggle":
            return Toggle(**common, rich_text=rich_text, color=color)
        case "code":
            return Code(
                **common,
                rich_text=rich_text,
                language=payload.get("language"),
                caption=parse_rich_text(payload.get("caption")),
            )
        case "quote":
            return Quote(**common, rich_text=rich_text, color=color)
        case "image":
            return Image(**common, file=_parse_file(payload))
        case "video":
            return Video(**common, file=_parse_file(payload))
        case "bookmark":
            return Bookmark(
                **common,
                url=payload.get("url") or None,
                caption=parse_rich_text(payload.get("caption")),
            )
        case "embed":
            return Embed(
                **common,
                url=payload.get("url") or None,
                caption=parse_rich_text(payload.get("caption")),
            )
        case "link_preview":
            return LinkPreview(**common, url=payload.get("url") or None)
        case "callout":
            return Callout(
                **common,
                rich_text=rich_text,
                icon=_parse_icon(payload.get("icon")),
                color=color,
            )
        case "table":
            return Table(
                **common,
                table_width=payload.get("table_width") or 0,
                has_column_header=bool(payload.get("has_column_header")),
                has_row_header=bool(payload.get("has_row_header")),
            )
        case "table_row":
            return TableRow(
                **common,
                cells=[parse_rich_text(cell) for cell in payload.get("cells") or []],
            )
        case "column_list":
            return ColumnList(**common)
        case "column":
            return Column(**common, ratio=payload.get("ratio"))
        case "equation":
            return Equation(**common, expression=payload.get("expression") or None)
        case "divider":
            return Divider(**common)
        case _:
            return Unsupported(**common)


def _first_plain_text(prop: Dict | None, key: str) -> str | None:
    if not prop:
        return None
    items = prop.get(key) or []
    if not items:
        return None
    return items[0].get("plain_text") or None


def _select_name(prop: Dict | None) -> str | None:
    if not prop or not prop.get("select"):
        return None
    return prop["select"].get("name")


def _to_iso(value: str) -> str:
    """Normalize a Notion date or timestamp into a UTC ISO-8601 instant."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    timestamp = datetime.fromisoformat(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return (
        timestamp.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _first_valid_instant(*candidates: str | None) -> str:
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return _to_iso(candidate)
        except ValueError:
            logger.warning(f"Ignoring malformed timestamp: {candidate}")

    return _to_iso(datetime.now(tz=timezone.utc).isoformat())


def _parse_thumbnail(properties: Dict, cover: Dict | None) -> Thumbnail | None:
    files = (properties.get(PROPERTY_NAME_THUMBNAIL) or {}).get("files") or []
    if files:
        thumb = files[0]
        return Thumbnail(
            type=thumb.get("type") or "external",
            url=(thumb.get("file") or {}).get("url")
            or (thumb.get("external") or {}).get("url")
            or "",
        )

    if cover:
        _type = cover.get("type") or "external"
        return Thumbnail(
            type=_type,
            url=(cover.get("external" if _type == "external" else "file") or {}).get(
                "url"
            )
            or "",
        )

    return None


def parse_page(value: Dict, blocks: Sequence[Block] = ()) -> Page:
    """Shape a Notion page object into a Page.

    Args:
        value: Page object as returned by the API or a database query.
        blocks: Page content, if it was fetched.

    Returns:
        Page with defaults applied for every missing property.
    """
    properties = value.get("properties") or {}
    page_id = value["id"]

    title = _first_plain_text(properties.get(PROPERTY_NAME_TITLE), "title") or UNTITLED
    slug = _first_plain_text(properties.get(PROPERTY_NAME_SLUG), "rich_text") or page_id
    summary = _first_plain_text(properties.get(PROPERTY_NAME_SUMMARY), "rich_text")

    date = _first_valid_instant(
        ((properties.get(PROPERTY_NAME_DATE) or {}).get("date") or {}).get("start"),
        value.get("created_time"),
    )
    updated_at = _first_valid_instant(
        (properties.get(PROPERTY_NAME_UPDATED_AT) or {}).get("last_edited_time"),
        value.get("last_edited_time"),
        date,
    )

    tags = [
        Tag(name=tag["name"], color=tag.get("color") or "default")
        for tag in (properties.get(PROPERTY_NAME_TAGS) or {}).get("multi_select") or []
    ]

    author = None
    people = (properties.get(PROPERTY_NAME_AUTHOR) or {}).get("people") or []
    if people:
        author = Author(name=people[0].get("name"), avatar_url=people[0].get("avatar_url"))

    keywords_text = _first_plain_text(
        properties.get(PROPERTY_NAME_KEYWORDS), "rich_text"
    )
    keywords = (
        [keyword.strip() for keyword in keywords_text.split(",")]
        if keywords_text
        else []
    )

    return Page(
        id=page_id,
        title=title,
        summary=summary or "",
        slug=slug,
        date=date,
        updated_at=updated_at,
        tags=tags,
        category=_select_name(properties.get(PROPERTY_NAME_CATEGORY)),
        keywords=keywords,
        author=author,
        thumbnail=_parse_thumbnail(properties, value.get("cover")),
        status=_select_name(properties.get(PROPERTY_NAME_STATUS)),
        blocks=tuple(blocks),
    )


def parse_pages(values: Sequence[Dict]) -> List[Page]:
    logger.debug(f"Formatting {len(values)} pages")
    return [parse_page(value) for value in values]
