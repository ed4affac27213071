import pytest
from aiohttp import ClientResponseError
from notion_data import paragraph, raw_block, raw_page, rich_text

from notionsite.lib import notion
from notionsite.lib.notion import NotionAPI
from notionsite.types import (
    BLOCK_TYPES,
    Bookmark,
    Callout,
    Heading,
    Image,
    Paragraph,
    TableRow,
    ToDo,
    Unsupported,
    is_block_type,
)


def _api(server) -> NotionAPI:
    return NotionAPI("secret_token", url=f"http://127.0.0.1:{server.port}")


@pytest.mark.asyncio
async def test_retrieve_page(notion_server, notion_requests):
    page = await _api(notion_server).retrieve_page("abc")

    assert page["id"] == "abc"
    headers = notion_requests[0]["headers"]
    assert headers["Authorization"] == "Bearer secret_token"
    assert headers["Notion-Version"] == notion.NOTION_API_VERSION


@pytest.mark.asyncio
async def test_retrieve_page_errors(notion_server):
    api = _api(notion_server)

    with pytest.raises(ClientResponseError) as e:
        await api.retrieve_page("missing")
    assert e.value.status == 404
    assert e.value.message == "Could not find page"

    with pytest.raises(ClientResponseError) as e:
        await api.retrieve_page("denied")
    assert e.value.status == 401


@pytest.mark.asyncio
async def test_list_children(notion_server, notion_requests):
    api = _api(notion_server)

    first = await api.list_children("paged")
    assert [block["id"] for block in first["results"]] == ["b1"]
    assert first["has_more"]
    assert notion_requests[0]["query"] == {"page_size": "100"}

    second = await api.list_children("paged", start_cursor=first["next_cursor"])
    assert [block["id"] for block in second["results"]] == ["b2"]
    assert not second["has_more"]
    assert notion_requests[1]["query"]["start_cursor"] == "cursor-2"


@pytest.mark.asyncio
async def test_query_database(notion_server, notion_requests):
    _filter = {"property": "status", "select": {"equals": "Public"}}
    sorts = [{"property": "date", "direction": "descending"}]

    pages = await _api(notion_server).query_database("db", filter=_filter, sorts=sorts)

    assert [page["id"] for page in pages] == ["p1", "p3"]
    assert len(notion_requests) == 2
    assert notion_requests[0]["body"] == {
        "page_size": 100,
        "filter": _filter,
        "sorts": sorts,
    }
    assert notion_requests[1]["body"]["start_cursor"] == "cursor-2"


def test_parse_rich_text():
    spans = notion.parse_rich_text(
        [
            rich_text("plain"),
            rich_text("link", href="https://example.com", bold=True, color="red"),
            {"plain_text": "broken", "annotations": {"color": 42}},
            "not a span",
        ]
    )

    assert [span.plain_text for span in spans] == ["plain", "link", "broken"]
    assert spans[1].href == "https://example.com"
    assert spans[1].annotations.bold
    assert spans[1].annotations.color == "red"
    assert spans[2].annotations.color == "default"
    assert notion.parse_rich_text(None) == []


def test_parse_block():
    block = notion.parse_block(paragraph("1", "Hello"))
    assert isinstance(block, Paragraph)
    assert block.rich_text[0].plain_text == "Hello"
    assert not block.has_children

    heading = notion.parse_block(
        raw_block("2", "heading_2", rich_text=[rich_text("Title")])
    )
    assert isinstance(heading, Heading)
    assert heading.level == 2

    todo = notion.parse_block(
        raw_block("3", "to_do", rich_text=[rich_text("Buy milk")], checked=True)
    )
    assert isinstance(todo, ToDo)
    assert todo.checked

    image = notion.parse_block(
        raw_block(
            "4",
            "image",
            type="external",
            external={"url": "https://example.com/cat.png"},
            caption=[rich_text("A cat")],
        )
    )
    assert isinstance(image, Image)
    assert image.file.url == "https://example.com/cat.png"
    assert image.file.caption[0].plain_text == "A cat"

    uploaded = notion.parse_block(
        raw_block("5", "image", type="file", file={"url": "https://s3/cat.png"})
    )
    assert uploaded.file.url == "https://s3/cat.png"

    bookmark = notion.parse_block(raw_block("6", "bookmark", url="https://x.org"))
    assert isinstance(bookmark, Bookmark)
    assert bookmark.url == "https://x.org"

    callout = notion.parse_block(
        raw_block(
            "7",
            "callout",
            rich_text=[rich_text("Note")],
            icon={"type": "emoji", "emoji": "\N{WARNING SIGN}"},
        )
    )
    assert isinstance(callout, Callout)
    assert callout.icon.emoji == "\N{WARNING SIGN}"

    row = notion.parse_block(
        raw_block("8", "table_row", cells=[[rich_text("a")], [rich_text("b")]])
    )
    assert isinstance(row, TableRow)
    assert [cell[0].plain_text for cell in row.cells] == ["a", "b"]


def test_parse_unknown_block():
    block = notion.parse_block(
        raw_block("1", "synced_block", has_children=True, synced_from=None)
    )

    assert isinstance(block, Unsupported)
    assert block.type == "synced_block"
    assert block.has_children

    assert notion.parse_block({"id": "2", "type": "unknown_type"}).type == (
        "unknown_type"
    )
    assert isinstance(notion.parse_block({"id": "3"}), Unsupported)


def test_is_block_type():
    assert all(is_block_type(_type) for _type in BLOCK_TYPES)
    assert is_block_type("heading_3")
    assert not is_block_type("synced_block")


def test_parse_page():
    value = raw_page(
        "page-1",
        title="Hello World",
        slug="hello-world",
        tags=["python", "notion"],
        category="Tech",
        summary="About things",
        date="2024-01-02",
    )
    value["properties"]["keywords"] = {
        "type": "rich_text",
        "rich_text": [rich_text("one, two ,three")],
    }
    value["properties"]["author"] = {
        "type": "people",
        "people": [{"name": "Alex", "avatar_url": "https://example.com/a.png"}],
    }

    page = notion.parse_page(value)

    assert page.id == "page-1"
    assert page.title == "Hello World"
    assert page.slug == "hello-world"
    assert page.summary == "About things"
    assert [tag.name for tag in page.tags] == ["python", "notion"]
    assert page.tags[0].color == "blue"
    assert page.category == "Tech"
    assert page.status == "Public"
    assert page.date == "2024-01-02T00:00:00.000Z"
    assert page.updated_at == "2024-01-03T12:30:00.000Z"
    assert page.keywords == ["one", "two", "three"]
    assert page.author.name == "Alex"
    assert page.thumbnail is None
    assert page.blocks == ()


def test_parse_page_defaults():
    value = raw_page("page-2", title=None, status=None, date=None)
    value["cover"] = {"type": "external", "external": {"url": "https://x/cover.png"}}

    page = notion.parse_page(value)

    assert page.title == notion.UNTITLED == "untitled"
    assert page.slug == "page-2"
    assert page.summary == ""
    assert page.tags == []
    assert page.category is None
    assert page.status is None
    assert page.date == "2023-12-31T10:00:00.000Z"
    assert page.thumbnail.url == "https://x/cover.png"


def test_parse_page_thumbnail_property_wins_over_cover():
    value = raw_page("page-3")
    value["properties"]["thumbnail"] = {
        "type": "files",
        "files": [{"type": "file", "file": {"url": "https://s3/thumb.png"}}],
    }
    value["cover"] = {"type": "external", "external": {"url": "https://x/cover.png"}}

    page = notion.parse_page(value)

    assert page.thumbnail.type == "file"
    assert page.thumbnail.url == "https://s3/thumb.png"


def test_parse_page_malformed_date():
    page = notion.parse_page(raw_page("page-4", date="not a date"))

    assert page.date == "2023-12-31T10:00:00.000Z"


def test_parse_page_updated_at_property():
    value = raw_page("page-5")
    value["properties"]["updatedAt"] = {
        "type": "last_edited_time",
        "last_edited_time": "2024-02-01T08:00:00.000+02:00",
    }

    assert notion.parse_page(value).updated_at == "2024-02-01T06:00:00.000Z"
