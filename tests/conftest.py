import logging
import logging.config
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from aiohttp import web

LOGGING_CONFIG = {
    "version": 1,
    "formatters": {
        "brief": {"format": "%(message)s"},
        "default": {
            "format": "%(asctime)s %(levelname)-8s %(name)-15s %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "notionsite": {"level": logging.DEBUG, "handlers": ["console"]},
        "aiohttp": {"level": logging.INFO, "handlers": ["console"]},
    },
}
logging.config.dictConfig(LOGGING_CONFIG)


class Clock:
    """Manually advanced time source for cache tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def notion_requests() -> List[Dict[str, Any]]:
    return []


@pytest_asyncio.fixture
async def notion_server(aiohttp_server, notion_requests):
    """Local server answering a small subset of the Notion REST API.

    Block `paged` has children split over two pages. Database `db` has an
    archived page. Page `missing` answers 404, page `denied` answers 401.
    """

    async def retrieve_page(request: web.Request):
        notion_requests.append(
            {"path": request.path, "headers": dict(request.headers)}
        )
        page_id = request.match_info["page_id"]

        if page_id == "missing":
            return web.json_response(
                {"object": "error", "status": 404, "message": "Could not find page"},
                status=404,
            )
        if page_id == "denied":
            return web.json_response(
                {"object": "error", "status": 401, "message": "API token is invalid."},
                status=401,
            )

        return web.json_response({"object": "page", "id": page_id, "properties": {}})

    async def list_children(request: web.Request):
        notion_requests.append({"path": request.path, "query": dict(request.query)})
        cursor = request.query.get("start_cursor")

        if cursor is None:
            return web.json_response(
                {
                    "object": "list",
                    "results": [{"id": "b1", "type": "divider", "divider": {}}],
                    "has_more": True,
                    "next_cursor": "cursor-2",
                }
            )

        return web.json_response(
            {
                "object": "list",
                "results": [{"id": "b2", "type": "divider", "divider": {}}],
                "has_more": False,
                "next_cursor": None,
            }
        )

    async def query_database(request: web.Request):
        body = await request.json()
        notion_requests.append({"path": request.path, "body": body})

        if "start_cursor" not in body:
            return web.json_response(
                {
                    "object": "list",
                    "results": [
                        {"id": "p1", "archived": False},
                        {"id": "p2", "archived": True},
                    ],
                    "has_more": True,
                    "next_cursor": "cursor-2",
                }
            )

        return web.json_response(
            {
                "object": "list",
                "results": [{"id": "p3", "archived": False}],
                "has_more": False,
                "next_cursor": None,
            }
        )

    app = web.Application()
    app.router.add_get("/v1/pages/{page_id}", retrieve_page)
    app.router.add_get("/v1/blocks/{block_id}/children", list_children)
    app.router.add_post("/v1/databases/{database_id}/query", query_database)

    return await aiohttp_server(app)
