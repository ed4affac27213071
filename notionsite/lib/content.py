import asyncio
import logging
from dataclasses import replace
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Literal, Sequence, TypeVar

from aiohttp import ClientResponseError

from notionsite import env
from notionsite.errors import (
    ConfigurationError,
    NotFoundError,
    NotionError,
    RateLimitedError,
    UnauthorizedError,
    UnclassifiedError,
)
from notionsite.lib import notion
from notionsite.lib.cache import Cache, CacheConfig
from notionsite.lib.notion import NotionAPI
from notionsite.types import Block, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

Entity = Literal["page", "blocks", "database"]

DEFAULT_STATUS = "Public"
SORT_BY_DATE_DESCENDING = [{"property": "date", "direction": "descending"}]


def _flag(value: bool) -> str:
    return "true" if value else "false"


def classify(error: Exception, entity: Entity, _id: str | None) -> NotionError:
    """Turn a failed remote call into one of the NotionError kinds.

    HTTP errors are classified by status code, anything else by looking for
    a status code in the error text.
    """
    signal = str(error.status) if isinstance(error, ClientResponseError) else str(error)

    if "404" in signal:
        return NotFoundError(f"{entity.capitalize()} not found (ID: {_id})")
    elif "401" in signal or "403" in signal:
        return UnauthorizedError(
            f"Access to {entity} denied (ID: {_id}). "
            "Make sure NOTION_TOKEN is set and the integration has access."
        )
    elif "429" in signal:
        return RateLimitedError(
            "Notion API rate limit reached. Please wait and try again later."
        )
    else:
        return UnclassifiedError(f"Failed to fetch {entity} (ID: {_id}): {error}")


def _with_context(error: NotionError, context: str) -> NotionError:
    return type(error)(f"{context}: {error}")


class ContentClient:
    """Pages and blocks of a Notion database, cached.

    Every remote call goes through `cache`; see `Cache` for the freshness
    policy. Content trees are resolved recursively and are expected to be
    shallow, there is no depth limit.

    Args:
        api: Notion API wrapper.
        database_id: Id of the database with site pages. Operations that list
            or look up pages raise `ConfigurationError` without it.
        cache: Cache instance. A new one is created when omitted.
    """

    def __init__(
        self,
        api: NotionAPI,
        database_id: str | None = None,
        cache: Cache | None = None,
    ) -> None:
        self.api = api
        self.database_id = database_id
        self.cache = cache or Cache()

    async def get_page(self, page_id: str) -> Dict[str, Any]:
        """Get Notion API representation of a page."""
        logger.info(f"Fetching page: {page_id}")

        async def _fetch():
            try:
                return await self.api.retrieve_page(page_id)
            except Exception as e:
                logger.error(f"Failed to fetch page {page_id}: {e}")
                raise classify(e, "page", page_id) from e

        return await self.cache.get(f"page:{page_id}", _fetch)

    async def get_blocks(self, block_id: str) -> Sequence[Block]:
        """Get all child blocks of a page or a block with their children.

        Children of every block that has them are fetched concurrently.
        """
        logger.info(f"Fetching blocks for: {block_id}")

        async def _fetch():
            try:
                results = await self._list_all_children(block_id)
            except Exception as e:
                logger.error(f"Failed to fetch blocks for {block_id}: {e}")
                raise classify(e, "blocks", block_id) from e

            logger.debug(f"Fetched {len(results)} blocks for {block_id}")

            blocks = [notion.parse_block(result) for result in results]
            parents = [block for block in blocks if block.has_children]
            if parents:
                logger.debug(f"Fetching children for {len(parents)} blocks")
                children = await asyncio.gather(
                    *[self.get_blocks(block.id) for block in parents]
                )
                resolved = {
                    block.id: replace(block, children=tuple(child_blocks))
                    for block, child_blocks in zip(parents, children)
                }
                blocks = [resolved.get(block.id, block) for block in blocks]

            return tuple(blocks)

        return await self.cache.get(f"blocks:{block_id}", _fetch)

    async def _list_all_children(self, block_id: str) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        cursor = None

        while True:
            response = await self.api.list_children(
                block_id,
                start_cursor=cursor,
                page_size=notion.NOTION_API_MAX_PAGE_SIZE,
            )
            results += response["results"]

            if response.get("has_more") and response.get("next_cursor"):
                cursor = response["next_cursor"]
            else:
                break

        return results

    async def get_formatted_page(self, page_id: str, fetch_blocks: bool = True) -> Page:
        """Get page with its properties shaped and (optionally) its content."""
        logger.info(f"Getting formatted page: {page_id} (with blocks: {fetch_blocks})")

        async def _fetch():
            try:
                page = await self.get_page(page_id)
                blocks: Sequence[Block] = ()
                if fetch_blocks:
                    blocks = await self.get_blocks(page_id)
            except NotionError as e:
                logger.error(f"Failed to format page {page_id}: {e}")
                raise _with_context(e, f"Failed to format page {page_id}") from e

            return notion.parse_page(page, blocks)

        return await self.cache.get(
            f"formatted-page:{page_id}:{_flag(fetch_blocks)}", _fetch
        )

    async def get_formatted_database(
        self, filter_by_status: bool = True, status: str = DEFAULT_STATUS
    ) -> List[Page]:
        """Get all database pages, newest first.

        Args:
            filter_by_status: Only return pages with `status`.
            status: Value of the `status` select property. (Default: `"Public"`)
        """
        database_id = self._require_database_id()
        logger.info(
            f"Getting formatted database (filter by status: {filter_by_status}, "
            f"status: {status})"
        )

        async def _fetch():
            _filter = (
                {"property": "status", "select": {"equals": status}}
                if filter_by_status
                else None
            )
            results = await self._query(database_id, _filter)
            return notion.parse_pages(results)

        return await self.cache.get(
            f"formatted-database:{_flag(filter_by_status)}:{status}", _fetch
        )

    async def get_page_by_slug(self, slug: str) -> Page | None:
        """Find a page by its slug.

        Returns:
            Page with content, or `None` if no page has this slug.
        """
        database_id = self._require_database_id()
        logger.info(f"Getting page by slug: {slug}")

        async def _fetch():
            results = await self._query(
                database_id, {"property": "slug", "rich_text": {"equals": slug}}
            )

            if not results:
                logger.debug(f"No page found with slug: {slug}")
                return None

            page_id = results[0]["id"]
            logger.debug(f"Found page with slug {slug}, ID: {page_id}")

            try:
                page, blocks = await asyncio.gather(
                    self.get_page(page_id), self.get_blocks(page_id)
                )
            except NotionError as e:
                raise _with_context(e, f"Failed to get page by slug ({slug})") from e

            return notion.parse_page(page, blocks)

        return await self.cache.get(f"page-by-slug:{slug}", _fetch)

    async def get_pages_by_tag(self, tag: str) -> List[Page]:
        database_id = self._require_database_id()
        logger.info(f"Getting pages by tag: {tag}")

        async def _fetch():
            results = await self._query(
                database_id, {"property": "tags", "multi_select": {"contains": tag}}
            )
            logger.debug(f"Found {len(results)} pages with tag: {tag}")
            return notion.parse_pages(results)

        return await self.cache.get(f"pages-by-tag:{tag}", _fetch)

    async def get_pages_by_category(self, category: str) -> List[Page]:
        database_id = self._require_database_id()
        logger.info(f"Getting pages by category: {category}")

        async def _fetch():
            results = await self._query(
                database_id, {"property": "category", "select": {"equals": category}}
            )
            logger.debug(f"Found {len(results)} pages with category: {category}")
            return notion.parse_pages(results)

        return await self.cache.get(f"pages-by-category:{category}", _fetch)

    async def get_all_tags(self) -> List[str]:
        """Names of all tags used by published pages, sorted."""
        logger.info("Getting all tags")

        async def _fetch():
            pages = await self.get_formatted_database()
            return sorted({tag.name for page in pages for tag in page.tags})

        return await self._aggregate("all-tags", _fetch)

    async def get_all_categories(self) -> List[str]:
        """Names of all categories used by published pages, sorted."""
        logger.info("Getting all categories")

        async def _fetch():
            pages = await self.get_formatted_database()
            return sorted({page.category for page in pages if page.category})

        return await self._aggregate("all-categories", _fetch)

    async def search_pages(self, query: str) -> List[Page]:
        """Find pages whose title, summary, tags or category contain `query`.

        Search always queries Notion and is never cached.
        """
        if not query.strip():
            return []

        database_id = self._require_database_id()
        logger.info(f"Searching pages with query: {query}")

        try:
            pages = notion.parse_pages(await self._query(database_id, None))
        except NotionError as e:
            raise _with_context(e, f"Failed to search pages ({query})") from e

        needle = query.lower()

        def _matches(page: Page) -> bool:
            return (
                needle in page.title.lower()
                or needle in page.summary.lower()
                or any(needle in tag.name.lower() for tag in page.tags)
                or bool(page.category and needle in page.category.lower())
            )

        results = [page for page in pages if _matches(page)]
        logger.debug(f"Found {len(results)} pages matching query: {query}")

        return results

    def clear_cache(self, prefix: str | None = None) -> None:
        self.cache.clear(prefix)

    async def _aggregate(
        self, key: str, fetch: Callable[[], Awaitable[T]]
    ) -> T:
        self._require_database_id()
        return await self.cache.get(key, fetch)

    async def _query(
        self, database_id: str, _filter: Dict[str, Any] | None
    ) -> List[Dict[str, Any]]:
        try:
            return await self.api.query_database(
                database_id, filter=_filter, sorts=SORT_BY_DATE_DESCENDING
            )
        except Exception as e:
            logger.error(f"Failed to query database {database_id}: {e}")
            raise classify(e, "database", database_id) from e

    def _require_database_id(self) -> str:
        if not self.database_id:
            message = "NOTION_DATABASE_ID is not set"
            logger.error(message)
            raise ConfigurationError(message)
        return self.database_id


def create(cache: Cache | None = None) -> ContentClient:
    """Create a client configured from environment variables."""
    api = NotionAPI(env.get_notion_token(), url=env.get_notion_api_url())
    cache = cache or Cache(CacheConfig(ttl=timedelta(seconds=env.get_cache_ttl_sec())))

    return ContentClient(api, database_id=env.get_database_id(), cache=cache)
