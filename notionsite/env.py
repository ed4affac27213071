import logging
import os

from notionsite.errors import ConfigurationError

logger = logging.getLogger(__name__)

NOTION_API_BASE_URL = "https://api.notion.com"
DEFAULT_CACHE_TTL_SEC = 300


def get_notion_token() -> str:
    token = os.environ.get("NOTION_TOKEN", None) or os.environ.get(
        "NOTION_API_KEY", None
    )

    if not token:
        raise ConfigurationError("Environment variable 'NOTION_TOKEN' is not set.")

    return token


def get_database_id() -> str | None:
    database_id = os.environ.get("NOTION_DATABASE_ID", None)

    if not database_id:
        logger.warning("NOTION_DATABASE_ID is not set")

    return database_id or None


def get_notion_api_url() -> str:
    return os.environ.get("NOTION_API_URL", None) or NOTION_API_BASE_URL


def get_cache_ttl_sec() -> int:
    value = os.environ.get("NOTIONSITE_CACHE_TTL_SEC", None)

    if not value:
        return DEFAULT_CACHE_TTL_SEC

    try:
        ttl = int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable 'NOTIONSITE_CACHE_TTL_SEC' is not a number: {value}"
        ) from e

    if ttl <= 0:
        raise ConfigurationError(
            f"Environment variable 'NOTIONSITE_CACHE_TTL_SEC' should be positive: {ttl}"
        )

    return ttl
