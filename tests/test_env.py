import pytest

from notionsite import env
from notionsite.errors import ConfigurationError


def test_notion_token(monkeypatch):
    monkeypatch.delenv("NOTION_TOKEN", raising=False)
    monkeypatch.setenv("NOTION_API_KEY", "legacy")
    assert env.get_notion_token() == "legacy"

    monkeypatch.setenv("NOTION_TOKEN", "secret")
    assert env.get_notion_token() == "secret"

    monkeypatch.delenv("NOTION_TOKEN")
    monkeypatch.delenv("NOTION_API_KEY")
    with pytest.raises(ConfigurationError, match="NOTION_TOKEN"):
        env.get_notion_token()


def test_database_id(monkeypatch):
    monkeypatch.setenv("NOTION_DATABASE_ID", "db")
    assert env.get_database_id() == "db"

    monkeypatch.setenv("NOTION_DATABASE_ID", "")
    assert env.get_database_id() is None


def test_api_url(monkeypatch):
    monkeypatch.delenv("NOTION_API_URL", raising=False)
    assert env.get_notion_api_url() == "https://api.notion.com"

    monkeypatch.setenv("NOTION_API_URL", "http://127.0.0.1:8080")
    assert env.get_notion_api_url() == "http://127.0.0.1:8080"


def test_cache_ttl(monkeypatch):
    monkeypatch.delenv("NOTIONSITE_CACHE_TTL_SEC", raising=False)
    assert env.get_cache_ttl_sec() == 300

    monkeypatch.setenv("NOTIONSITE_CACHE_TTL_SEC", "42")
    assert env.get_cache_ttl_sec() == 42

    monkeypatch.setenv("NOTIONSITE_CACHE_TTL_SEC", "five minutes")
    with pytest.raises(ConfigurationError):
        env.get_cache_ttl_sec()

    for value in ("0", "-5"):
        monkeypatch.setenv("NOTIONSITE_CACHE_TTL_SEC", value)
        with pytest.raises(ConfigurationError, match="should be positive"):
            env.get_cache_ttl_sec()
